"""Video feed, playback, upload, reaction and deletion endpoints."""

from fastapi import APIRouter, File, Form, Query, UploadFile
from pydantic import BaseModel

from deaftube.api.deps import CurrentUserDep, SessionDep, StorageDep
from deaftube.api.routes.users import MessageResponse
from deaftube.services import catalog, ledger
from deaftube.services.catalog import OwnedVideo
from deaftube.services.storage import Upload

router = APIRouter(prefix="/videos", tags=["Videos"])


class VideoResponse(BaseModel):
    """Video record joined with its owner's display fields."""

    id: str
    user_id: str
    title: str
    description: str
    filename: str
    thumbnail: str | None = None
    caption_file: str | None = None
    category: str
    tags: str
    views: int
    likes: int
    dislikes: int
    duration: int
    has_sign_language: bool
    created_at: str | None = None
    username: str
    avatar: str | None = None
    subscribers: int

    @classmethod
    def from_owned(cls, owned: OwnedVideo) -> "VideoResponse":
        video = owned.video
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description or "",
            filename=video.filename,
            thumbnail=video.thumbnail,
            caption_file=video.caption_file,
            category=video.category,
            tags=video.tags or "",
            views=video.views,
            likes=video.likes,
            dislikes=video.dislikes,
            duration=video.duration,
            has_sign_language=video.has_sign_language,
            created_at=video.created_at.isoformat() if video.created_at else None,
            username=owned.username,
            avatar=owned.avatar,
            subscribers=owned.subscribers,
        )


class UploadResponse(BaseModel):
    """Id of a newly uploaded video."""

    id: str
    message: str


class ReactionRequest(BaseModel):
    """Request to like or dislike a video."""

    type: str | None = None


class ReactionResponse(BaseModel):
    """Outcome of a reaction toggle, including the resulting state."""

    message: str
    status: str | None = None
    likes: int
    dislikes: int


class ReactionStatusResponse(BaseModel):
    """The caller's reaction on a video."""

    status: str | None = None


def _upload(file: UploadFile | None) -> Upload | None:
    # Browsers send an empty part with no filename for an unused file input
    if file is None or not file.filename:
        return None
    return Upload(file.file, file.filename)


@router.get(
    "",
    response_model=list[VideoResponse],
    summary="Video feed",
    description="Newest videos first, filtered by category and/or search text.",
)
def list_videos(
    session: SessionDep,
    category: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=catalog.MAX_PAGE_SIZE),
) -> list[VideoResponse]:
    """Browse the feed."""
    videos = catalog.list_feed(session, category=category, search=search, page=page, limit=limit)
    return [VideoResponse.from_owned(owned) for owned in videos]


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload video",
    description="Upload a video with optional thumbnail and caption file (multipart form).",
)
def upload_video(
    user: CurrentUserDep,
    session: SessionDep,
    storage: StorageDep,
    video: UploadFile | None = File(None),
    thumbnail: UploadFile | None = File(None),
    caption: UploadFile | None = File(None),
    title: str | None = Form(None),
    description: str | None = Form(None),
    category: str | None = Form(None),
    tags: str | None = Form(None),
    has_sign_language: bool = Form(False),
    duration: int = Form(0, ge=0),
) -> UploadResponse:
    """Upload a video."""
    record = catalog.upload_video(
        session,
        storage,
        user.user_id,
        video=_upload(video),
        title=title,
        description=description,
        category=category,
        tags=tags,
        has_sign_language=has_sign_language,
        duration=duration,
        thumbnail=_upload(thumbnail),
        caption=_upload(caption),
    )
    return UploadResponse(id=record.id, message="Video uploaded successfully")


@router.get(
    "/user/{user_id}",
    response_model=list[VideoResponse],
    summary="Videos by user",
)
def list_user_videos(user_id: str, session: SessionDep) -> list[VideoResponse]:
    """All videos uploaded by a user, newest first."""
    return [VideoResponse.from_owned(owned) for owned in catalog.list_by_user(session, user_id)]


@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    summary="Get video",
    description="Get a video for playback. Each request counts as one view.",
)
def get_video(video_id: str, session: SessionDep) -> VideoResponse:
    """Get a video and record a view."""
    return VideoResponse.from_owned(catalog.get_video(session, video_id))


@router.post(
    "/{video_id}/like",
    response_model=ReactionResponse,
    summary="Like or dislike",
    description="Toggle a like or dislike; returns the resulting state and counts.",
)
def react(
    video_id: str,
    request: ReactionRequest,
    user: CurrentUserDep,
    session: SessionDep,
) -> ReactionResponse:
    """Toggle the caller's reaction on a video."""
    outcome = ledger.react(session, user.user_id, video_id, request.type or "")
    return ReactionResponse(
        message=outcome.message,
        status=outcome.status.value if outcome.status else None,
        likes=outcome.likes,
        dislikes=outcome.dislikes,
    )


@router.get(
    "/{video_id}/like-status",
    response_model=ReactionStatusResponse,
    summary="Reaction status",
)
def like_status(
    video_id: str,
    user: CurrentUserDep,
    session: SessionDep,
) -> ReactionStatusResponse:
    """The caller's current reaction on a video."""
    status = ledger.get_status(session, user.user_id, video_id)
    return ReactionStatusResponse(status=status.value if status else None)


@router.delete(
    "/{video_id}",
    response_model=MessageResponse,
    summary="Delete video",
    description="Delete a video owned by the caller, with its comments and reactions.",
)
def delete_video(
    video_id: str,
    user: CurrentUserDep,
    session: SessionDep,
    storage: StorageDep,
) -> MessageResponse:
    """Delete one of the caller's videos."""
    ledger.delete_video(session, video_id, user.user_id, storage)
    return MessageResponse(message="Deleted")

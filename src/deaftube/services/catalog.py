"""Video catalog: uploads, the browsing feed and single-video playback data."""

from typing import NamedTuple

from sqlalchemy import Select, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from deaftube.config import settings
from deaftube.db.models import UserModel, VideoModel
from deaftube.db.session import atomic
from deaftube.domain.enums import BlobCategory
from deaftube.logging import get_logger
from deaftube.services import ledger
from deaftube.services.errors import NotFoundError, StorageFailureError, ValidationError
from deaftube.services.storage import StorageService, StoredBlob, Upload

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


class OwnedVideo(NamedTuple):
    """A video with its owner's display fields."""

    video: VideoModel
    username: str
    avatar: str | None
    subscribers: int


def _owned_videos() -> Select:
    return select(
        VideoModel, UserModel.username, UserModel.avatar, UserModel.subscribers
    ).join(UserModel, VideoModel.user_id == UserModel.id)


def list_feed(
    session: Session,
    category: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int | None = None,
) -> list[OwnedVideo]:
    """Newest videos first, optionally filtered.

    Args:
        session: Database session.
        category: Exact category; None, "" and "All" disable the filter.
        search: Case-insensitive substring of title, description or tags.
        page: 1-based page number.
        limit: Page size, defaults to settings.feed_page_size.
    """
    limit = max(1, min(limit or settings.feed_page_size, MAX_PAGE_SIZE))
    page = max(1, page)

    query = _owned_videos()
    if category and category != "All":
        query = query.where(VideoModel.category == category)
    if search:
        query = query.where(
            or_(
                VideoModel.title.icontains(search, autoescape=True),
                VideoModel.description.icontains(search, autoescape=True),
                VideoModel.tags.icontains(search, autoescape=True),
            )
        )
    query = (
        query.order_by(VideoModel.created_at.desc(), VideoModel.id)
        .limit(limit)
        .offset((page - 1) * limit)
    )

    return [OwnedVideo(*row) for row in session.execute(query).all()]


def list_by_user(session: Session, user_id: str) -> list[OwnedVideo]:
    """All of a user's videos, newest first."""
    rows = session.execute(
        _owned_videos()
        .where(VideoModel.user_id == user_id)
        .order_by(VideoModel.created_at.desc(), VideoModel.id)
    ).all()
    return [OwnedVideo(*row) for row in rows]


def get_video(session: Session, video_id: str) -> OwnedVideo:
    """Fetch a video for playback. Every call counts as one view.

    Raises:
        NotFoundError: If the video does not exist.
    """
    if not ledger.record_view(session, video_id):
        raise NotFoundError("Video not found")

    row = session.execute(_owned_videos().where(VideoModel.id == video_id)).one_or_none()
    if row is None:
        raise NotFoundError("Video not found")
    return OwnedVideo(*row)


def upload_video(
    session: Session,
    storage: StorageService,
    owner_id: str,
    video: Upload | None,
    title: str | None,
    description: str | None = None,
    category: str | None = None,
    tags: str | None = None,
    has_sign_language: bool = False,
    duration: int = 0,
    thumbnail: Upload | None = None,
    caption: Upload | None = None,
) -> VideoModel:
    """Store the uploaded files and create the video record.

    Files already written are removed again if a later file or the insert fails.

    Raises:
        ValidationError: If the video file or title is missing, or the video is too large.
    """
    if video is None:
        raise ValidationError("Video file required")
    if not title:
        raise ValidationError("Title required")

    stored: list[StoredBlob] = []
    try:
        stored.append(storage.store(video.fileobj, video.filename, BlobCategory.VIDEO))
        thumbnail_blob = caption_blob = None
        if thumbnail is not None:
            thumbnail_blob = storage.store(
                thumbnail.fileobj, thumbnail.filename, BlobCategory.THUMBNAIL
            )
            stored.append(thumbnail_blob)
        if caption is not None:
            caption_blob = storage.store(caption.fileobj, caption.filename, BlobCategory.CAPTION)
            stored.append(caption_blob)

        record = VideoModel(
            user_id=owner_id,
            title=title,
            description=description or "",
            filename=stored[0].filename,
            thumbnail=thumbnail_blob.filename if thumbnail_blob else None,
            caption_file=caption_blob.filename if caption_blob else None,
            category=category or settings.default_category,
            tags=tags or "",
            has_sign_language=has_sign_language,
            duration=duration,
        )
        with atomic(session):
            session.add(record)
    except (ValidationError, StorageFailureError, SQLAlchemyError):
        for blob in stored:
            storage.delete(blob.filename, blob.category)
        raise

    logger.info(
        "video_uploaded",
        video_id=record.id,
        user_id=owner_id,
        file_size=stored[0].file_size_bytes,
        has_thumbnail=record.thumbnail is not None,
        has_captions=record.caption_file is not None,
    )
    return record

"""Comment endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel

from deaftube.api.deps import CurrentUserDep, SessionDep
from deaftube.api.routes.users import MessageResponse
from deaftube.services import ledger
from deaftube.services.ledger import AuthoredComment

router = APIRouter(prefix="/comments", tags=["Comments"])


class CommentRequest(BaseModel):
    """Request to post a comment."""

    content: str | None = None


class CommentResponse(BaseModel):
    """Comment joined with its author's display fields."""

    id: str
    video_id: str
    user_id: str
    content: str
    likes: int
    created_at: str | None = None
    username: str
    avatar: str | None = None

    @classmethod
    def from_authored(cls, authored: AuthoredComment) -> "CommentResponse":
        comment = authored.comment
        return cls(
            id=comment.id,
            video_id=comment.video_id,
            user_id=comment.user_id,
            content=comment.content,
            likes=comment.likes,
            created_at=comment.created_at.isoformat() if comment.created_at else None,
            username=authored.username,
            avatar=authored.avatar,
        )


@router.get("/{video_id}", response_model=list[CommentResponse], summary="List comments")
def list_comments(video_id: str, session: SessionDep) -> list[CommentResponse]:
    """Comments on a video, newest first."""
    return [CommentResponse.from_authored(c) for c in ledger.list_comments(session, video_id)]


@router.post("/{video_id}", response_model=CommentResponse, summary="Post comment")
def post_comment(
    video_id: str,
    request: CommentRequest,
    user: CurrentUserDep,
    session: SessionDep,
) -> CommentResponse:
    """Comment on a video."""
    authored = ledger.post_comment(session, video_id, user.user_id, request.content)
    return CommentResponse.from_authored(authored)


@router.delete("/{comment_id}", response_model=MessageResponse, summary="Delete comment")
def delete_comment(
    comment_id: str,
    user: CurrentUserDep,
    session: SessionDep,
) -> MessageResponse:
    """Delete one of the caller's comments."""
    ledger.delete_comment(session, comment_id, user.user_id)
    return MessageResponse(message="Deleted")

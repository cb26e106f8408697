"""User profile and subscription endpoints."""

from fastapi import APIRouter, File, Form, UploadFile
from pydantic import BaseModel

from deaftube.api.deps import CurrentUserDep, SessionDep, StorageDep
from deaftube.db.models import UserModel
from deaftube.services import accounts, ledger
from deaftube.services.storage import Upload

router = APIRouter(prefix="/users", tags=["Users"])


class UserResponse(BaseModel):
    """Public profile of a user."""

    id: str
    username: str
    avatar: str | None = None
    bio: str
    is_deaf: bool
    sign_language: str
    subscribers: int
    created_at: str | None = None

    @classmethod
    def from_model(cls, user: UserModel) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            avatar=user.avatar,
            bio=user.bio or "",
            is_deaf=user.is_deaf,
            sign_language=user.sign_language,
            subscribers=user.subscribers,
            created_at=user.created_at.isoformat() if user.created_at else None,
        )


class SubscriptionResponse(BaseModel):
    """Whether the caller is subscribed to a channel."""

    subscribed: bool


class MessageResponse(BaseModel):
    """Human-readable outcome of a mutation."""

    message: str


@router.put(
    "/profile",
    response_model=MessageResponse,
    summary="Update profile",
    description="Update the caller's bio, sign language and (optionally) avatar.",
)
def update_profile(
    user: CurrentUserDep,
    session: SessionDep,
    storage: StorageDep,
    bio: str | None = Form(None),
    sign_language: str | None = Form(None),
    avatar: UploadFile | None = File(None),
) -> MessageResponse:
    """Update the caller's profile."""
    upload = Upload(avatar.file, avatar.filename) if avatar and avatar.filename else None
    accounts.update_profile(
        session,
        user.user_id,
        bio=bio,
        sign_language=sign_language,
        avatar=upload,
        storage=storage,
    )
    return MessageResponse(message="Profile updated")


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
    description="Get a user's public profile.",
)
def get_user(user_id: str, session: SessionDep) -> UserResponse:
    """Get a user's public profile."""
    return UserResponse.from_model(accounts.get_user(session, user_id))


@router.post(
    "/{user_id}/subscribe",
    response_model=SubscriptionResponse,
    summary="Toggle subscription",
    description="Subscribe to a channel, or unsubscribe if already subscribed.",
)
def toggle_subscription(
    user_id: str,
    user: CurrentUserDep,
    session: SessionDep,
) -> SubscriptionResponse:
    """Subscribe to or unsubscribe from a channel."""
    subscribed = ledger.toggle_subscription(session, user.user_id, user_id)
    return SubscriptionResponse(subscribed=subscribed)


@router.get(
    "/{user_id}/subscription-status",
    response_model=SubscriptionResponse,
    summary="Subscription status",
)
def subscription_status(
    user_id: str,
    user: CurrentUserDep,
    session: SessionDep,
) -> SubscriptionResponse:
    """Whether the caller is subscribed to a channel."""
    return SubscriptionResponse(
        subscribed=ledger.subscription_status(session, user.user_id, user_id)
    )

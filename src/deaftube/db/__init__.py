"""Database layer."""

from deaftube.db.models import (
    Base,
    CommentModel,
    ReactionModel,
    SubscriptionModel,
    UserModel,
    VideoModel,
    WatchHistoryModel,
)
from deaftube.db.session import atomic, get_session, get_session_context, init_db

__all__ = [
    "Base",
    "atomic",
    "get_session",
    "get_session_context",
    "init_db",
    # Models
    "CommentModel",
    "ReactionModel",
    "SubscriptionModel",
    "UserModel",
    "VideoModel",
    "WatchHistoryModel",
]

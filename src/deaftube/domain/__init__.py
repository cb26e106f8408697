"""Domain models and enumerations."""

from deaftube.domain.enums import BlobCategory, ReactionAction, ReactionKind
from deaftube.domain.models import CounterDrift, DeletedVideo, ReactionOutcome

__all__ = [
    "BlobCategory",
    "CounterDrift",
    "DeletedVideo",
    "ReactionAction",
    "ReactionKind",
    "ReactionOutcome",
]

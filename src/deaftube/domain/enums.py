"""Domain enumerations."""

from enum import StrEnum


class ReactionKind(StrEnum):
    """Kind of reaction a user leaves on a video."""

    LIKE = "like"
    DISLIKE = "dislike"

    @property
    def opposite(self) -> "ReactionKind":
        return ReactionKind.DISLIKE if self is ReactionKind.LIKE else ReactionKind.LIKE

    @property
    def counter(self) -> str:
        """Name of the video column holding this kind's count."""
        return f"{self.value}s"


class ReactionAction(StrEnum):
    """What a reaction toggle did to the (user, video) pair."""

    ADDED = "added"  # none -> kind
    REMOVED = "removed"  # kind -> none
    SWITCHED = "switched"  # opposite -> kind
    NOOP = "noop"  # video does not exist

    @property
    def message(self) -> str:
        return {
            ReactionAction.ADDED: "Success",
            ReactionAction.REMOVED: "Removed",
            ReactionAction.SWITCHED: "Switched",
            ReactionAction.NOOP: "Video not found",
        }[self]


class BlobCategory(StrEnum):
    """Logical category of an uploaded file."""

    VIDEO = "video"
    THUMBNAIL = "thumbnail"
    CAPTION = "caption"
    AVATAR = "avatar"

    @property
    def directory(self) -> str:
        return f"{self.value}s"

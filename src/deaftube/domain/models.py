"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass

from deaftube.domain.enums import ReactionAction, ReactionKind


@dataclass(frozen=True)
class ReactionOutcome:
    """Authoritative result of a reaction toggle."""

    video_id: str
    action: ReactionAction
    status: ReactionKind | None
    likes: int
    dislikes: int

    @property
    def message(self) -> str:
        return self.action.message


@dataclass(frozen=True)
class CounterDrift:
    """A denormalized counter that disagrees with its ledger rows."""

    table: str
    row_id: str
    column: str
    stored: int
    actual: int

    @property
    def delta(self) -> int:
        return self.stored - self.actual


@dataclass(frozen=True)
class DeletedVideo:
    """What was removed along with a video."""

    video_id: str
    reactions: int
    comments: int
    blobs: list[str]

"""Engagement ledger: reactions, subscriptions, views and comments.

Every stored counter here is denormalized from rows in another table:

- ``videos.likes`` / ``videos.dislikes`` count ``likes`` rows of each type
- ``users.subscribers`` counts ``subscriptions`` rows naming the user as channel

Each toggle writes the ledger row and adjusts the counter inside one
transaction. The row write is a compare-and-set (conditional UPDATE/DELETE
checked by rowcount, INSERT guarded by the pair's unique constraint), and the
counter only moves when that write hit exactly one row. A toggle that loses a
race to a concurrent request is rolled back and re-evaluated from fresh state.
"""

from typing import NamedTuple

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from deaftube.config import settings
from deaftube.db.models import (
    CommentModel,
    ReactionModel,
    SubscriptionModel,
    UserModel,
    VideoModel,
    WatchHistoryModel,
)
from deaftube.db.session import atomic
from deaftube.domain.enums import BlobCategory, ReactionAction, ReactionKind
from deaftube.domain.models import DeletedVideo, ReactionOutcome
from deaftube.logging import get_logger
from deaftube.services.errors import (
    ConflictError,
    LedgerContentionError,
    NotFoundError,
    NotFoundOrUnauthorizedError,
    ValidationError,
)
from deaftube.services.storage import StorageService

logger = get_logger(__name__)

# DML here never touches loaded ORM instances
_NO_SYNC = {"synchronize_session": False}


class _LostRace(Exception):
    """The row a toggle read changed before the toggle could write it."""


class AuthoredComment(NamedTuple):
    """A comment with its author's display fields."""

    comment: CommentModel
    username: str
    avatar: str | None


# =============================================================================
# Reactions
# =============================================================================


def _adjust_video_counters(
    session: Session, video_id: str, deltas: dict[ReactionKind, int]
) -> None:
    values = {
        kind.counter: getattr(VideoModel, kind.counter) + delta for kind, delta in deltas.items()
    }
    session.execute(
        update(VideoModel).where(VideoModel.id == video_id).values(**values),
        execution_options=_NO_SYNC,
    )


def _apply_reaction(
    session: Session,
    user_id: str,
    video_id: str,
    kind: ReactionKind,
) -> ReactionOutcome:
    """One attempt at the reaction state machine, inside an open transaction."""
    # FOR UPDATE queues toggles per video on backends that lock rows (a no-op on
    # SQLite); elsewhere the rowcount checks below and the retry loop catch races
    video_exists = session.execute(
        select(VideoModel.id).where(VideoModel.id == video_id).with_for_update()
    ).scalar_one_or_none()
    if video_exists is None:
        return ReactionOutcome(
            video_id=video_id,
            action=ReactionAction.NOOP,
            status=None,
            likes=0,
            dislikes=0,
        )

    existing = session.execute(
        select(ReactionModel.id, ReactionModel.type)
        .where(ReactionModel.user_id == user_id, ReactionModel.video_id == video_id)
        .with_for_update()
    ).one_or_none()

    if existing is None:
        # A concurrent insert for the same pair raises IntegrityError here
        session.execute(
            insert(ReactionModel).values(user_id=user_id, video_id=video_id, type=kind.value)
        )
        action, status = ReactionAction.ADDED, kind
        deltas = {kind: 1}
    elif existing.type == kind.value:
        result = session.execute(
            delete(ReactionModel).where(
                ReactionModel.id == existing.id,
                ReactionModel.type == kind.value,
            ),
            execution_options=_NO_SYNC,
        )
        if result.rowcount != 1:
            raise _LostRace()
        action, status = ReactionAction.REMOVED, None
        deltas = {kind: -1}
    else:
        result = session.execute(
            update(ReactionModel)
            .where(
                ReactionModel.id == existing.id,
                ReactionModel.type == kind.opposite.value,
            )
            .values(type=kind.value),
            execution_options=_NO_SYNC,
        )
        if result.rowcount != 1:
            raise _LostRace()
        action, status = ReactionAction.SWITCHED, kind
        deltas = {kind: 1, kind.opposite: -1}

    _adjust_video_counters(session, video_id, deltas)

    counts = session.execute(
        select(VideoModel.likes, VideoModel.dislikes).where(VideoModel.id == video_id)
    ).one()

    return ReactionOutcome(
        video_id=video_id,
        action=action,
        status=status,
        likes=counts.likes,
        dislikes=counts.dislikes,
    )


def react(
    session: Session,
    user_id: str,
    video_id: str,
    kind: ReactionKind | str,
) -> ReactionOutcome:
    """Toggle a user's like or dislike on a video.

    ==========  =========  ==========  ===============================
    current     requested  new state   counters
    ==========  =========  ==========  ===============================
    none        like       liked       likes +1
    none        dislike    disliked    dislikes +1
    liked       like       none        likes -1
    disliked    dislike    none        dislikes -1
    liked       dislike    disliked    likes -1, dislikes +1
    disliked    like       liked       dislikes -1, likes +1
    ==========  =========  ==========  ===============================

    A video id that does not exist is a no-op (nothing is written).

    Args:
        session: Database session.
        user_id: Reacting user.
        video_id: Target video.
        kind: "like" or "dislike".

    Returns:
        The post-transition state and the video's resulting counts.

    Raises:
        ValidationError: If kind is not like/dislike.
        LedgerContentionError: If every attempt lost to a concurrent toggle.
    """
    try:
        kind = ReactionKind(kind)
    except ValueError:
        raise ValidationError("Reaction type must be 'like' or 'dislike'") from None

    for attempt in range(1, settings.ledger_max_attempts + 1):
        try:
            with atomic(session):
                outcome = _apply_reaction(session, user_id, video_id, kind)
        except (_LostRace, IntegrityError):
            logger.info(
                "reaction_toggle_retry",
                user_id=user_id,
                video_id=video_id,
                attempt=attempt,
            )
            continue

        logger.info(
            "reaction_toggled",
            user_id=user_id,
            video_id=video_id,
            kind=kind.value,
            action=outcome.action.value,
            likes=outcome.likes,
            dislikes=outcome.dislikes,
        )
        return outcome

    logger.warning("reaction_toggle_contention", user_id=user_id, video_id=video_id)
    raise LedgerContentionError()


def get_status(session: Session, user_id: str, video_id: str) -> ReactionKind | None:
    """Current reaction of a user on a video, or None."""
    kind = session.execute(
        select(ReactionModel.type).where(
            ReactionModel.user_id == user_id,
            ReactionModel.video_id == video_id,
        )
    ).scalar_one_or_none()
    return ReactionKind(kind) if kind else None


# =============================================================================
# Subscriptions
# =============================================================================


def _apply_subscription_toggle(session: Session, subscriber_id: str, channel_id: str) -> bool:
    channel_exists = session.execute(
        select(UserModel.id).where(UserModel.id == channel_id).with_for_update()
    ).scalar_one_or_none()
    if channel_exists is None:
        raise NotFoundError("User not found")

    removed = session.execute(
        delete(SubscriptionModel).where(
            SubscriptionModel.subscriber_id == subscriber_id,
            SubscriptionModel.channel_id == channel_id,
        ),
        execution_options=_NO_SYNC,
    ).rowcount

    if removed:
        delta, subscribed = -removed, False
    else:
        session.execute(
            insert(SubscriptionModel).values(subscriber_id=subscriber_id, channel_id=channel_id)
        )
        delta, subscribed = 1, True

    session.execute(
        update(UserModel)
        .where(UserModel.id == channel_id)
        .values(subscribers=UserModel.subscribers + delta),
        execution_options=_NO_SYNC,
    )
    return subscribed


def toggle_subscription(session: Session, subscriber_id: str, channel_id: str) -> bool:
    """Subscribe to a channel, or unsubscribe if already subscribed.

    Returns:
        True if the subscriber is now subscribed, False if unsubscribed.

    Raises:
        ConflictError: If a user tries to subscribe to themselves.
        NotFoundError: If the channel does not exist.
        LedgerContentionError: If every attempt lost to a concurrent toggle.
    """
    if subscriber_id == channel_id:
        raise ConflictError("Cannot subscribe to yourself")

    for attempt in range(1, settings.ledger_max_attempts + 1):
        try:
            with atomic(session):
                subscribed = _apply_subscription_toggle(session, subscriber_id, channel_id)
        except IntegrityError:
            logger.info(
                "subscription_toggle_retry",
                subscriber_id=subscriber_id,
                channel_id=channel_id,
                attempt=attempt,
            )
            continue

        logger.info(
            "subscription_toggled",
            subscriber_id=subscriber_id,
            channel_id=channel_id,
            subscribed=subscribed,
        )
        return subscribed

    logger.warning(
        "subscription_toggle_contention",
        subscriber_id=subscriber_id,
        channel_id=channel_id,
    )
    raise LedgerContentionError()


def subscription_status(session: Session, subscriber_id: str, channel_id: str) -> bool:
    """Whether subscriber_id is subscribed to channel_id."""
    found = session.execute(
        select(SubscriptionModel.id).where(
            SubscriptionModel.subscriber_id == subscriber_id,
            SubscriptionModel.channel_id == channel_id,
        )
    ).scalar_one_or_none()
    return found is not None


# =============================================================================
# Views
# =============================================================================


def record_view(session: Session, video_id: str) -> bool:
    """Count one view of a video. Every fetch counts; there is no dedup.

    Returns:
        False if the video does not exist.
    """
    with atomic(session):
        counted = session.execute(
            update(VideoModel).where(VideoModel.id == video_id).values(views=VideoModel.views + 1),
            execution_options=_NO_SYNC,
        ).rowcount
    return counted == 1


# =============================================================================
# Comments
# =============================================================================


def _authored_comments():
    return select(CommentModel, UserModel.username, UserModel.avatar).join(
        UserModel, CommentModel.user_id == UserModel.id
    )


def list_comments(session: Session, video_id: str) -> list[AuthoredComment]:
    """Comments on a video, newest first."""
    rows = session.execute(
        _authored_comments()
        .where(CommentModel.video_id == video_id)
        .order_by(CommentModel.created_at.desc())
    ).all()
    return [AuthoredComment(*row) for row in rows]


def post_comment(
    session: Session,
    video_id: str,
    user_id: str,
    content: str | None,
) -> AuthoredComment:
    """Add a comment and return it with the author's display fields.

    Raises:
        ValidationError: If content is empty.
        NotFoundError: If the video does not exist.
    """
    if not content or not content.strip():
        raise ValidationError("Comment content required")

    video_exists = session.execute(
        select(VideoModel.id).where(VideoModel.id == video_id)
    ).scalar_one_or_none()
    if video_exists is None:
        raise NotFoundError("Video not found")

    comment = CommentModel(video_id=video_id, user_id=user_id, content=content)
    with atomic(session):
        session.add(comment)

    row = session.execute(_authored_comments().where(CommentModel.id == comment.id)).one()
    logger.info("comment_posted", comment_id=comment.id, video_id=video_id, user_id=user_id)
    return AuthoredComment(*row)


def delete_comment(session: Session, comment_id: str, requester_id: str) -> None:
    """Delete a comment written by requester_id.

    Raises:
        NotFoundOrUnauthorizedError: If no such comment was written by requester_id.
    """
    with atomic(session):
        removed = session.execute(
            delete(CommentModel).where(
                CommentModel.id == comment_id,
                CommentModel.user_id == requester_id,
            ),
            execution_options=_NO_SYNC,
        ).rowcount

    if not removed:
        raise NotFoundOrUnauthorizedError()

    logger.info("comment_deleted", comment_id=comment_id, user_id=requester_id)


# =============================================================================
# Video deletion
# =============================================================================


def delete_video(
    session: Session,
    video_id: str,
    requester_id: str,
    storage: StorageService | None = None,
) -> DeletedVideo:
    """Delete a video owned by requester_id together with everything hanging off it.

    Reactions, comments and watch history for the video go in the same
    transaction as the video row; stored files are removed after commit.

    Raises:
        NotFoundOrUnauthorizedError: If no such video is owned by requester_id.
    """
    with atomic(session):
        video = session.execute(
            select(VideoModel)
            .where(VideoModel.id == video_id, VideoModel.user_id == requester_id)
            .with_for_update()
        ).scalar_one_or_none()
        if video is None:
            raise NotFoundOrUnauthorizedError()

        reactions = session.execute(
            delete(ReactionModel).where(ReactionModel.video_id == video_id),
            execution_options=_NO_SYNC,
        ).rowcount
        comments = session.execute(
            delete(CommentModel).where(CommentModel.video_id == video_id),
            execution_options=_NO_SYNC,
        ).rowcount
        session.execute(
            delete(WatchHistoryModel).where(WatchHistoryModel.video_id == video_id),
            execution_options=_NO_SYNC,
        )
        blobs = [
            (video.filename, BlobCategory.VIDEO),
            (video.thumbnail, BlobCategory.THUMBNAIL),
            (video.caption_file, BlobCategory.CAPTION),
        ]
        session.delete(video)

    removed_blobs = []
    if storage is not None:
        removed_blobs = [name for name, category in blobs if storage.delete(name, category)]

    logger.info(
        "video_deleted",
        video_id=video_id,
        user_id=requester_id,
        reactions=reactions,
        comments=comments,
        blobs=len(removed_blobs),
    )
    return DeletedVideo(
        video_id=video_id,
        reactions=reactions,
        comments=comments,
        blobs=removed_blobs,
    )

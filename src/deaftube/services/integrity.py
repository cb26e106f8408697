"""Consistency checks for the engagement ledger's denormalized counters."""

from collections import Counter

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from deaftube.db.models import ReactionModel, SubscriptionModel, UserModel, VideoModel
from deaftube.db.session import atomic
from deaftube.domain.enums import ReactionKind
from deaftube.domain.models import CounterDrift
from deaftube.logging import get_logger

logger = get_logger(__name__)


def count_reactions(session: Session, video_id: str, kind: ReactionKind) -> int:
    """Number of reaction rows of one kind on a video."""
    return session.execute(
        select(func.count(ReactionModel.id)).where(
            ReactionModel.video_id == video_id,
            ReactionModel.type == kind.value,
        )
    ).scalar_one()


def count_subscribers(session: Session, channel_id: str) -> int:
    """Number of subscription rows naming a channel."""
    return session.execute(
        select(func.count(SubscriptionModel.id)).where(SubscriptionModel.channel_id == channel_id)
    ).scalar_one()


def _reaction_totals(session: Session) -> Counter[tuple[str, str]]:
    rows = session.execute(
        select(ReactionModel.video_id, ReactionModel.type, func.count(ReactionModel.id)).group_by(
            ReactionModel.video_id, ReactionModel.type
        )
    ).all()
    return Counter({(video_id, kind): total for video_id, kind, total in rows})


def _subscriber_totals(session: Session) -> Counter[str]:
    rows = session.execute(
        select(SubscriptionModel.channel_id, func.count(SubscriptionModel.id)).group_by(
            SubscriptionModel.channel_id
        )
    ).all()
    return Counter({channel_id: total for channel_id, total in rows})


def find_drift(session: Session) -> list[CounterDrift]:
    """Compare every stored counter against an aggregate over its rows.

    Returns:
        One CounterDrift per counter whose stored value differs, empty when
        the ledger is consistent.
    """
    drift: list[CounterDrift] = []

    reactions = _reaction_totals(session)
    videos = session.execute(select(VideoModel.id, VideoModel.likes, VideoModel.dislikes)).all()
    for video in videos:
        for kind in ReactionKind:
            stored = getattr(video, kind.counter)
            actual = reactions[(video.id, kind.value)]
            if stored != actual:
                drift.append(
                    CounterDrift(
                        table="videos",
                        row_id=video.id,
                        column=kind.counter,
                        stored=stored,
                        actual=actual,
                    )
                )

    subscribers = _subscriber_totals(session)
    users = session.execute(select(UserModel.id, UserModel.subscribers)).all()
    for user in users:
        actual = subscribers[user.id]
        if user.subscribers != actual:
            drift.append(
                CounterDrift(
                    table="users",
                    row_id=user.id,
                    column="subscribers",
                    stored=user.subscribers,
                    actual=actual,
                )
            )

    if drift:
        logger.warning("ledger_drift_detected", counters=len(drift))
    return drift


def repair_counters(session: Session) -> list[CounterDrift]:
    """Rewrite every drifted counter from its rows in a single transaction.

    Returns:
        The drift that was corrected.
    """
    models = {"videos": VideoModel, "users": UserModel}

    with atomic(session):
        drift = find_drift(session)
        for item in drift:
            model = models[item.table]
            session.execute(
                update(model).where(model.id == item.row_id).values({item.column: item.actual}),
                execution_options={"synchronize_session": False},
            )

    logger.info("ledger_counters_repaired", counters=len(drift))
    return drift

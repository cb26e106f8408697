"""Tests for the engagement ledger."""

import io
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import select

from deaftube.db.models import CommentModel, ReactionModel, SubscriptionModel, UserModel, VideoModel
from deaftube.db.session import SessionLocal
from deaftube.domain.enums import BlobCategory, ReactionAction, ReactionKind
from deaftube.services import ledger
from deaftube.services.errors import (
    ConflictError,
    LedgerContentionError,
    NotFoundError,
    NotFoundOrUnauthorizedError,
    ValidationError,
)
from deaftube.services.integrity import count_reactions, count_subscribers, find_drift


def _counts(session, video_id: str) -> tuple[int, int]:
    row = session.execute(
        select(VideoModel.likes, VideoModel.dislikes).where(VideoModel.id == video_id)
    ).one()
    return row.likes, row.dislikes


def _views(session, video_id: str) -> int:
    return session.execute(select(VideoModel.views).where(VideoModel.id == video_id)).scalar_one()


def _subscribers(session, user_id: str) -> int:
    return session.execute(
        select(UserModel.subscribers).where(UserModel.id == user_id)
    ).scalar_one()


def _assert_reaction_invariant(session, video_id: str) -> None:
    likes, dislikes = _counts(session, video_id)
    assert likes == count_reactions(session, video_id, ReactionKind.LIKE)
    assert dislikes == count_reactions(session, video_id, ReactionKind.DISLIKE)


@pytest.fixture
def alice(make_user) -> str:
    return make_user("alice")


@pytest.fixture
def bob(make_user) -> str:
    return make_user("bob")


@pytest.fixture
def video(make_video, alice) -> str:
    return make_video(alice)


class TestReact:
    """Like/dislike state machine."""

    @pytest.mark.parametrize(
        "first, second, action, state, counts",
        [
            (None, "like", ReactionAction.ADDED, "like", (1, 0)),
            (None, "dislike", ReactionAction.ADDED, "dislike", (0, 1)),
            ("like", "like", ReactionAction.REMOVED, None, (0, 0)),
            ("dislike", "dislike", ReactionAction.REMOVED, None, (0, 0)),
            ("like", "dislike", ReactionAction.SWITCHED, "dislike", (0, 1)),
            ("dislike", "like", ReactionAction.SWITCHED, "like", (1, 0)),
        ],
    )
    def test_transition_table(self, session, bob, video, first, second, action, state, counts):
        if first:
            ledger.react(session, bob, video, first)

        outcome = ledger.react(session, bob, video, second)

        assert outcome.action is action
        assert outcome.status == state
        assert (outcome.likes, outcome.dislikes) == counts
        assert _counts(session, video) == counts
        assert ledger.get_status(session, bob, video) == state
        _assert_reaction_invariant(session, video)

    def test_toggle_twice_restores_counters(self, session, bob, video) -> None:
        before = _counts(session, video)

        ledger.react(session, bob, video, ReactionKind.DISLIKE)
        outcome = ledger.react(session, bob, video, ReactionKind.DISLIKE)

        assert outcome.status is None
        assert _counts(session, video) == before
        assert session.execute(select(ReactionModel)).first() is None

    def test_switch_moves_each_counter_by_one(self, session, alice, bob, video) -> None:
        ledger.react(session, alice, video, "like")
        ledger.react(session, bob, video, "like")

        outcome = ledger.react(session, bob, video, "dislike")

        assert (outcome.likes, outcome.dislikes) == (1, 1)
        _assert_reaction_invariant(session, video)

    def test_switch_keeps_a_single_row(self, session, bob, video) -> None:
        ledger.react(session, bob, video, "like")
        ledger.react(session, bob, video, "dislike")

        rows = session.execute(select(ReactionModel)).scalars().all()
        assert len(rows) == 1
        assert rows[0].type == "dislike"

    def test_concrete_scenario(self, session, make_user, alice, video) -> None:
        """Two users liking, unliking, disliking and switching on one video."""
        a = make_user("a")
        b = make_user("b")

        assert ledger.react(session, a, video, "like").likes == 1
        assert ledger.get_status(session, a, video) is ReactionKind.LIKE

        assert ledger.react(session, a, video, "like").likes == 0
        assert ledger.get_status(session, a, video) is None

        assert ledger.react(session, a, video, "dislike").dislikes == 1
        assert ledger.get_status(session, a, video) is ReactionKind.DISLIKE

        assert ledger.react(session, b, video, "dislike").dislikes == 2

        outcome = ledger.react(session, a, video, "like")
        assert (outcome.likes, outcome.dislikes) == (1, 1)
        assert outcome.status is ReactionKind.LIKE
        _assert_reaction_invariant(session, video)

    def test_invariant_holds_after_every_call(self, session, make_user, video) -> None:
        users = [make_user(f"viewer{i}") for i in range(3)]
        sequence = ["like", "dislike", "dislike", "like", "like", "dislike", "like"]

        for i, kind in enumerate(sequence):
            ledger.react(session, users[i % len(users)], video, kind)
            _assert_reaction_invariant(session, video)

    def test_owner_may_react_to_own_video(self, session, alice, video) -> None:
        outcome = ledger.react(session, alice, video, "like")
        assert outcome.status is ReactionKind.LIKE

    def test_unknown_video_is_a_noop(self, session, bob) -> None:
        outcome = ledger.react(session, bob, "missing-video", "like")

        assert outcome.action is ReactionAction.NOOP
        assert outcome.status is None
        assert session.execute(select(ReactionModel)).first() is None

    def test_invalid_kind_rejected(self, session, bob, video) -> None:
        with pytest.raises(ValidationError) as excinfo:
            ledger.react(session, bob, video, "love")
        assert excinfo.value.__cause__ is None
        assert excinfo.value.__suppress_context__
        with pytest.raises(ValidationError):
            ledger.react(session, bob, video, "")

    def test_lost_race_is_retried(self, session, bob, video, monkeypatch) -> None:
        original = ledger._apply_reaction
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise ledger._LostRace()
            return original(*args, **kwargs)

        monkeypatch.setattr(ledger, "_apply_reaction", flaky)

        outcome = ledger.react(session, bob, video, "like")

        assert len(calls) == 2
        assert outcome.likes == 1
        _assert_reaction_invariant(session, video)

    def test_persistent_contention_gives_up(self, session, bob, video, monkeypatch) -> None:
        def always_lose(*args, **kwargs):
            raise ledger._LostRace()

        monkeypatch.setattr(ledger, "_apply_reaction", always_lose)

        with pytest.raises(LedgerContentionError):
            ledger.react(session, bob, video, "like")
        assert _counts(session, video) == (0, 0)


class TestConcurrentToggles:
    """Toggles from separate sessions racing on the same rows."""

    REACTION_WORKERS = 12
    SUBSCRIPTION_WORKERS = 6
    ROUNDS = 20

    def test_counters_match_rows_after_interleaved_toggles(
        self, session, make_user, make_video
    ) -> None:
        owner = make_user("owner")
        viewers = [make_user(f"viewer{i}") for i in range(4)]
        videos = [make_video(owner), make_video(owner, title="Fingerspelling drills")]
        reaction_pairs = [(user_id, video_id) for user_id in viewers[:2] for video_id in videos]
        subscription_pairs = [
            (viewers[2], owner),
            (viewers[3], owner),
            (viewers[2], viewers[3]),
        ]
        barrier = threading.Barrier(self.REACTION_WORKERS + self.SUBSCRIPTION_WORKERS)
        contended: list[int] = []

        def toggle_reactions(worker: int) -> None:
            own_session = SessionLocal()
            try:
                barrier.wait()
                for i in range(self.ROUNDS):
                    user_id, video_id = reaction_pairs[(worker + i) % len(reaction_pairs)]
                    kind = "dislike" if (worker + i) % 3 == 0 else "like"
                    try:
                        ledger.react(own_session, user_id, video_id, kind)
                    except LedgerContentionError:
                        contended.append(worker)
            finally:
                own_session.close()

        def toggle_subscriptions(worker: int) -> None:
            own_session = SessionLocal()
            try:
                barrier.wait()
                for i in range(self.ROUNDS):
                    subscriber_id, channel_id = subscription_pairs[
                        (worker + i) % len(subscription_pairs)
                    ]
                    try:
                        ledger.toggle_subscription(own_session, subscriber_id, channel_id)
                    except LedgerContentionError:
                        contended.append(worker)
            finally:
                own_session.close()

        with ThreadPoolExecutor(
            max_workers=self.REACTION_WORKERS + self.SUBSCRIPTION_WORKERS
        ) as pool:
            futures = [pool.submit(toggle_reactions, w) for w in range(self.REACTION_WORKERS)]
            futures += [
                pool.submit(toggle_subscriptions, w) for w in range(self.SUBSCRIPTION_WORKERS)
            ]
            for future in futures:
                future.result()

        session.expire_all()
        assert find_drift(session) == []
        for video_id in videos:
            _assert_reaction_invariant(session, video_id)
        for channel_id in (owner, viewers[3]):
            assert _subscribers(session, channel_id) == count_subscribers(session, channel_id)
            assert _subscribers(session, channel_id) >= 0
        total = (self.REACTION_WORKERS + self.SUBSCRIPTION_WORKERS) * self.ROUNDS
        assert len(contended) < total


class TestGetStatus:
    def test_no_reaction_is_none(self, session, bob, video) -> None:
        assert ledger.get_status(session, bob, video) is None

    def test_status_is_per_user(self, session, alice, bob, video) -> None:
        ledger.react(session, alice, video, "dislike")

        assert ledger.get_status(session, alice, video) is ReactionKind.DISLIKE
        assert ledger.get_status(session, bob, video) is None


class TestSubscriptions:
    def test_toggle_twice(self, session, alice, bob) -> None:
        assert ledger.toggle_subscription(session, bob, alice) is True
        assert _subscribers(session, alice) == 1
        assert ledger.subscription_status(session, bob, alice) is True

        assert ledger.toggle_subscription(session, bob, alice) is False
        assert _subscribers(session, alice) == 0
        assert ledger.subscription_status(session, bob, alice) is False

    def test_self_subscription_always_conflicts(self, session, alice, bob) -> None:
        with pytest.raises(ConflictError):
            ledger.toggle_subscription(session, alice, alice)

        ledger.toggle_subscription(session, bob, alice)
        with pytest.raises(ConflictError):
            ledger.toggle_subscription(session, alice, alice)

        assert _subscribers(session, alice) == 1

    def test_counter_matches_rows(self, session, make_user, alice) -> None:
        fans = [make_user(f"fan{i}") for i in range(4)]
        for fan in fans:
            ledger.toggle_subscription(session, fan, alice)
        ledger.toggle_subscription(session, fans[0], alice)

        assert _subscribers(session, alice) == 3
        assert count_subscribers(session, alice) == 3

    def test_subscription_is_directional(self, session, alice, bob) -> None:
        ledger.toggle_subscription(session, bob, alice)

        assert ledger.subscription_status(session, alice, bob) is False
        assert _subscribers(session, bob) == 0

    def test_unknown_channel(self, session, bob) -> None:
        with pytest.raises(NotFoundError):
            ledger.toggle_subscription(session, bob, "missing-user")
        assert session.execute(select(SubscriptionModel)).first() is None


class TestViews:
    def test_every_call_counts(self, session, alice, video) -> None:
        for _ in range(5):
            assert ledger.record_view(session, video) is True

        assert _views(session, video) == 5

    def test_unknown_video(self, session) -> None:
        assert ledger.record_view(session, "missing-video") is False


class TestComments:
    def test_post_returns_author_fields(self, session, bob, video) -> None:
        authored = ledger.post_comment(session, video, bob, "Great signing!")

        assert authored.comment.content == "Great signing!"
        assert authored.comment.user_id == bob
        assert authored.username == "bob"
        assert authored.avatar is None

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_content_rejected(self, session, bob, video, content) -> None:
        with pytest.raises(ValidationError):
            ledger.post_comment(session, video, bob, content)

    def test_comment_on_unknown_video(self, session, bob) -> None:
        with pytest.raises(NotFoundError):
            ledger.post_comment(session, "missing-video", bob, "hello")

    def test_list_comments(self, session, alice, bob, video) -> None:
        ledger.post_comment(session, video, alice, "first")
        ledger.post_comment(session, video, bob, "second")

        comments = ledger.list_comments(session, video)

        assert {c.comment.content for c in comments} == {"first", "second"}
        assert {c.username for c in comments} == {"alice", "bob"}

    def test_author_can_delete(self, session, bob, video) -> None:
        comment_id = ledger.post_comment(session, video, bob, "oops").comment.id

        ledger.delete_comment(session, comment_id, bob)

        assert session.get(CommentModel, comment_id) is None

    def test_other_user_cannot_delete(self, session, alice, bob, video) -> None:
        comment_id = ledger.post_comment(session, video, bob, "mine").comment.id

        with pytest.raises(NotFoundOrUnauthorizedError):
            ledger.delete_comment(session, comment_id, alice)

        assert session.get(CommentModel, comment_id) is not None

    def test_missing_comment_looks_the_same(self, session, alice) -> None:
        with pytest.raises(NotFoundOrUnauthorizedError) as exc_info:
            ledger.delete_comment(session, "missing-comment", alice)
        assert exc_info.value.message == "Not found or unauthorized"


class TestDeleteVideo:
    def test_owner_deletes_video_and_dependents(
        self, session, storage, make_video, alice, bob
    ) -> None:
        clip = storage.store(io.BytesIO(b"frames"), "clip.mp4", BlobCategory.VIDEO)
        thumb = storage.store(io.BytesIO(b"png"), "thumb.png", BlobCategory.THUMBNAIL)
        video_id = make_video(alice, filename=clip.filename, thumbnail=thumb.filename)
        ledger.react(session, bob, video_id, "like")
        ledger.post_comment(session, video_id, bob, "nice")

        deleted = ledger.delete_video(session, video_id, alice, storage)

        assert deleted.reactions == 1
        assert deleted.comments == 1
        assert sorted(deleted.blobs) == sorted([clip.filename, thumb.filename])
        assert session.get(VideoModel, video_id) is None
        assert session.execute(select(ReactionModel)).first() is None
        assert session.execute(select(CommentModel)).first() is None
        assert not clip.file_path.exists()
        assert not thumb.file_path.exists()

    def test_non_owner_cannot_delete(self, session, alice, bob, video) -> None:
        with pytest.raises(NotFoundOrUnauthorizedError):
            ledger.delete_video(session, video, bob)

        assert session.get(VideoModel, video) is not None

    def test_missing_video(self, session, alice) -> None:
        with pytest.raises(NotFoundOrUnauthorizedError):
            ledger.delete_video(session, "missing-video", alice)

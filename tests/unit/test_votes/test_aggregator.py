"""Unit tests for the vote aggregator."""

import threading
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor

import pytest

from stackrank.errors import AuthRequiredError, ConflictError, NotFoundError
from stackrank.observability.metrics import EngineMetrics
from stackrank.store.errors import VersionConflict
from stackrank.store.metrics import StoreMetrics
from stackrank.store.models import (
    AnswerRecord,
    QuestionRecord,
    TagRecord,
    VoteOutcome,
    VoteResult,
    VoteSnapshot,
)
from stackrank.store.store import SqliteStore
from stackrank.votes.aggregator import VoteAggregator
from tests.helpers.time import FIXED_NOW


ANSWER_ID = "a1"


@pytest.fixture
def store() -> Generator[SqliteStore]:
    """Create an in-memory store holding one question with one answer."""
    StoreMetrics.reset()
    store = SqliteStore(":memory:")
    store.connect()
    store.create_question(
        QuestionRecord(
            question_id="q1",
            title="How to sort?",
            text="Sorting question",
            tags=["python"],
            asked_at=FIXED_NOW,
            seq=1,
        ),
        [TagRecord(tag_id="python", name="python")],
    )
    store.create_answer(
        AnswerRecord(
            answer_id=ANSWER_ID,
            question_id="q1",
            text="Use sorted()",
            answered_at=FIXED_NOW,
            seq=2,
        )
    )
    yield store
    store.close()


@pytest.fixture
def metrics() -> EngineMetrics:
    """Create a fresh metrics instance."""
    EngineMetrics.reset()
    return EngineMetrics.get_instance()


@pytest.fixture
def aggregator(store: SqliteStore, metrics: EngineMetrics) -> VoteAggregator:
    """Create an aggregator tracking the stored answer."""
    aggregator = VoteAggregator(store, metrics=metrics)
    aggregator.register(ANSWER_ID)
    return aggregator


class AlwaysConflictingStore:
    """Store stub whose compare-and-swap never succeeds."""

    def __init__(self) -> None:
        self.attempts = 0
        self.version = 0

    def toggle_vote(self, answer_id: str, user_id: str, expected_version: int) -> VoteResult:
        self.attempts += 1
        self.version += 1
        raise VersionConflict(answer_id, expected_version, self.version)

    def get_vote_snapshot(self, answer_id: str) -> VoteSnapshot:
        return VoteSnapshot(answer_id=answer_id, version=self.version)


class TestVoteToggle:
    """Tests for toggle semantics."""

    def test_first_vote_inserts(self, aggregator: VoteAggregator) -> None:
        """Test a first vote adds one to the count."""
        result = aggregator.vote(ANSWER_ID, "alice")
        assert result.outcome == VoteOutcome.INSERTED
        assert result.new_count == 1
        assert result.user_has_voted is True
        assert "alice" in aggregator.state_for(ANSWER_ID).voters

    def test_second_vote_removes(self, aggregator: VoteAggregator) -> None:
        """Test a repeat vote by the same user withdraws it."""
        aggregator.vote(ANSWER_ID, "alice")
        result = aggregator.vote(ANSWER_ID, "alice")
        assert result.outcome == VoteOutcome.REMOVED
        assert result.new_count == 0
        assert result.user_has_voted is False
        assert "alice" not in aggregator.state_for(ANSWER_ID).voters

    @pytest.mark.parametrize("times", [1, 2, 3, 4, 7])
    def test_toggle_parity(self, aggregator: VoteAggregator, times: int) -> None:
        """Test N toggles leave the vote present exactly when N is odd."""
        for user in ("bob", "carol"):
            aggregator.vote(ANSWER_ID, user)

        for _ in range(times):
            result = aggregator.vote(ANSWER_ID, "alice")

        odd = times % 2 == 1
        assert result.new_count == 2 + int(odd)
        assert result.user_has_voted is odd
        assert aggregator.state_for(ANSWER_ID).count == 2 + int(odd)

    def test_distinct_users_accumulate(self, aggregator: VoteAggregator) -> None:
        """Test votes from different users add up."""
        for user in ("u1", "u2", "u3"):
            aggregator.vote(ANSWER_ID, user)
        state = aggregator.state_for(ANSWER_ID)
        assert state.count == 3
        assert state.voters == frozenset({"u1", "u2", "u3"})

    def test_metrics_recorded(
        self, aggregator: VoteAggregator, metrics: EngineMetrics
    ) -> None:
        """Test inserted and removed votes are counted separately."""
        aggregator.vote(ANSWER_ID, "alice")
        aggregator.vote(ANSWER_ID, "alice")
        assert metrics.votes_inserted == 1
        assert metrics.votes_removed == 1


class TestVoteErrors:
    """Tests for vote error paths."""

    @pytest.mark.parametrize("user_id", [None, ""])
    def test_anonymous_vote_rejected(
        self, aggregator: VoteAggregator, user_id: str | None
    ) -> None:
        """Test a vote without a user is rejected."""
        with pytest.raises(AuthRequiredError):
            aggregator.vote(ANSWER_ID, user_id)
        assert aggregator.state_for(ANSWER_ID).count == 0

    def test_auth_checked_before_existence(self, aggregator: VoteAggregator) -> None:
        """Test an anonymous vote on a missing answer reports auth first."""
        with pytest.raises(AuthRequiredError):
            aggregator.vote("missing", None)

    def test_unknown_answer(self, aggregator: VoteAggregator) -> None:
        """Test voting on an unknown answer raises NotFoundError."""
        with pytest.raises(NotFoundError):
            aggregator.vote("missing", "alice")

    def test_conflict_after_retries(self, metrics: EngineMetrics) -> None:
        """Test losing every race surfaces a ConflictError."""
        store = AlwaysConflictingStore()
        aggregator = VoteAggregator(store, max_attempts=3, metrics=metrics)  # type: ignore[arg-type]
        aggregator.register(ANSWER_ID)

        with pytest.raises(ConflictError) as exc_info:
            aggregator.vote(ANSWER_ID, "alice")

        assert exc_info.value.attempts == 3
        assert store.attempts == 3
        assert metrics.vote_conflict_retries == 3
        assert metrics.vote_conflicts_surfaced == 1


class TestVotePublication:
    """Tests for snapshot publication."""

    def test_stale_snapshot_ignored(self, aggregator: VoteAggregator) -> None:
        """Test an older version never replaces a newer one."""
        aggregator.vote(ANSWER_ID, "alice")
        stale = VoteSnapshot(answer_id=ANSWER_ID, count=0, version=0)
        assert aggregator.publish(stale) is False
        assert aggregator.state_for(ANSWER_ID).count == 1

    def test_newer_snapshot_installed(self, aggregator: VoteAggregator) -> None:
        """Test a newer version replaces the held state."""
        newer = VoteSnapshot(
            answer_id=ANSWER_ID, count=2, voters=frozenset({"x", "y"}), version=5
        )
        assert aggregator.publish(newer) is True
        assert aggregator.state_for(ANSWER_ID) == newer

    def test_stale_local_state_recovers(
        self, store: SqliteStore, aggregator: VoteAggregator, metrics: EngineMetrics
    ) -> None:
        """Test a vote committed behind the aggregator's back is retried over."""
        store.toggle_vote(ANSWER_ID, "bob", expected_version=0)

        result = aggregator.vote(ANSWER_ID, "alice")

        assert result.new_count == 2
        assert result.snapshot.voters == frozenset({"alice", "bob"})
        assert metrics.vote_conflict_retries == 1

    def test_state_for_unknown(self, aggregator: VoteAggregator) -> None:
        """Test reading an untracked answer raises NotFoundError."""
        with pytest.raises(NotFoundError):
            aggregator.state_for("missing")


class TestConcurrentVotes:
    """Tests for concurrent voting."""

    def test_distinct_users_all_apply(
        self, store: SqliteStore, metrics: EngineMetrics
    ) -> None:
        """Test concurrent votes by distinct users are all counted."""
        aggregator = VoteAggregator(store, max_attempts=100, metrics=metrics)
        aggregator.register(ANSWER_ID)
        users = [f"user-{i}" for i in range(20)]

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda u: aggregator.vote(ANSWER_ID, u), users))

        state = aggregator.state_for(ANSWER_ID)
        assert state.count == len(users)
        assert state.voters == frozenset(users)

    @pytest.mark.parametrize("threads", [7, 8])
    def test_same_user_toggles_linearize(
        self, store: SqliteStore, metrics: EngineMetrics, threads: int
    ) -> None:
        """Test simultaneous toggles by one user leave the vote present when odd."""
        aggregator = VoteAggregator(store, max_attempts=100, metrics=metrics)
        aggregator.register(ANSWER_ID)
        for user in ("bob", "carol", "dave"):
            aggregator.vote(ANSWER_ID, user)
        barrier = threading.Barrier(threads)

        def toggle(_: int) -> VoteResult:
            barrier.wait()
            return aggregator.vote(ANSWER_ID, "alice")

        with ThreadPoolExecutor(max_workers=threads) as executor:
            results = list(executor.map(toggle, range(threads)))

        odd = threads % 2 == 1
        state = aggregator.state_for(ANSWER_ID)
        assert state.count == 3 + int(odd)
        assert ("alice" in state.voters) is odd
        assert store.get_vote_snapshot(ANSWER_ID).count == 3 + int(odd)
        outcomes = [r.outcome for r in results]
        assert outcomes.count(VoteOutcome.INSERTED) - outcomes.count(
            VoteOutcome.REMOVED
        ) == int(odd)

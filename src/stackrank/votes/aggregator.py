"""Vote aggregator: per-answer counts and voter sets with toggle semantics."""

import threading

import structlog

from stackrank.errors import AuthRequiredError, ConflictError, NotFoundError
from stackrank.observability.metrics import EngineMetrics
from stackrank.store.errors import RecordNotFoundError, VersionConflict
from stackrank.store.models import VoteOutcome, VoteResult, VoteSnapshot
from stackrank.store.protocols import StoreAdapter


logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 5


class VoteAggregator:
    """Holds the published vote state of every answer.

    ``vote`` is the only voting primitive. It decides between insert and
    remove from the current snapshot and commits with a compare-and-swap
    on the answer's vote version, so concurrent toggles by different users
    both land and toggles by the same user are linearized. No lock is held
    while the store is called.
    """

    def __init__(
        self,
        store: StoreAdapter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        metrics: EngineMetrics | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            store: Store adapter holding the authoritative vote rows.
            max_attempts: Compare-and-swap attempts before a ConflictError.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._max_attempts = max_attempts
        self._metrics = metrics or EngineMetrics.get_instance()
        self._snapshots: dict[str, VoteSnapshot] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component="votes")

    def register(self, answer_id: str) -> None:
        """Start tracking a newly created answer with zero votes."""
        self.publish(VoteSnapshot(answer_id=answer_id))

    def publish(self, snapshot: VoteSnapshot) -> bool:
        """Install a committed snapshot unless a newer one is already held.

        Args:
            snapshot: Vote state read from or returned by the store.

        Returns:
            True if the snapshot replaced the held state.
        """
        with self._lock:
            held = self._snapshots.get(snapshot.answer_id)
            if held is not None and held.version >= snapshot.version:
                return False
            self._snapshots[snapshot.answer_id] = snapshot
            return True

    def state_for(self, answer_id: str) -> VoteSnapshot:
        """Current published vote state of an answer.

        Raises:
            NotFoundError: If the answer is not tracked.
        """
        with self._lock:
            snapshot = self._snapshots.get(answer_id)
        if snapshot is None:
            raise NotFoundError("answer", answer_id)
        return snapshot

    def snapshots_for(self, answer_ids: list[str]) -> dict[str, VoteSnapshot]:
        """Vote state of several answers read under one lock acquisition."""
        with self._lock:
            return {
                answer_id: self._snapshots.get(answer_id, VoteSnapshot(answer_id=answer_id))
                for answer_id in answer_ids
            }

    def vote(self, answer_id: str, user_id: str | None) -> VoteResult:
        """Toggle a user's upvote on an answer.

        Args:
            answer_id: The answer being voted on.
            user_id: Authenticated user, or None for an anonymous caller.

        Returns:
            The tagged outcome with the committed vote snapshot.

        Raises:
            AuthRequiredError: If no user is given.
            NotFoundError: If the answer does not exist.
            ConflictError: If every compare-and-swap attempt lost a race.
        """
        if not user_id:
            self._log.info("vote_rejected_anonymous", answer_id=answer_id)
            raise AuthRequiredError("vote")

        current = self.state_for(answer_id)

        for attempt in range(1, self._max_attempts + 1):
            try:
                result = self._store.toggle_vote(answer_id, user_id, current.version)
            except RecordNotFoundError as e:
                raise NotFoundError("answer", answer_id) from e
            except VersionConflict as e:
                self._metrics.record_vote_retry()
                self._log.info(
                    "vote_conflict_retry",
                    answer_id=answer_id,
                    attempt=attempt,
                    expected_version=e.expected,
                    actual_version=e.actual,
                )
                self.publish(self._store.get_vote_snapshot(answer_id))
                current = self.state_for(answer_id)
                continue

            self.publish(result.snapshot)
            self._metrics.record_vote(result.outcome == VoteOutcome.INSERTED)
            self._log.info(
                "vote_applied",
                answer_id=answer_id,
                outcome=result.outcome.value,
                new_count=result.new_count,
                version=result.snapshot.version,
            )
            return result

        self._metrics.record_vote_conflict()
        self._log.warning(
            "vote_conflict_exhausted",
            answer_id=answer_id,
            attempts=self._max_attempts,
        )
        raise ConflictError("answer", answer_id, self._max_attempts)

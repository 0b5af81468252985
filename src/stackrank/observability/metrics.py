"""Metrics collection for engine operations."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "EngineMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class EngineMetrics:
    """Thread-safe counters for engine writes and reads.

    Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    questions_created: int = 0
    answers_created: int = 0
    comments_created: int = 0
    votes_inserted: int = 0
    votes_removed: int = 0
    vote_conflict_retries: int = 0
    vote_conflicts_surfaced: int = 0
    question_views: int = 0
    validation_failures: Counter[str] = field(default_factory=Counter)
    listings_by_ordering: Counter[str] = field(default_factory=Counter)

    @classmethod
    def get_instance(cls) -> "EngineMetrics":
        """Get the singleton instance (thread-safe)."""
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_question(self) -> None:
        """Record a created question."""
        with self._lock:
            self.questions_created += 1

    def record_answer(self) -> None:
        """Record a created answer."""
        with self._lock:
            self.answers_created += 1

    def record_comment(self) -> None:
        """Record a created comment."""
        with self._lock:
            self.comments_created += 1

    def record_vote(self, inserted: bool) -> None:
        """Record a committed toggle.

        Args:
            inserted: True if the vote was added, False if withdrawn.
        """
        with self._lock:
            if inserted:
                self.votes_inserted += 1
            else:
                self.votes_removed += 1

    def record_vote_retry(self) -> None:
        """Record a vote attempt that lost a version race and was retried."""
        with self._lock:
            self.vote_conflict_retries += 1

    def record_vote_conflict(self) -> None:
        """Record a vote that exhausted its retries."""
        with self._lock:
            self.vote_conflicts_surfaced += 1

    def record_view(self) -> None:
        """Record a question detail view."""
        with self._lock:
            self.question_views += 1

    def record_validation_failure(self, operation: str) -> None:
        """Record rejected input.

        Args:
            operation: Name of the rejected operation.
        """
        with self._lock:
            self.validation_failures[operation] += 1

    def record_listing(self, ordering: str) -> None:
        """Record a question listing.

        Args:
            ordering: Ordering name that was listed.
        """
        with self._lock:
            self.listings_by_ordering[ordering] += 1

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "questions_created": self.questions_created,
                "answers_created": self.answers_created,
                "comments_created": self.comments_created,
                "votes_inserted": self.votes_inserted,
                "votes_removed": self.votes_removed,
                "vote_conflict_retries": self.vote_conflict_retries,
                "vote_conflicts_surfaced": self.vote_conflicts_surfaced,
                "question_views": self.question_views,
                "validation_failures": dict(self.validation_failures),
                "listings_by_ordering": dict(self.listings_by_ordering),
            }

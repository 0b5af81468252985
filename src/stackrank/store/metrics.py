"""Metrics collection for the forum store."""

from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "StoreMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class StoreMetrics:
    """Thread-safe metrics for store operations.

    Attributes:
        db_tx_count: Number of committed transactions.
        db_tx_failed: Number of rolled-back transactions.
        db_tx_duration_ms: Cumulative committed transaction duration.
        version_conflicts_total: Compare-and-swap attempts that lost a race.
        tags_created_total: Tags inserted on first use.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    db_tx_count: int = 0
    db_tx_failed: int = 0
    db_tx_duration_ms: float = 0.0
    version_conflicts_total: int = 0
    tags_created_total: int = 0

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
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

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction.

        Args:
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self.db_tx_duration_ms += duration_ms
            self.db_tx_count += 1

    def record_tx_failed(self) -> None:
        """Record a rolled-back transaction."""
        with self._lock:
            self.db_tx_failed += 1

    def record_version_conflict(self) -> None:
        """Record a lost compare-and-swap."""
        with self._lock:
            self.version_conflicts_total += 1

    def record_tags_created(self, count: int) -> None:
        """Record tags created on first use.

        Args:
            count: Number of new tag rows.
        """
        with self._lock:
            self.tags_created_total += count

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average committed transaction duration in milliseconds."""
        with self._lock:
            if self.db_tx_count == 0:
                return 0.0
            return self.db_tx_duration_ms / self.db_tx_count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "db_tx_count": self.db_tx_count,
                "db_tx_failed": self.db_tx_failed,
                "db_tx_duration_ms": self.db_tx_duration_ms,
                "version_conflicts_total": self.version_conflicts_total,
                "tags_created_total": self.tags_created_total,
            }

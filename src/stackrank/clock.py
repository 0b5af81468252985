"""Timestamp source for created records."""

import threading
from collections.abc import Callable
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


class MonotonicClock:
    """Wraps a time source so issued timestamps never go backwards.

    Wall clocks can step back (NTP) and test clocks are often frozen; the
    orderings rely on a later write never carrying an earlier timestamp.
    Equal timestamps are allowed and are broken by sequence number.
    """

    def __init__(self, source: Callable[[], datetime] | None = None) -> None:
        """Initialize the clock.

        Args:
            source: Underlying time source (default: UTC wall clock).
        """
        self._source = source or utc_now
        self._last: datetime | None = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Return a timestamp not earlier than any previously issued one."""
        with self._lock:
            current = self._source()
            if current.tzinfo is None:
                current = current.replace(tzinfo=UTC)
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
            return current

    def observe(self, timestamp: datetime) -> None:
        """Advance the floor to a timestamp loaded from storage.

        Args:
            timestamp: A timestamp already persisted.
        """
        with self._lock:
            if self._last is None or timestamp > self._last:
                self._last = timestamp

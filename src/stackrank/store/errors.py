"""Exceptions for the store layer.

Infrastructure errors (database issues) are separate from the engine's
domain errors in ``stackrank.errors``; the engine translates the ones that
carry domain meaning.
"""


class StoreError(Exception):
    """Base exception for all store errors."""


class StoreConnectionError(StoreError):
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class MigrationError(StoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")


class RecordNotFoundError(StoreError):
    """Raised when a write references a row that does not exist."""

    def __init__(self, table: str, key: str) -> None:
        """Initialize the error.

        Args:
            table: Table that was queried.
            key: Primary key that was missing.
        """
        self.table = table
        self.key = key
        super().__init__(f"No row in {table}: {key}")


class VersionConflict(StoreError):
    """Raised when a compare-and-swap finds a newer version than expected."""

    def __init__(self, answer_id: str, expected: int, actual: int) -> None:
        """Initialize the conflict.

        Args:
            answer_id: Answer whose vote version moved.
            expected: Version the caller read.
            actual: Version found in the store.
        """
        self.answer_id = answer_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Vote version conflict on {answer_id}: expected {expected}, found {actual}"
        )

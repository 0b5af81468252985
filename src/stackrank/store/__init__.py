"""Durable storage for questions, answers, tags, votes and comments.

This module provides:
- The StoreAdapter protocol the engine is written against
- A SQLite implementation with schema migrations
- Optimistic versioning of per-answer vote state
"""

from stackrank.store.errors import (
    MigrationError,
    RecordNotFoundError,
    StoreConnectionError,
    StoreError,
    VersionConflict,
)
from stackrank.store.metrics import StoreMetrics
from stackrank.store.models import (
    AnswerRecord,
    CommentRecord,
    QuestionRecord,
    StoreSnapshot,
    TagRecord,
    VoteOutcome,
    VoteResult,
    VoteSnapshot,
)
from stackrank.store.protocols import StoreAdapter
from stackrank.store.store import SqliteStore


__all__ = [
    # Errors
    "MigrationError",
    "RecordNotFoundError",
    "StoreConnectionError",
    "StoreError",
    "VersionConflict",
    # Metrics
    "StoreMetrics",
    # Models
    "AnswerRecord",
    "CommentRecord",
    "QuestionRecord",
    "StoreSnapshot",
    "TagRecord",
    "VoteOutcome",
    "VoteResult",
    "VoteSnapshot",
    # Store
    "SqliteStore",
    "StoreAdapter",
]

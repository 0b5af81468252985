"""Ranking and indexing engine for a Q&A forum."""

from stackrank.engine import RankingEngine
from stackrank.errors import (
    AuthRequiredError,
    ConflictError,
    EngineError,
    EngineErrorClass,
    InvalidArgumentError,
    NotFoundError,
    ValidationError,
    http_status_for,
)
from stackrank.ranker import Ordering
from stackrank.settings import AnswerTieBreak, EngineSettings


__version__ = "0.1.0"

__all__ = [
    "AnswerTieBreak",
    "AuthRequiredError",
    "ConflictError",
    "EngineError",
    "EngineErrorClass",
    "EngineSettings",
    "InvalidArgumentError",
    "NotFoundError",
    "Ordering",
    "RankingEngine",
    "ValidationError",
    "http_status_for",
]

"""Ranking engine: the boundary the HTTP layer calls into.

This module provides:
- RankingEngine composing the tag index, vote aggregator and rankers
- View models returned by engine operations
- Input validation and the search filter
"""

from stackrank.engine.engine import RankingEngine
from stackrank.engine.models import (
    AnswerView,
    CommentView,
    QuestionDetail,
    QuestionView,
    VoteView,
)
from stackrank.engine.search import SearchQuery, filter_questions, parse_search
from stackrank.engine.validation import (
    COMMENT_MAX_LENGTH,
    TAG_MAX_LENGTH,
    TAGS_MAX_COUNT,
    TITLE_MAX_LENGTH,
    validate_answer,
    validate_comment,
    validate_question,
)


__all__ = [
    # Engine
    "RankingEngine",
    # Models
    "AnswerView",
    "CommentView",
    "QuestionDetail",
    "QuestionView",
    "VoteView",
    # Search
    "SearchQuery",
    "filter_questions",
    "parse_search",
    # Validation
    "COMMENT_MAX_LENGTH",
    "TAG_MAX_LENGTH",
    "TAGS_MAX_COUNT",
    "TITLE_MAX_LENGTH",
    "validate_answer",
    "validate_comment",
    "validate_question",
]

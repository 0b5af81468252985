"""Question and answer ranking.

This module keeps the three question orderings (Newest, Active,
Unanswered) as explicit sorted indexes, and orders answers within a
question by votes with a configurable time tie-break.
"""

from stackrank.ranker.answers import AnswerRanker
from stackrank.ranker.models import Ordering, OrderKey, RankedAnswer, parse_ordering
from stackrank.ranker.questions import QuestionRanker


__all__ = [
    "AnswerRanker",
    "OrderKey",
    "Ordering",
    "QuestionRanker",
    "RankedAnswer",
    "parse_ordering",
]

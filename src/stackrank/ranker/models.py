"""Data models for the question and answer rankers."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from stackrank.errors import InvalidArgumentError
from stackrank.store.models import AnswerRecord, VoteSnapshot


class Ordering(str, Enum):
    """Question orderings exposed for browsing.

    - NEWEST: by creation time, newest first
    - ACTIVE: by latest activity (own creation or newest answer), newest first
    - UNANSWERED: questions without answers, in Newest order
    """

    NEWEST = "newest"
    ACTIVE = "active"
    UNANSWERED = "unanswered"


def parse_ordering(value: "Ordering | str") -> Ordering:
    """Resolve an ordering key, case-insensitively for strings.

    Args:
        value: An Ordering or its name ("Newest", "active", ...).

    Returns:
        The matching Ordering.

    Raises:
        InvalidArgumentError: If the key is not a known ordering.
    """
    if isinstance(value, Ordering):
        return value
    if isinstance(value, str):
        try:
            return Ordering(value.strip().lower())
        except ValueError:
            pass
    raise InvalidArgumentError("ordering", value)


class OrderKey(NamedTuple):
    """Sort key of a question inside one ordering index.

    Ascending tuple order; indexes are read back to front so the latest
    timestamp, then the highest sequence number, comes first.
    """

    timestamp: datetime
    seq: int
    question_id: str


@dataclass(frozen=True)
class RankedAnswer:
    """An answer paired with the vote state it was ranked by."""

    answer: AnswerRecord
    votes: VoteSnapshot

    @property
    def vote_count(self) -> int:
        """Vote count used for ranking."""
        return self.votes.count

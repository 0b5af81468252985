"""Question ranker maintaining the Newest, Active and Unanswered orderings."""

import bisect
import threading
from datetime import datetime

import structlog

from stackrank.errors import NotFoundError
from stackrank.ranker.models import Ordering, OrderKey, parse_ordering


logger = structlog.get_logger()


def _insert(index: list[OrderKey], key: OrderKey) -> None:
    bisect.insort(index, key)


def _remove(index: list[OrderKey], key: OrderKey) -> None:
    pos = bisect.bisect_left(index, key)
    if pos < len(index) and index[pos] == key:
        del index[pos]


class QuestionRanker:
    """Three sorted indexes over the question set.

    Each index is a list of ``OrderKey`` kept in ascending order and read
    back to front:

    - Newest: ``(asked_at, seq)`` of the question.
    - Active: ``(time, seq)`` of the latest event on the question, which is
      its creation or its newest answer. Answer sequence numbers come from
      the same counter as question ones, so answering always moves the
      question ahead of everything created before the answer.
    - Unanswered: Newest keys of questions that have no answer yet.

    Only question and answer creation touch these indexes; votes never do.
    """

    def __init__(self) -> None:
        """Initialize empty indexes."""
        self._newest: list[OrderKey] = []
        self._active: list[OrderKey] = []
        self._unanswered: list[OrderKey] = []
        self._newest_key: dict[str, OrderKey] = {}
        self._active_key: dict[str, OrderKey] = {}
        self._lock = threading.Lock()
        self._log = logger.bind(component="ranker", subcomponent="questions")

    def __len__(self) -> int:
        """Number of ranked questions."""
        with self._lock:
            return len(self._newest)

    def __contains__(self, question_id: object) -> bool:
        """Whether a question is ranked."""
        with self._lock:
            return question_id in self._newest_key

    def add_question(self, question_id: str, asked_at: datetime, seq: int) -> None:
        """Insert a new question into all three indexes.

        Args:
            question_id: The question.
            asked_at: Creation timestamp.
            seq: Insertion sequence number.
        """
        key = OrderKey(asked_at, seq, question_id)
        with self._lock:
            if question_id in self._newest_key:
                return
            self._newest_key[question_id] = key
            self._active_key[question_id] = key
            _insert(self._newest, key)
            _insert(self._active, key)
            _insert(self._unanswered, key)

    def record_answer(self, question_id: str, answered_at: datetime, seq: int) -> None:
        """Move a question for a new answer.

        The Active key only ever moves forward, so publishing two answers
        in either order yields the same index. The question leaves
        Unanswered for good.

        Args:
            question_id: The answered question.
            answered_at: Creation timestamp of the answer.
            seq: Insertion sequence number of the answer.

        Raises:
            NotFoundError: If the question is not ranked.
        """
        with self._lock:
            newest_key = self._newest_key.get(question_id)
            if newest_key is None:
                raise NotFoundError("question", question_id)

            _remove(self._unanswered, newest_key)

            old = self._active_key[question_id]
            new = OrderKey(answered_at, seq, question_id)
            if new > old:
                _remove(self._active, old)
                _insert(self._active, new)
                self._active_key[question_id] = new
                self._log.debug("active_key_advanced", question_id=question_id, seq=seq)

    def active_time(self, question_id: str) -> datetime:
        """Latest activity timestamp of a question.

        Raises:
            NotFoundError: If the question is not ranked.
        """
        with self._lock:
            key = self._active_key.get(question_id)
        if key is None:
            raise NotFoundError("question", question_id)
        return key.timestamp

    def order(self, ordering: Ordering | str) -> list[str]:
        """Question ids under an ordering, first to last.

        Args:
            ordering: Ordering enum or its case-insensitive name.

        Returns:
            Ordered question ids.

        Raises:
            InvalidArgumentError: If the ordering key is unknown.
        """
        kind = parse_ordering(ordering)
        with self._lock:
            if kind == Ordering.NEWEST:
                index = self._newest
            elif kind == Ordering.ACTIVE:
                index = self._active
            else:
                index = self._unanswered
            return [key.question_id for key in reversed(index)]

"""Ordering of answers within a question."""

import threading

from stackrank.ranker.models import RankedAnswer
from stackrank.settings.app import AnswerTieBreak
from stackrank.store.models import AnswerRecord
from stackrank.votes.aggregator import VoteAggregator


class AnswerRanker:
    """Orders a question's answers by votes, then by creation time.

    Answers per question are few, so the order is recomputed on every
    read from one consistent read of the vote state. Equal vote counts
    fall back to creation time in the configured direction, then to the
    insertion sequence in the same direction.
    """

    def __init__(
        self,
        votes: VoteAggregator,
        tie_break: AnswerTieBreak = AnswerTieBreak.OLDEST_FIRST,
    ) -> None:
        """Initialize the ranker.

        Args:
            votes: Source of vote counts.
            tie_break: Direction for equally-voted answers.
        """
        self._votes = votes
        self._tie_break = tie_break
        self._answers: dict[str, AnswerRecord] = {}
        self._by_question: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    @property
    def tie_break(self) -> AnswerTieBreak:
        """Configured tie-break direction."""
        return self._tie_break

    def add(self, answer: AnswerRecord) -> None:
        """Track an answer under its question (idempotent)."""
        with self._lock:
            if answer.answer_id in self._answers:
                return
            self._answers[answer.answer_id] = answer
            self._by_question.setdefault(answer.question_id, []).append(answer.answer_id)

    def __contains__(self, answer_id: object) -> bool:
        """Whether an answer is tracked."""
        with self._lock:
            return answer_id in self._answers

    def answer_ids(self, question_id: str) -> list[str]:
        """Answer ids of a question in creation order."""
        with self._lock:
            return list(self._by_question.get(question_id, ()))

    def ranked(self, question_id: str) -> list[RankedAnswer]:
        """Answers of a question in display order with their vote state.

        Args:
            question_id: The question whose answers to order.

        Returns:
            Ranked answers; empty for a question with no answers.
        """
        with self._lock:
            answers = [self._answers[a] for a in self._by_question.get(question_id, ())]
        snapshots = self._votes.snapshots_for([a.answer_id for a in answers])
        ranked = [RankedAnswer(answer=a, votes=snapshots[a.answer_id]) for a in answers]

        if self._tie_break == AnswerTieBreak.NEWEST_FIRST:
            ranked.sort(
                key=lambda r: (r.votes.count, r.answer.answered_at, r.answer.seq),
                reverse=True,
            )
        else:
            ranked.sort(
                key=lambda r: (-r.votes.count, r.answer.answered_at, r.answer.seq)
            )
        return ranked

    def order(self, question_id: str) -> list[str]:
        """Answer ids of a question in display order."""
        return [r.answer.answer_id for r in self.ranked(question_id)]

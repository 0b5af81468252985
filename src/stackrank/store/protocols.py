"""Store adapter protocol consumed by the engine."""

from typing import Protocol

from stackrank.store.models import (
    AnswerRecord,
    CommentRecord,
    QuestionRecord,
    StoreSnapshot,
    TagRecord,
    VoteResult,
    VoteSnapshot,
)


class StoreAdapter(Protocol):
    """Durable persistence for questions, answers, tags, votes and comments.

    Each write is one transaction: it either fully commits or raises and
    leaves the store unchanged. Implementations must be safe to call from
    several threads. No ordering or aggregation logic belongs here.
    """

    def connect(self) -> None:
        """Open the underlying storage."""
        ...

    def close(self) -> None:
        """Release the underlying storage."""
        ...

    def load_snapshot(self) -> StoreSnapshot:
        """Read everything needed to rebuild the in-memory indexes."""
        ...

    def create_question(
        self, question: QuestionRecord, tags: list[TagRecord]
    ) -> list[TagRecord]:
        """Insert a question with its tags, creating unseen tags.

        Returns the stored tag records (existing display names win).
        """
        ...

    def create_answer(self, answer: AnswerRecord) -> None:
        """Insert an answer; raises RecordNotFoundError for an unknown question."""
        ...

    def create_comment(self, comment: CommentRecord) -> None:
        """Insert a comment; raises RecordNotFoundError for an unknown answer."""
        ...

    def get_vote_snapshot(self, answer_id: str) -> VoteSnapshot:
        """Read the committed vote state of an answer."""
        ...

    def toggle_vote(
        self, answer_id: str, user_id: str, expected_version: int
    ) -> VoteResult:
        """Toggle a vote if the answer's vote version equals expected_version.

        Raises VersionConflict otherwise.
        """
        ...

    def increment_views(self, question_id: str) -> int:
        """Bump and return a question's view counter."""
        ...

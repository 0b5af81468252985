"""Data models for the forum store."""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class VoteOutcome(str, Enum):
    """Which branch a toggle vote took.

    - INSERTED: The (answer, user) vote was absent and has been added
    - REMOVED: The vote was present and has been withdrawn
    """

    INSERTED = "INSERTED"
    REMOVED = "REMOVED"


class TagRecord(BaseModel):
    """Stored tag.

    The identifier is the normalized name; ``name`` keeps the casing of
    the first question that used it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    tag_id: Annotated[str, Field(min_length=1, description="Normalized tag name")]
    name: Annotated[str, Field(min_length=1, description="Display name")]


class QuestionRecord(BaseModel):
    """Stored question."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    question_id: Annotated[str, Field(min_length=1)]
    title: Annotated[str, Field(min_length=1)]
    text: Annotated[str, Field(min_length=1)]
    tags: Annotated[list[str], Field(min_length=1, description="Tag ids in order")]
    asked_by: str | None = Field(default=None, description="Author (None = anonymous)")
    asked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    seq: Annotated[int, Field(ge=0, description="Engine-wide insertion sequence")]
    views: Annotated[int, Field(ge=0)] = 0


class AnswerRecord(BaseModel):
    """Stored answer.

    The vote count lives in ``VoteSnapshot``; the answer body itself is
    immutable once created.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    answer_id: Annotated[str, Field(min_length=1)]
    question_id: Annotated[str, Field(min_length=1)]
    text: Annotated[str, Field(min_length=1)]
    answered_by: str | None = None
    answered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    seq: Annotated[int, Field(ge=0)]


class CommentRecord(BaseModel):
    """Stored comment on an answer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    comment_id: Annotated[str, Field(min_length=1)]
    answer_id: Annotated[str, Field(min_length=1)]
    text: Annotated[str, Field(min_length=1, max_length=500)]
    commented_by: Annotated[str, Field(min_length=1)]
    commented_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class VoteSnapshot(BaseModel):
    """Vote state of one answer at a given version.

    ``version`` increases by one on every committed toggle, so two
    snapshots of the same answer are totally ordered.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    answer_id: Annotated[str, Field(min_length=1)]
    count: Annotated[int, Field(ge=0)] = 0
    voters: frozenset[str] = Field(default_factory=frozenset)
    version: Annotated[int, Field(ge=0)] = 0


class VoteResult(BaseModel):
    """Result of a committed toggle vote."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: VoteOutcome
    snapshot: VoteSnapshot
    user_id: Annotated[str, Field(min_length=1)]

    @property
    def new_count(self) -> int:
        """Vote count after the toggle."""
        return self.snapshot.count

    @property
    def user_has_voted(self) -> bool:
        """Whether the voting user holds a vote after the toggle."""
        return self.outcome == VoteOutcome.INSERTED


class StoreSnapshot(BaseModel):
    """Everything needed to rebuild the in-memory indexes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tags: list[TagRecord] = Field(default_factory=list)
    questions: list[QuestionRecord] = Field(default_factory=list)
    answers: list[AnswerRecord] = Field(default_factory=list)
    comments: list[CommentRecord] = Field(default_factory=list)
    votes: list[VoteSnapshot] = Field(default_factory=list)
    max_seq: int = 0

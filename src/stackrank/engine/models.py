"""View models returned by the ranking engine."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from stackrank.store.models import VoteOutcome


class CommentView(BaseModel):
    """A comment as shown under an answer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    comment_id: str
    answer_id: str
    text: str
    commented_by: str
    commented_at: datetime


class AnswerView(BaseModel):
    """An answer with its vote count and the caller's vote state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    answer_id: str
    question_id: str
    text: str
    answered_by: str | None = None
    answered_at: datetime
    vote_count: Annotated[int, Field(ge=0)] = 0
    user_has_voted: bool = False
    comments: list[CommentView] = Field(default_factory=list)


class QuestionView(BaseModel):
    """A question as listed, with its tag display names attached."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    question_id: str
    title: str
    text: str
    tags: list[str] = Field(description="Tag display names in the author's order")
    asked_by: str | None = None
    asked_at: datetime
    active_at: datetime = Field(description="Newest answer time, or asked_at")
    answer_ids: list[str] = Field(default_factory=list)
    answer_count: Annotated[int, Field(ge=0)] = 0
    views: Annotated[int, Field(ge=0)] = 0


class QuestionDetail(BaseModel):
    """A question page: the question and its ranked answers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    question: QuestionView
    answers: list[AnswerView] = Field(default_factory=list)


class VoteView(BaseModel):
    """Result of a toggle vote."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    answer_id: str
    new_count: Annotated[int, Field(ge=0)]
    user_has_voted: bool
    outcome: VoteOutcome

"""Ranking engine facade consumed by the HTTP layer."""

import threading
import uuid
from collections.abc import Callable
from datetime import datetime

import structlog

from stackrank.clock import MonotonicClock
from stackrank.engine.models import (
    AnswerView,
    CommentView,
    QuestionDetail,
    QuestionView,
    VoteView,
)
from stackrank.engine.search import filter_questions
from stackrank.engine.validation import (
    validate_answer,
    validate_comment,
    validate_question,
)
from stackrank.errors import NotFoundError, ValidationError
from stackrank.observability.metrics import EngineMetrics
from stackrank.ranker.answers import AnswerRanker
from stackrank.ranker.models import Ordering, RankedAnswer, parse_ordering
from stackrank.ranker.questions import QuestionRanker
from stackrank.settings.app import EngineSettings
from stackrank.store.errors import RecordNotFoundError
from stackrank.store.models import (
    AnswerRecord,
    CommentRecord,
    QuestionRecord,
    StoreSnapshot,
)
from stackrank.store.protocols import StoreAdapter
from stackrank.store.store import SqliteStore
from stackrank.tags.index import TagCount, TagIndex
from stackrank.votes.aggregator import VoteAggregator


logger = structlog.get_logger()


class RankingEngine:
    """Composes the tag index, vote aggregator and rankers.

    Writes go to the store first, without any engine lock held. Once the
    store has committed, the change is published into every derived index
    inside one short critical section, and reads take their snapshot under
    the same lock. A reader therefore sees the result of some prefix of
    completed writes. A write that fails in the store publishes nothing.
    """

    def __init__(
        self,
        store: StoreAdapter,
        settings: EngineSettings | None = None,
        clock: MonotonicClock | Callable[[], datetime] | None = None,
        metrics: EngineMetrics | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Store adapter (not yet connected).
            settings: Engine settings (default: from environment).
            clock: Time source for new records.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._settings = settings or EngineSettings()
        self._clock = clock if isinstance(clock, MonotonicClock) else MonotonicClock(clock)
        self._metrics = metrics or EngineMetrics.get_instance()

        self._tags: TagIndex
        self._votes: VoteAggregator
        self._answers: AnswerRanker
        self._questions: QuestionRanker
        self._question_records: dict[str, QuestionRecord]
        self._view_counts: dict[str, int]
        self._comments: dict[str, list[CommentRecord]]
        self._reset_indexes()

        self._view_lock = threading.RLock()
        self._stamp_lock = threading.Lock()
        self._seq = 0
        self._is_open = False
        self._log = logger.bind(component="engine")

    @classmethod
    def from_settings(cls, settings: EngineSettings | None = None) -> "RankingEngine":
        """Build an engine over the SQLite store named in settings."""
        settings = settings or EngineSettings()
        return cls(SqliteStore(settings.store_path), settings=settings)

    # ===== Lifecycle =====

    @property
    def is_open(self) -> bool:
        """Whether the engine has been opened."""
        return self._is_open

    @property
    def tags(self) -> TagIndex:
        """The tag index."""
        return self._tags

    @property
    def votes(self) -> VoteAggregator:
        """The vote aggregator."""
        return self._votes

    @property
    def answers(self) -> AnswerRanker:
        """The answer ranker."""
        return self._answers

    @property
    def questions(self) -> QuestionRanker:
        """The question ranker."""
        return self._questions

    def open(self) -> None:
        """Connect the store and rebuild every index from it."""
        if self._is_open:
            return
        self._store.connect()
        self._hydrate(self._store.load_snapshot())
        self._is_open = True

    def close(self) -> None:
        """Close the store."""
        self._store.close()
        self._is_open = False

    def __enter__(self) -> "RankingEngine":
        """Context manager entry."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _reset_indexes(self) -> None:
        """Replace every derived index with an empty one."""
        self._tags = TagIndex()
        self._votes = VoteAggregator(
            self._store,
            max_attempts=self._settings.vote_max_retries,
            metrics=self._metrics,
        )
        self._answers = AnswerRanker(self._votes, self._settings.answer_tie_break)
        self._questions = QuestionRanker()
        self._question_records = {}
        self._view_counts = {}
        self._comments = {}

    def _hydrate(self, snapshot: StoreSnapshot) -> None:
        names = {tag.tag_id: tag.name for tag in snapshot.tags}
        with self._view_lock:
            self._reset_indexes()
            for tag in snapshot.tags:
                self._tags.resolve_or_create(tag.name)
            for question in snapshot.questions:
                self._tags.attach(question.question_id, [names[t] for t in question.tags])
                self._questions.add_question(
                    question.question_id, question.asked_at, question.seq
                )
                self._question_records[question.question_id] = question
                self._view_counts[question.question_id] = question.views
                self._clock.observe(question.asked_at)
            for answer in snapshot.answers:
                self._answers.add(answer)
                self._comments[answer.answer_id] = []
                self._questions.record_answer(
                    answer.question_id, answer.answered_at, answer.seq
                )
                self._clock.observe(answer.answered_at)
            for votes in snapshot.votes:
                self._votes.publish(votes)
            for comment in snapshot.comments:
                self._comments.setdefault(comment.answer_id, []).append(comment)
                self._clock.observe(comment.commented_at)
            self._seq = max(self._seq, snapshot.max_seq)

        self._log.info(
            "engine_hydrated",
            questions=len(snapshot.questions),
            answers=len(snapshot.answers),
            tags=len(snapshot.tags),
            max_seq=snapshot.max_seq,
        )

    def _stamp(self) -> tuple[datetime, int]:
        """Issue a timestamp and sequence number together."""
        with self._stamp_lock:
            self._seq += 1
            return self._clock.now(), self._seq

    # ===== Writes =====

    def create_question(
        self,
        title: str,
        text: str,
        tags: list[str],
        author_id: str | None = None,
    ) -> QuestionView:
        """Post a question.

        Args:
            title: Question title.
            text: Question body.
            tags: Tag names; unseen names create tags.
            author_id: Author, or None for an anonymous post.

        Returns:
            The question view with tag names attached.

        Raises:
            ValidationError: If any field is invalid.
        """
        try:
            tag_records = validate_question(title, text, tags)
        except ValidationError as e:
            self._metrics.record_validation_failure("create_question")
            self._log.info("question_rejected", fields=e.fields)
            raise

        asked_at, seq = self._stamp()
        record = QuestionRecord(
            question_id=uuid.uuid4().hex,
            title=title.strip(),
            text=text,
            tags=[t.tag_id for t in tag_records],
            asked_by=author_id,
            asked_at=asked_at,
            seq=seq,
        )
        stored_tags = self._store.create_question(record, tag_records)

        with self._view_lock:
            self._tags.attach(record.question_id, [t.name for t in stored_tags])
            self._questions.add_question(record.question_id, asked_at, seq)
            self._question_records[record.question_id] = record
            self._view_counts[record.question_id] = 0
            view = self._question_view(record.question_id)

        self._metrics.record_question()
        self._log.info(
            "question_created",
            question_id=record.question_id,
            seq=seq,
            tags=record.tags,
        )
        return view

    def create_answer(
        self,
        question_id: str,
        text: str,
        author_id: str | None = None,
    ) -> AnswerView:
        """Post an answer to a question.

        Args:
            question_id: The question being answered.
            text: Answer body.
            author_id: Author, or None for an anonymous post.

        Returns:
            The answer view (zero votes, no comments).

        Raises:
            ValidationError: If the text is empty.
            NotFoundError: If the question does not exist.
        """
        try:
            validate_answer(text)
        except ValidationError:
            self._metrics.record_validation_failure("create_answer")
            raise

        self._require_question(question_id)

        answered_at, seq = self._stamp()
        record = AnswerRecord(
            answer_id=uuid.uuid4().hex,
            question_id=question_id,
            text=text,
            answered_by=author_id,
            answered_at=answered_at,
            seq=seq,
        )
        try:
            self._store.create_answer(record)
        except RecordNotFoundError as e:
            raise NotFoundError("question", question_id) from e

        with self._view_lock:
            self._answers.add(record)
            self._votes.register(record.answer_id)
            self._comments[record.answer_id] = []
            self._questions.record_answer(question_id, answered_at, seq)

        self._metrics.record_answer()
        self._log.info(
            "answer_created",
            answer_id=record.answer_id,
            question_id=question_id,
            seq=seq,
        )
        return self._answer_view(record, vote_count=0, user_has_voted=False, comments=[])

    def create_comment(
        self,
        answer_id: str,
        text: str,
        author_id: str | None,
    ) -> CommentView:
        """Comment on an answer.

        Args:
            answer_id: The answer commented on.
            text: Comment body, at most 500 characters.
            author_id: Authenticated commenter.

        Returns:
            The comment view.

        Raises:
            AuthRequiredError: If there is no author.
            ValidationError: If the text is empty or too long.
            NotFoundError: If the answer does not exist.
        """
        try:
            validate_comment(text, author_id)
        except ValidationError:
            self._metrics.record_validation_failure("create_comment")
            raise

        if answer_id not in self._answers:
            raise NotFoundError("answer", answer_id)

        record = CommentRecord(
            comment_id=uuid.uuid4().hex,
            answer_id=answer_id,
            text=text,
            commented_by=str(author_id),
            commented_at=self._clock.now(),
        )
        try:
            self._store.create_comment(record)
        except RecordNotFoundError as e:
            raise NotFoundError("answer", answer_id) from e

        with self._view_lock:
            self._comments.setdefault(answer_id, []).append(record)

        self._metrics.record_comment()
        self._log.info("comment_created", comment_id=record.comment_id, answer_id=answer_id)
        return CommentView(**record.model_dump())

    def cast_vote(self, answer_id: str, user_id: str | None) -> VoteView:
        """Toggle a user's upvote on an answer.

        Args:
            answer_id: The answer voted on.
            user_id: Authenticated voter.

        Returns:
            New count, whether the user now holds a vote, and which branch ran.

        Raises:
            AuthRequiredError: If there is no user.
            NotFoundError: If the answer does not exist.
            ConflictError: If concurrent writers kept winning.
        """
        result = self._votes.vote(answer_id, user_id)
        return VoteView(
            answer_id=answer_id,
            new_count=result.new_count,
            user_has_voted=result.user_has_voted,
            outcome=result.outcome,
        )

    # ===== Reads =====

    def list_questions(
        self,
        ordering: Ordering | str = Ordering.NEWEST,
        tag: str | None = None,
        search: str | None = None,
    ) -> list[QuestionView]:
        """Questions under an ordering, optionally filtered.

        Args:
            ordering: "newest", "active" or "unanswered" (any casing).
            tag: Restrict to questions carrying this tag.
            search: Search text with ``[tag]`` and word tokens.

        Returns:
            Ordered question views.

        Raises:
            InvalidArgumentError: If the ordering is unknown.
            NotFoundError: If the tag filter names an unknown tag.
        """
        kind = parse_ordering(ordering)
        with self._view_lock:
            question_ids = self._questions.order(kind)
            if tag is not None:
                tag_id = self._tags.require(tag)
                members = self._tags.questions_for(tag_id)
                question_ids = [q for q in question_ids if q in members]
            views = [self._question_view(q) for q in question_ids]

        self._metrics.record_listing(kind.value)
        if search and search.strip():
            views = filter_questions(views, search)
        return views

    def list_answers(self, question_id: str, viewer_id: str | None = None) -> list[AnswerView]:
        """Answers of a question in ranked order.

        Args:
            question_id: The question.
            viewer_id: Caller, for the per-user vote state.

        Raises:
            NotFoundError: If the question does not exist.
        """
        with self._view_lock:
            self._require_question(question_id)
            return self._answer_views(question_id, viewer_id)

    def get_question(self, question_id: str, viewer_id: str | None = None) -> QuestionDetail:
        """Open a question page, counting a view.

        Args:
            question_id: The question.
            viewer_id: Caller, for the per-user vote state.

        Returns:
            The question with its ranked answers.

        Raises:
            NotFoundError: If the question does not exist.
        """
        self._require_question(question_id)
        try:
            views = self._store.increment_views(question_id)
        except RecordNotFoundError as e:
            raise NotFoundError("question", question_id) from e

        with self._view_lock:
            self._view_counts[question_id] = max(self._view_counts.get(question_id, 0), views)
            detail = QuestionDetail(
                question=self._question_view(question_id),
                answers=self._answer_views(question_id, viewer_id),
            )
        self._metrics.record_view()
        return detail

    def list_tags(self) -> list[TagCount]:
        """Every tag with the number of questions carrying it."""
        with self._view_lock:
            return self._tags.all_tags()

    # ===== View building =====

    def _require_question(self, question_id: str) -> None:
        with self._view_lock:
            if question_id not in self._question_records:
                raise NotFoundError("question", question_id)

    def _question_view(self, question_id: str) -> QuestionView:
        record = self._question_records[question_id]
        answer_ids = self._answers.answer_ids(question_id)
        return QuestionView(
            question_id=record.question_id,
            title=record.title,
            text=record.text,
            tags=[self._tags.name_for(t) for t in self._tags.tags_for(question_id)],
            asked_by=record.asked_by,
            asked_at=record.asked_at,
            active_at=self._questions.active_time(question_id),
            answer_ids=answer_ids,
            answer_count=len(answer_ids),
            views=self._view_counts.get(question_id, record.views),
        )

    def _answer_views(self, question_id: str, viewer_id: str | None) -> list[AnswerView]:
        return [
            self._ranked_view(ranked, viewer_id)
            for ranked in self._answers.ranked(question_id)
        ]

    def _ranked_view(self, ranked: RankedAnswer, viewer_id: str | None) -> AnswerView:
        comments = [
            CommentView(**c.model_dump())
            for c in self._comments.get(ranked.answer.answer_id, [])
        ]
        return self._answer_view(
            ranked.answer,
            vote_count=ranked.vote_count,
            user_has_voted=bool(viewer_id) and viewer_id in ranked.votes.voters,
            comments=comments,
        )

    @staticmethod
    def _answer_view(
        record: AnswerRecord,
        vote_count: int,
        user_has_voted: bool,
        comments: list[CommentView],
    ) -> AnswerView:
        return AnswerView(
            answer_id=record.answer_id,
            question_id=record.question_id,
            text=record.text,
            answered_by=record.answered_by,
            answered_at=record.answered_at,
            vote_count=vote_count,
            user_has_voted=user_has_voted,
            comments=comments,
        )

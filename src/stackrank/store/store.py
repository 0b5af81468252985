"""SQLite forum store implementation."""

import sqlite3
import threading
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import structlog

from stackrank.store.errors import (
    RecordNotFoundError,
    StoreConnectionError,
    VersionConflict,
)
from stackrank.store.metrics import StoreMetrics
from stackrank.store.migrations import CURRENT_VERSION, MigrationManager
from stackrank.store.models import (
    AnswerRecord,
    CommentRecord,
    QuestionRecord,
    StoreSnapshot,
    TagRecord,
    VoteOutcome,
    VoteResult,
    VoteSnapshot,
)


logger = structlog.get_logger()

MEMORY_PATH = ":memory:"


class SqliteStore:
    """SQLite store for questions, answers, tags, votes and comments.

    One connection is shared by all threads and guarded by an internal
    lock; every write runs in a single ``BEGIN IMMEDIATE`` transaction.
    Answer vote state carries a version column used for compare-and-swap.
    """

    def __init__(
        self,
        db_path: Path | str,
        metrics: StoreMetrics | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ':memory:'.
            metrics: Optional metrics instance.
        """
        self._in_memory = str(db_path) == MEMORY_PATH
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._metrics = metrics or StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        with self._lock:
            if self._conn is not None:
                return

            self._log.info("connecting_to_database")

            if self._in_memory:
                target = MEMORY_PATH
            else:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                target = str(self._db_path)

            # Transactions are opened explicitly in _transaction
            conn = sqlite3.connect(
                target, check_same_thread=False, isolation_level=None
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA foreign_keys=ON")

            migration_mgr = MigrationManager(conn)
            old_version = migration_mgr.get_current_version()
            applied = migration_mgr.apply_migrations()
            self._conn = conn

            self._log.info(
                "database_connected",
                old_version=old_version,
                new_version=CURRENT_VERSION,
                migrations_applied=applied,
            )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._log.info("database_closed")

    def __enter__(self) -> "SqliteStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[sqlite3.Connection]:
        """Run a block inside one write transaction with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            The connection, with the transaction open.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            self._log.debug("transaction_started", tx_id=tx_id, op=operation)

            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                self._metrics.record_tx_failed()
                self._log.warning(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    duration_ms=round((time.perf_counter_ns() - start_ns) / 1e6, 2),
                )
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )

    # ===== Writes =====

    def create_question(
        self, question: QuestionRecord, tags: list[TagRecord]
    ) -> list[TagRecord]:
        """Insert a question and link its tags, creating unseen tags.

        Args:
            question: The question to insert.
            tags: Resolved tags in the author's order (already deduplicated).

        Returns:
            Stored tag records; the display name of an existing tag wins.
        """
        with self._transaction("create_question") as conn:
            stored: list[TagRecord] = []
            created = 0
            for tag in tags:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO tags (tag_id, name) VALUES (?, ?)",
                    (tag.tag_id, tag.name),
                )
                created += cursor.rowcount
                row = conn.execute(
                    "SELECT tag_id, name FROM tags WHERE tag_id = ?", (tag.tag_id,)
                ).fetchone()
                stored.append(TagRecord(tag_id=row["tag_id"], name=row["name"]))

            conn.execute(
                """
                INSERT INTO questions (
                    question_id, title, text, asked_by, asked_at, seq, views
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    question.question_id,
                    question.title,
                    question.text,
                    question.asked_by,
                    question.asked_at.isoformat(),
                    question.seq,
                    question.views,
                ),
            )
            conn.executemany(
                """
                INSERT INTO question_tags (question_id, tag_id, position)
                VALUES (?, ?, ?)
                """,
                [
                    (question.question_id, tag.tag_id, position)
                    for position, tag in enumerate(stored)
                ],
            )

        if created:
            self._metrics.record_tags_created(created)
        return stored

    def create_answer(self, answer: AnswerRecord) -> None:
        """Insert an answer.

        Args:
            answer: The answer to insert.

        Raises:
            RecordNotFoundError: If the question does not exist.
        """
        with self._transaction("create_answer") as conn:
            exists = conn.execute(
                "SELECT 1 FROM questions WHERE question_id = ?",
                (answer.question_id,),
            ).fetchone()
            if exists is None:
                raise RecordNotFoundError("questions", answer.question_id)

            conn.execute(
                """
                INSERT INTO answers (
                    answer_id, question_id, text, answered_by, answered_at, seq
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    answer.answer_id,
                    answer.question_id,
                    answer.text,
                    answer.answered_by,
                    answer.answered_at.isoformat(),
                    answer.seq,
                ),
            )

    def create_comment(self, comment: CommentRecord) -> None:
        """Insert a comment.

        Args:
            comment: The comment to insert.

        Raises:
            RecordNotFoundError: If the answer does not exist.
        """
        with self._transaction("create_comment") as conn:
            exists = conn.execute(
                "SELECT 1 FROM answers WHERE answer_id = ?", (comment.answer_id,)
            ).fetchone()
            if exists is None:
                raise RecordNotFoundError("answers", comment.answer_id)

            conn.execute(
                """
                INSERT INTO comments (
                    comment_id, answer_id, text, commented_by, commented_at
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    comment.comment_id,
                    comment.answer_id,
                    comment.text,
                    comment.commented_by,
                    comment.commented_at.isoformat(),
                ),
            )

    def toggle_vote(
        self, answer_id: str, user_id: str, expected_version: int
    ) -> VoteResult:
        """Toggle a user's vote on an answer with compare-and-swap.

        Args:
            answer_id: Answer being voted on.
            user_id: Voting user.
            expected_version: Vote version the caller based its decision on.

        Returns:
            The outcome and the committed vote snapshot.

        Raises:
            RecordNotFoundError: If the answer does not exist.
            VersionConflict: If the stored version differs from expected.
        """
        with self._transaction("toggle_vote") as conn:
            row = conn.execute(
                "SELECT vote_count, vote_version FROM answers WHERE answer_id = ?",
                (answer_id,),
            ).fetchone()
            if row is None:
                raise RecordNotFoundError("answers", answer_id)
            if row["vote_version"] != expected_version:
                self._metrics.record_version_conflict()
                raise VersionConflict(answer_id, expected_version, row["vote_version"])

            present = conn.execute(
                "SELECT 1 FROM votes WHERE answer_id = ? AND user_id = ?",
                (answer_id, user_id),
            ).fetchone()

            if present is not None:
                conn.execute(
                    "DELETE FROM votes WHERE answer_id = ? AND user_id = ?",
                    (answer_id, user_id),
                )
                outcome = VoteOutcome.REMOVED
                count = max(0, row["vote_count"] - 1)
            else:
                conn.execute(
                    "INSERT INTO votes (answer_id, user_id) VALUES (?, ?)",
                    (answer_id, user_id),
                )
                outcome = VoteOutcome.INSERTED
                count = row["vote_count"] + 1

            version = expected_version + 1
            conn.execute(
                """
                UPDATE answers SET vote_count = ?, vote_version = ?
                WHERE answer_id = ? AND vote_version = ?
                """,
                (count, version, answer_id, expected_version),
            )
            voters = self._select_voters(conn, answer_id)

        return VoteResult(
            outcome=outcome,
            user_id=user_id,
            snapshot=VoteSnapshot(
                answer_id=answer_id,
                count=count,
                voters=voters,
                version=version,
            ),
        )

    def increment_views(self, question_id: str) -> int:
        """Bump a question's view counter.

        Args:
            question_id: The question being viewed.

        Returns:
            The new view count.

        Raises:
            RecordNotFoundError: If the question does not exist.
        """
        with self._transaction("increment_views") as conn:
            cursor = conn.execute(
                "UPDATE questions SET views = views + 1 WHERE question_id = ?",
                (question_id,),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError("questions", question_id)
            row = conn.execute(
                "SELECT views FROM questions WHERE question_id = ?", (question_id,)
            ).fetchone()
            views: int = row["views"]
        return views

    # ===== Reads =====

    def _select_voters(self, conn: sqlite3.Connection, answer_id: str) -> frozenset[str]:
        cursor = conn.execute(
            "SELECT user_id FROM votes WHERE answer_id = ?", (answer_id,)
        )
        return frozenset(row["user_id"] for row in cursor.fetchall())

    def get_vote_snapshot(self, answer_id: str) -> VoteSnapshot:
        """Read the committed vote state of an answer.

        Args:
            answer_id: The answer to read.

        Returns:
            Vote snapshot at the current version.

        Raises:
            RecordNotFoundError: If the answer does not exist.
        """
        with self._lock:
            conn = self._ensure_connected()
            row = conn.execute(
                "SELECT vote_count, vote_version FROM answers WHERE answer_id = ?",
                (answer_id,),
            ).fetchone()
            if row is None:
                raise RecordNotFoundError("answers", answer_id)
            return VoteSnapshot(
                answer_id=answer_id,
                count=row["vote_count"],
                voters=self._select_voters(conn, answer_id),
                version=row["vote_version"],
            )

    def load_snapshot(self) -> StoreSnapshot:
        """Read every record needed to rebuild the engine's indexes.

        Returns:
            Snapshot with all tags, questions, answers, comments and votes.
        """
        with self._lock:
            conn = self._ensure_connected()

            tags = [
                TagRecord(tag_id=row["tag_id"], name=row["name"])
                for row in conn.execute("SELECT tag_id, name FROM tags")
            ]

            tags_by_question: dict[str, list[str]] = {}
            for row in conn.execute(
                "SELECT question_id, tag_id FROM question_tags "
                "ORDER BY question_id, position"
            ):
                tags_by_question.setdefault(row["question_id"], []).append(row["tag_id"])

            questions = [
                QuestionRecord(
                    question_id=row["question_id"],
                    title=row["title"],
                    text=row["text"],
                    tags=tags_by_question.get(row["question_id"], []),
                    asked_by=row["asked_by"],
                    asked_at=datetime.fromisoformat(row["asked_at"]),
                    seq=row["seq"],
                    views=row["views"],
                )
                for row in conn.execute("SELECT * FROM questions ORDER BY seq")
            ]

            answer_rows = conn.execute("SELECT * FROM answers ORDER BY seq").fetchall()
            answers = [
                AnswerRecord(
                    answer_id=row["answer_id"],
                    question_id=row["question_id"],
                    text=row["text"],
                    answered_by=row["answered_by"],
                    answered_at=datetime.fromisoformat(row["answered_at"]),
                    seq=row["seq"],
                )
                for row in answer_rows
            ]

            voters_by_answer: dict[str, set[str]] = {}
            for row in conn.execute("SELECT answer_id, user_id FROM votes"):
                voters_by_answer.setdefault(row["answer_id"], set()).add(row["user_id"])

            votes = [
                VoteSnapshot(
                    answer_id=row["answer_id"],
                    count=row["vote_count"],
                    voters=frozenset(voters_by_answer.get(row["answer_id"], set())),
                    version=row["vote_version"],
                )
                for row in answer_rows
            ]

            comments = [
                CommentRecord(
                    comment_id=row["comment_id"],
                    answer_id=row["answer_id"],
                    text=row["text"],
                    commented_by=row["commented_by"],
                    commented_at=datetime.fromisoformat(row["commented_at"]),
                )
                for row in conn.execute(
                    "SELECT * FROM comments ORDER BY commented_at, rowid"
                )
            ]

            max_seq = max(
                [q.seq for q in questions] + [a.seq for a in answers],
                default=0,
            )

        self._log.info(
            "snapshot_loaded",
            questions=len(questions),
            answers=len(answers),
            tags=len(tags),
            comments=len(comments),
        )
        return StoreSnapshot(
            tags=tags,
            questions=questions,
            answers=answers,
            comments=comments,
            votes=votes,
            max_seq=max_seq,
        )

    def get_schema_version(self) -> int:
        """Get the current schema version."""
        with self._lock:
            return MigrationManager(self._ensure_connected()).get_current_version()

    def get_stats(self) -> dict[str, int]:
        """Get row counts per table.

        Returns:
            Dictionary of table name to row count.
        """
        with self._lock:
            conn = self._ensure_connected()
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]  # noqa: S608
                for table in ("questions", "answers", "tags", "votes", "comments")
            }

"""SQLite schema migrations for the forum store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from stackrank.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 2


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
        down_sql: SQL to rollback the migration.
    """

    version: int
    description: str
    up_sql: str
    down_sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Questions, answers, tags, votes and comments",
        up_sql="""
CREATE TABLE IF NOT EXISTS tags (
    tag_id TEXT PRIMARY KEY,
    name TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS questions (
    question_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    text TEXT NOT NULL,
    asked_by TEXT,
    asked_at TEXT NOT NULL,
    seq INTEGER NOT NULL UNIQUE
);
CREATE INDEX IF NOT EXISTS idx_questions_asked_at ON questions(asked_at);

-- position keeps the author's tag order
CREATE TABLE IF NOT EXISTS question_tags (
    question_id TEXT NOT NULL REFERENCES questions(question_id),
    tag_id TEXT NOT NULL REFERENCES tags(tag_id),
    position INTEGER NOT NULL,
    PRIMARY KEY (question_id, tag_id)
);
CREATE INDEX IF NOT EXISTS idx_question_tags_tag ON question_tags(tag_id);

CREATE TABLE IF NOT EXISTS answers (
    answer_id TEXT PRIMARY KEY,
    question_id TEXT NOT NULL REFERENCES questions(question_id),
    text TEXT NOT NULL,
    answered_by TEXT,
    answered_at TEXT NOT NULL,
    seq INTEGER NOT NULL UNIQUE,
    vote_count INTEGER NOT NULL DEFAULT 0,
    vote_version INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_answers_question ON answers(question_id);

CREATE TABLE IF NOT EXISTS votes (
    answer_id TEXT NOT NULL REFERENCES answers(answer_id),
    user_id TEXT NOT NULL,
    PRIMARY KEY (answer_id, user_id)
);

CREATE TABLE IF NOT EXISTS comments (
    comment_id TEXT PRIMARY KEY,
    answer_id TEXT NOT NULL REFERENCES answers(answer_id),
    text TEXT NOT NULL,
    commented_by TEXT NOT NULL,
    commented_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_comments_answer ON comments(answer_id);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_comments_answer;
DROP TABLE IF EXISTS comments;
DROP TABLE IF EXISTS votes;
DROP INDEX IF EXISTS idx_answers_question;
DROP TABLE IF EXISTS answers;
DROP INDEX IF EXISTS idx_question_tags_tag;
DROP TABLE IF EXISTS question_tags;
DROP INDEX IF EXISTS idx_questions_asked_at;
DROP TABLE IF EXISTS questions;
DROP TABLE IF EXISTS tags;
""",
    ),
    Migration(
        version=2,
        description="Question view counter",
        up_sql="""
ALTER TABLE questions ADD COLUMN views INTEGER NOT NULL DEFAULT 0;
""",
        down_sql="""
ALTER TABLE questions DROP COLUMN views;
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied.

    Args:
        current_version: The current schema version.

    Returns:
        List of migrations to apply in order.
    """
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Manages SQLite schema migrations."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def ensure_version_table(self) -> None:
        """Ensure the schema_version table exists."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()

    def get_current_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current version number, or 0 if no migrations applied.
        """
        self.ensure_version_table()
        cursor = self._conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration script fails.
        """
        current = self.get_current_version()
        pending = get_migrations_to_apply(current)

        if not pending:
            self._log.info("no_migrations_pending", current_version=current)
            return []

        applied: list[int] = []

        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )

            try:
                self._conn.executescript(migration.up_sql)
                self._conn.execute(
                    """
                    INSERT INTO schema_version (version, applied_at, description)
                    VALUES (?, ?, ?)
                    """,
                    (
                        migration.version,
                        datetime.now(UTC).isoformat(),
                        migration.description,
                    ),
                )
                self._conn.commit()
                applied.append(migration.version)
                self._log.info("migration_applied", version=migration.version)

            except sqlite3.Error as e:
                self._log.error(
                    "migration_failed",
                    version=migration.version,
                    error=str(e),
                )
                self._conn.rollback()
                raise MigrationError(migration.version, str(e)) from e

        return applied

    def get_applied_migrations(self) -> list[dict[str, str | int]]:
        """Get list of applied migrations.

        Returns:
            List of dicts with version, applied_at, and description.
        """
        self.ensure_version_table()
        cursor = self._conn.execute(
            """
            SELECT version, applied_at, description
            FROM schema_version
            ORDER BY version
            """
        )
        return [
            {
                "version": row[0],
                "applied_at": row[1],
                "description": row[2],
            }
            for row in cursor.fetchall()
        ]

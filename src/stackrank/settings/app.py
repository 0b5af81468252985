"""Engine settings powered by Pydantic BaseSettings."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnswerTieBreak(str, Enum):
    """How equally-voted answers are ordered within a question.

    - OLDEST_FIRST: earlier answer first (default)
    - NEWEST_FIRST: most recent answer first
    """

    OLDEST_FIRST = "oldest_first"
    NEWEST_FIRST = "newest_first"


class EngineSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STACKRANK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    store_path: str = Field(
        default="data/stackrank.sqlite",
        description="SQLite database file, or ':memory:'",
    )
    answer_tie_break: AnswerTieBreak = Field(default=AnswerTieBreak.OLDEST_FIRST)
    vote_max_retries: int = Field(default=5, ge=1, le=100)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)


def get_settings() -> EngineSettings:
    """Get a settings instance."""
    return EngineSettings()

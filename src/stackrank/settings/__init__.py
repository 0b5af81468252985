"""Engine settings loading."""

from .app import AnswerTieBreak, EngineSettings, get_settings


__all__ = ["AnswerTieBreak", "EngineSettings", "get_settings"]

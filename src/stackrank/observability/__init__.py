"""Observability module for logging and metrics."""

from stackrank.observability.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from stackrank.observability.metrics import EngineMetrics


__all__ = [
    "EngineMetrics",
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
    "get_logger",
]

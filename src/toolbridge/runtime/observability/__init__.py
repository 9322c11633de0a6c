"""Structured logging to stderr."""

from .logging import (
    BoundLogger,
    ConsoleRenderer,
    JsonRenderer,
    ListRenderer,
    LogEntry,
    LogRenderer,
    NoOpRenderer,
    configure_logging,
    get_logger,
    log_context,
    set_renderer,
)

__all__ = [
    "BoundLogger", "LogEntry", "LogRenderer",
    "ConsoleRenderer", "JsonRenderer", "NoOpRenderer", "ListRenderer",
    "configure_logging", "set_renderer", "get_logger", "log_context",
]

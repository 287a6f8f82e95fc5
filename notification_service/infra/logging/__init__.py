"""Structured logging: dictConfig + QueueListener, JSON lines, context injection.

Usage:
    from notification_service.infra.logging import setup_logging, set_log_context

    setup_logging()
    set_log_context(notification_id="abc-123")
"""

from __future__ import annotations

from notification_service.infra.logging.config import configure_logging, setup_logging, shutdown
from notification_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from notification_service.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "configure_logging",
    "get_log_context",
    "log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]

"""Per-task log context.

Fields placed here (``request_id`` for HTTP requests; ``delivery_tag``,
``routing_key`` and ``notification_id`` for queue messages) are copied onto
every record logged by the same task, without threading them through calls.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**fields: Any) -> None:
    """Merge ``fields`` into the current task's context."""
    _log_context.set({**_log_context.get(), **fields})


def get_log_context() -> dict[str, Any]:
    return dict(_log_context.get())


def clear_log_context() -> None:
    _log_context.set({})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Scope ``fields`` to a block; the previous context is restored on exit.

    Example:
        with log_context(delivery_tag=7, routing_key="notification.email"):
            logger.info("Dispatching")  # carries delivery_tag and routing_key
    """
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Copy the log context onto each record.

    Installed on the QueueHandler so the context is read in the emitting
    task. Attributes already on the record (explicit ``extra=``) win.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True

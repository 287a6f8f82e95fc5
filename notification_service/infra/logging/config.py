"""Logging configuration.

Everything is declared in one ``dictConfig`` dictionary: concrete handlers
(console, rotating file) sit behind a single ``QueueHandler`` on the root
logger, and a ``QueueListener`` thread does the I/O so the event loop never
blocks on a log write.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueListener
from pathlib import Path
from typing import TYPE_CHECKING, Any

from notification_service.infra.logging.context import ContextInjectingFilter
from notification_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from notification_service.core.settings.logs import LoggingSettings

_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

logger = logging.getLogger(__name__)

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"
QUEUE_HANDLER = "queue"


def shutdown() -> None:
    """Stop the listener thread, flushing queued records. Idempotent."""
    global _listener

    if _listener is not None:
        _listener.stop()
        _listener = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Configure logging once per process (API lifespan and CLI share this).

    Args:
        log_settings: Settings to use; loaded from LOG_* when omitted.
        force: Reconfigure even when already configured.
        **configure_kwargs: Overrides for ``configure_logging``.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from notification_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **configure_kwargs})
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    console_level: str | None = None,
    file_level: str | None = None,
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    capture_warnings: bool = True,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "notification-service",
) -> None:
    """Apply the logging configuration and start the queue listener."""
    global _listener

    shutdown()
    logging.captureWarnings(capture_warnings)

    handlers: dict[str, dict[str, Any]] = {}
    if console_enabled:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": (console_level or log_level).upper(),
            "formatter": "default",
        }
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(path),
            "maxBytes": file_max_bytes,
            "backupCount": file_backup_count,
            "encoding": "utf-8",
            "level": (file_level or log_level).upper(),
            "formatter": "default",
        }

    # The context filter runs on the QueueHandler, i.e. in the emitting task
    queue_handler: dict[str, Any] = {
        "class": "logging.handlers.QueueHandler",
        "handlers": list(handlers),
        "respect_handler_level": True,
        "filters": ["context"] if include_context else [],
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": _formatter_config(json_logs, service_name)},
            "filters": {"context": {"()": ContextInjectingFilter}},
            "handlers": {**handlers, QUEUE_HANDLER: queue_handler},
            "root": {"level": log_level.upper(), "handlers": [QUEUE_HANDLER]},
        }
    )

    handler = logging.getHandlerByName(QUEUE_HANDLER)
    if handler is not None and handler.listener is not None:
        _listener = handler.listener
        _listener.start()
        atexit.register(shutdown)


def _formatter_config(json_logs: bool, service_name: str) -> dict[str, Any]:
    if json_logs:
        return {"()": JSONFormatter, "static": {"service": service_name}}
    return {"format": TEXT_FORMAT, "datefmt": TEXT_DATEFMT}

"""CLI utilities for running async commands and formatting output."""

from notification_service.cli.utils.async_runner import coro, stop_on_signals
from notification_service.cli.utils.formatters import (
    counts_table,
    error,
    header,
    info,
    record_row,
    success,
    warning,
)

__all__ = [
    "coro",
    "counts_table",
    "error",
    "header",
    "info",
    "record_row",
    "stop_on_signals",
    "success",
    "warning",
]

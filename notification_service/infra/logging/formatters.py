"""JSON Lines formatter with OpenTelemetry trace correlation."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord carries; anything else arrived via extra= or a filter
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    ``fmt_keys`` maps output keys to LogRecord attributes, ``static`` adds
    constant fields (service name). Context fields injected by
    ``ContextInjectingFilter`` and ``extra={...}`` values are appended as-is;
    values json can't encode are rendered with ``str``.

        {"level": "INFO", "logger": "notification_service.infra.messaging.consumer",
         "message": "Message acknowledged", "timestamp": "2025-01-01T00:00:00.123Z",
         "notification_id": "abc-123"}
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.fmt_keys = fmt_keys or {"level": "levelname", "logger": "name", "message": "message"}
        self.static = dict(static or {})

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        payload = {key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()}
        payload["timestamp"] = _iso_utc(record.created)
        payload.update(_trace_ids())
        if record.exc_info:
            payload["exception"] = _one_line(self.formatException(record.exc_info))
        if record.stack_info:
            payload["stack_trace"] = _one_line(record.stack_info)
        payload.update(self.static)
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and key not in payload
        )
        return json.dumps(payload, ensure_ascii=False, default=str)


def _iso_utc(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=UTC).isoformat(timespec="milliseconds")
    return stamp.removesuffix("+00:00") + "Z"


def _one_line(text: str) -> str:
    return text.replace("\n", "\\n")


def _trace_ids() -> dict[str, str]:
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return {}
    return {"trace_id": format(ctx.trace_id, "032x"), "span_id": format(ctx.span_id, "016x")}

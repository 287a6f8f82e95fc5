"""Prometheus metrics for notification dispatch."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

notification_dispatch_total = Counter(
    "notification_dispatch_total",
    "Completed notification dispatches",
    labelnames=["channel", "source", "status"],
)
"""
Counter incremented once per dispatch, after the audit update.

Labels:
    channel: email, whatsapp, sms, push or "unknown"
    source: SyncAPI or Queue
    status: success or failed

Example:
    notification_dispatch_total.labels(channel="email", source="Queue", status="success").inc()
"""

notification_dispatch_errors_total = Counter(
    "notification_dispatch_errors_total",
    "Failed notification dispatches by error kind",
    labelnames=["channel", "error_kind"],
)

notification_provider_duration_seconds = Histogram(
    "notification_provider_duration_seconds",
    "Latency of individual provider calls",
    labelnames=["provider", "outcome"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
"""
Histogram of provider call latency.

Labels:
    provider: maileroo, console, twilio, mock
    outcome: success, failure or error (exception raised)
"""

notification_provider_attempts_total = Counter(
    "notification_provider_attempts_total",
    "Provider calls made, including retries",
    labelnames=["provider", "retry"],
)


def channel_label(channel: object) -> str:
    return str(channel) if channel is not None else "unknown"


__all__ = [
    "channel_label",
    "notification_dispatch_errors_total",
    "notification_dispatch_total",
    "notification_provider_attempts_total",
    "notification_provider_duration_seconds",
]

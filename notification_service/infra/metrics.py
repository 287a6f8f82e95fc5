"""Prometheus metrics for infrastructure concerns (retry, queue consumer).

Notification dispatch metrics live in
``notification_service.features.notifications.metrics``.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, generate_latest

# =============================================================================
# Retry Metrics
# =============================================================================

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Total number of retries performed by the retry decorator",
    labelnames=["function"],
)
"""
Counter incremented once per retry (not per first call).

Labels:
    function: Name of the decorated coroutine function
"""

retry_exhausted_total = Counter(
    "retry_exhausted_total",
    "Total number of calls that exhausted all retry attempts",
    labelnames=["function"],
)

# =============================================================================
# Queue Consumer Metrics
# =============================================================================

queue_messages_total = Counter(
    "notification_queue_messages_total",
    "Broker messages finalized by the notification consumer",
    labelnames=["queue", "disposition"],
)
"""
Counter for consumed broker messages.

Labels:
    queue: Fully qualified queue name
    disposition: acked or rejected

Example:
    queue_messages_total.labels(queue="notification-service.notifications", disposition="acked").inc()
"""

queue_deserialization_failures_total = Counter(
    "notification_queue_deserialization_failures_total",
    "Queue payloads that could not be decoded into a notification event",
    labelnames=["queue"],
)

queue_consumer_connected = Gauge(
    "notification_queue_consumer_connected",
    "1 while the notification consumer holds an open broker connection",
)

queue_reconnects_total = Counter(
    "notification_queue_reconnects_total",
    "Automatic broker reconnections performed by the notification consumer",
)


def render_latest() -> tuple[bytes, str]:
    """Return the exposition payload and its content type."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST

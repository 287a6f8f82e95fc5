"""Exchange, queue and routing key conventions for notification messaging.

Names derive from ``RabbitSettings`` so multiple environments can share one
broker:

    exchange:          {exchange_name}                    (topic)
    queue:             {queue_prefix}.{notifications_queue}
    dead-letter exch.: {queue_prefix}.dlx                 (direct)
    dead-letter queue: {queue_prefix}.{notifications_queue}.dlq
    routing key:       notification.<type>
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from notification_service.core.settings import RabbitSettings

ROUTING_KEY_PREFIX = "notification"
"""First segment of every notification routing key."""


def routing_key_for(notification_type: str) -> str:
    """Routing key for a notification type.

    Example:
        >>> routing_key_for(" WhatsApp ")
        'notification.whatsapp'
    """
    suffix = notification_type.strip().lower() or "unknown"
    return f"{ROUTING_KEY_PREFIX}.{suffix}"


def queue_arguments(settings: RabbitSettings) -> dict[str, Any]:
    """Arguments for the notifications queue so rejected messages are dead-lettered."""
    return {
        "x-dead-letter-exchange": settings.dead_letter_exchange_name,
        "x-dead-letter-routing-key": settings.notifications_queue_name,
    }


__all__ = ["ROUTING_KEY_PREFIX", "queue_arguments", "routing_key_for"]

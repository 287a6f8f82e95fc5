"""Handlers for notification events consumed from RabbitMQ.

The consumer owns the broker protocol (ack/reject); these handlers own what
happens to the event: provenance, audit and dispatch.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.models import NotificationSource

if TYPE_CHECKING:
    from notification_service.features.notifications.dispatcher import DispatchResult
    from notification_service.features.notifications.events import NotificationEvent
    from notification_service.features.notifications.service import NotificationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeliveryInfo:
    """Broker-side facts about one message."""

    queue: str
    routing_key: str | None = None
    delivery_tag: int | None = None
    message_id: str | None = None
    redelivered: bool = False


class NotificationEventHandler:
    """Turns queue events into pipeline runs.

    Args:
        service: Shared delivery pipeline
        payload_echo_limit: Maximum characters of the raw body copied into
            the record metadata as ``QueuePayload``
    """

    def __init__(self, service: NotificationService, *, payload_echo_limit: int = 4096) -> None:
        self._service = service
        self._payload_echo_limit = payload_echo_limit

    def _provenance(self, info: DeliveryInfo, raw_payload: str) -> dict[str, str | None]:
        return {
            "Queue": info.queue,
            "RoutingKey": info.routing_key,
            "QueuePayload": raw_payload[: self._payload_echo_limit] if self._payload_echo_limit else None,
            "Redelivered": "true" if info.redelivered else None,
        }

    async def handle(self, event: NotificationEvent, info: DeliveryInfo, raw_payload: str) -> DispatchResult:
        logger.info(
            "Handling notification event",
            extra={
                "type": event.type,
                "notification_id": event.notification_id,
                "routing_key": info.routing_key,
            },
        )
        provenance = self._provenance(info, raw_payload)
        provenance["NotificationId"] = event.notification_id
        for key, value in event.metadata.items():
            provenance.setdefault(f"Event:{key}", value)
        return await self._service.send(
            event.to_request(),
            source=NotificationSource.QUEUE,
            provenance=provenance,
        )

    async def handle_undecodable(self, error_message: str, info: DeliveryInfo, raw_payload: str) -> None:
        """Record a failed audit entry for a body that could not be decoded."""
        await self._service.record_undecodable(
            error_message,
            provenance=self._provenance(info, raw_payload),
        )


__all__ = ["DeliveryInfo", "NotificationEventHandler"]

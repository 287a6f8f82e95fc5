"""Notification publisher built on FastStream's RabbitBroker.

The broker is created and owned by the application lifespan (or a CLI
command) and handed to ``NotificationPublisher``; nothing here is a
module-level singleton.

Usage:
    broker = create_broker(rabbit_settings)
    publisher = NotificationPublisher(broker, rabbit_settings)
    await publisher.start()
    routing_key = await publisher.publish(event)
    await publisher.close()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
import uuid

from faststream.rabbit import ExchangeType, RabbitBroker, RabbitExchange

from notification_service.infra.messaging.conventions import routing_key_for

if TYPE_CHECKING:
    from notification_service.core.settings import RabbitSettings
    from notification_service.features.notifications.events import NotificationEvent

logger = logging.getLogger(__name__)


def create_broker(settings: RabbitSettings) -> RabbitBroker:
    """Create (but do not connect) a RabbitBroker for publishing."""
    return RabbitBroker(
        settings.get_url(),
        graceful_timeout=settings.graceful_timeout,
        logger=logger,
    )


class NotificationPublisher:
    """Publishes ``NotificationEvent``s to the notifications exchange."""

    def __init__(self, broker: RabbitBroker, settings: RabbitSettings) -> None:
        self._broker = broker
        self._settings = settings
        self._exchange = RabbitExchange(
            settings.exchange_name,
            type=ExchangeType(settings.exchange_type),
            durable=settings.durable,
        )
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Connect the broker, bounded by ``connection_timeout``."""
        if self._started:
            return
        logger.info(
            "Starting notification publisher",
            extra={"exchange": self._settings.exchange_name, "timeout": self._settings.connection_timeout},
        )
        await asyncio.wait_for(self._broker.start(), timeout=self._settings.connection_timeout)
        self._started = True

    async def close(self) -> None:
        if not self._started:
            return
        await self._broker.close()
        self._started = False
        logger.info("Notification publisher closed")

    async def publish(self, event: NotificationEvent) -> str:
        """Publish a persistent message routed by the event's type.

        Returns:
            The routing key used.
        """
        routing_key = routing_key_for(event.type)
        message_id = event.notification_id or str(uuid.uuid4())
        await self._broker.publish(
            event.model_dump(mode="json", by_alias=True, exclude_none=True),
            exchange=self._exchange,
            routing_key=routing_key,
            persist=True,
            message_id=message_id,
            content_type="application/json",
        )
        logger.info(
            "Notification event published",
            extra={"routing_key": routing_key, "notification_id": message_id},
        )
        return routing_key

    async def ping(self, timeout: float = 2.0) -> bool:
        """Whether the broker connection is usable."""
        if not self._started:
            return False
        try:
            return bool(await self._broker.ping(timeout=timeout))
        except Exception as exc:
            logger.warning("Broker ping failed", extra={"error": str(exc)})
            return False


__all__ = ["NotificationPublisher", "create_broker"]

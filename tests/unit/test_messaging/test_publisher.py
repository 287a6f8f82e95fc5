"""Unit tests for the FastStream notification publisher and routing conventions."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from faststream.rabbit import RabbitBroker
import pytest

from notification_service.core.settings import RabbitSettings
from notification_service.features.notifications.events import NotificationEvent
from notification_service.infra.messaging import (
    NotificationPublisher,
    create_broker,
    queue_arguments,
    routing_key_for,
)


@pytest.fixture
def rabbit_settings() -> RabbitSettings:
    return RabbitSettings(enabled=True, exchange_name="notifications", connection_timeout=1.0)


@pytest.fixture
def broker() -> MagicMock:
    broker = MagicMock()
    broker.start = AsyncMock()
    broker.close = AsyncMock()
    broker.publish = AsyncMock()
    broker.ping = AsyncMock(return_value=True)
    return broker


@pytest.mark.unit
class TestConventions:
    """Routing key and queue argument conventions."""

    @pytest.mark.parametrize(
        ("type_", "expected"),
        [("email", "notification.email"), (" WhatsApp ", "notification.whatsapp"), ("", "notification.unknown")],
    )
    def test_routing_key_for(self, type_, expected):
        assert routing_key_for(type_) == expected

    def test_queue_arguments_dead_letter(self):
        settings = RabbitSettings(enabled=True, queue_prefix="svc")

        assert queue_arguments(settings) == {
            "x-dead-letter-exchange": "svc.dlx",
            "x-dead-letter-routing-key": "svc.notifications",
        }


@pytest.mark.unit
class TestNotificationPublisher:
    """Test suite for NotificationPublisher."""

    def test_create_broker(self, rabbit_settings):
        assert isinstance(create_broker(rabbit_settings), RabbitBroker)

    async def test_start_and_close(self, rabbit_settings, broker):
        publisher = NotificationPublisher(broker, rabbit_settings)

        await publisher.start()
        await publisher.start()
        assert publisher.is_started
        broker.start.assert_awaited_once()

        await publisher.close()
        assert not publisher.is_started
        broker.close.assert_awaited_once()

    async def test_publish_routes_by_type(self, rabbit_settings, broker):
        publisher = NotificationPublisher(broker, rabbit_settings)
        await publisher.start()
        event = NotificationEvent(type="WhatsApp", to="+1", message="hi", notification_id="n-1")

        routing_key = await publisher.publish(event)

        assert routing_key == "notification.whatsapp"
        body = broker.publish.await_args.args[0]
        kwargs = broker.publish.await_args.kwargs
        assert body["Type"] == "WhatsApp"
        assert body["To"] == "+1"
        assert body["NotificationId"] == "n-1"
        assert kwargs["routing_key"] == "notification.whatsapp"
        assert kwargs["persist"] is True
        assert kwargs["message_id"] == "n-1"
        assert kwargs["exchange"].name == "notifications"

    async def test_ping(self, rabbit_settings, broker):
        publisher = NotificationPublisher(broker, rabbit_settings)
        assert await publisher.ping() is False

        await publisher.start()
        assert await publisher.ping() is True

        broker.ping = AsyncMock(side_effect=ConnectionError("gone"))
        assert await publisher.ping() is False

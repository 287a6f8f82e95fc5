"""Unit tests for the RabbitMQ notification consumer (broker mocked)."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from notification_service.core.settings import RabbitSettings
from notification_service.features.notifications.builder import NotificationRecordBuilder
from notification_service.features.notifications.dispatcher import Dispatcher
from notification_service.features.notifications.event_handlers import NotificationEventHandler
from notification_service.features.notifications.models import (
    DeliveryStatus,
    NotificationChannel,
    NotificationSource,
)
from notification_service.features.notifications.service import NotificationService
from notification_service.infra.messaging import ConsumerState, MessageDisposition, QueueConsumer
from tests.utils import FakeProvider, GatedProvider, InMemoryAuditStore, make_incoming_message

WHATSAPP_OK = json.dumps({"Type": "whatsapp", "To": "+5491112345678", "Message": "hi"})


class FakeQueueIterator:
    """Async iterator standing in for ``queue.iterator()``."""

    def __init__(self, messages) -> None:
        self._messages = list(messages)
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed or not self._messages:
            raise StopAsyncIteration
        return self._messages.pop(0)

    async def close(self) -> None:
        self.closed = True


class BufferedQueueIterator(FakeQueueIterator):
    """Keeps yielding prefetched messages after ``close()``, like a real channel buffer."""

    async def __anext__(self):
        if not self._messages:
            raise StopAsyncIteration
        return self._messages.pop(0)


@pytest.fixture
def rabbit_settings() -> RabbitSettings:
    return RabbitSettings(
        enabled=True,
        queue_prefix="test",
        notifications_queue="notifications",
        retry_attempts=1,
        graceful_timeout=1.0,
    )


@pytest.fixture
def store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def whatsapp() -> FakeProvider:
    return FakeProvider("fake-whatsapp")


def build_handler(store, whatsapp) -> NotificationEventHandler:
    dispatcher = Dispatcher(
        store,
        {NotificationChannel.WHATSAPP: whatsapp, NotificationChannel.EMAIL: FakeProvider("fake-email")},
    )
    service = NotificationService(store, dispatcher, NotificationRecordBuilder())
    return NotificationEventHandler(service, payload_echo_limit=32)


@pytest.fixture
def handler(store, whatsapp) -> NotificationEventHandler:
    return build_handler(store, whatsapp)


@pytest.fixture
def consumer(rabbit_settings, handler) -> QueueConsumer:
    return QueueConsumer(rabbit_settings, handler)


def fake_broker(queue_messages=(), *, iterator_cls=FakeQueueIterator):
    """Connection factory plus the mocks it hands out."""
    exchange, dead_letter_exchange = MagicMock(), MagicMock()
    dead_letter_queue, queue = MagicMock(), MagicMock()
    dead_letter_queue.bind = AsyncMock()
    queue.bind = AsyncMock()
    queue.iterator = MagicMock(return_value=iterator_cls(queue_messages))

    channel = MagicMock()
    channel.is_closed = False
    channel.set_qos = AsyncMock()
    channel.declare_exchange = AsyncMock(side_effect=[exchange, dead_letter_exchange])
    channel.declare_queue = AsyncMock(side_effect=[dead_letter_queue, queue])
    channel.get_queue = AsyncMock(return_value=queue)
    channel.close = AsyncMock()

    connection = MagicMock()
    connection.is_closed = False
    connection.channel = AsyncMock(return_value=channel)
    connection.close = AsyncMock()

    connect = AsyncMock(return_value=connection)
    return connect, connection, channel, queue, dead_letter_queue


@pytest.mark.unit
class TestMessageProtocol:
    """Ack only on success; everything else is rejected without requeue."""

    async def test_successful_dispatch_is_acked(self, consumer, store, whatsapp):
        message = make_incoming_message(WHATSAPP_OK, routing_key="notification.whatsapp", delivery_tag=7)

        disposition = await consumer.process_message(message)

        assert disposition is MessageDisposition.ACKED
        message.ack.assert_awaited_once()
        message.reject.assert_not_awaited()
        record = next(iter(store.records.values()))
        assert record.status is DeliveryStatus.SUCCESS
        assert record.source is NotificationSource.QUEUE
        assert record.record_metadata["Queue"] == "test.notifications"
        assert record.record_metadata["RoutingKey"] == "notification.whatsapp"
        assert record.record_metadata["QueuePayload"] == WHATSAPP_OK[:32]
        assert consumer.state is ConsumerState.IDLE

    async def test_failed_dispatch_is_rejected(self, consumer, store):
        message = make_incoming_message(json.dumps({"Type": "email", "To": "", "TextBody": "x"}))

        disposition = await consumer.process_message(message)

        assert disposition is MessageDisposition.REJECTED
        message.reject.assert_awaited_once_with(requeue=False)
        message.ack.assert_not_awaited()
        record = next(iter(store.records.values()))
        assert record.error_message == "Recipient is empty"

    async def test_unsupported_type_is_rejected(self, consumer, store):
        message = make_incoming_message(json.dumps({"Type": "fax", "To": "+1", "Message": "m"}))

        await consumer.process_message(message)

        message.reject.assert_awaited_once_with(requeue=False)
        record = next(iter(store.records.values()))
        assert record.error_message == "Unsupported notification type: fax"

    async def test_transport_error_is_rejected(self, rabbit_settings, store):
        dispatcher = Dispatcher(store, {NotificationChannel.WHATSAPP: FakeProvider(outcomes=[TimeoutError("slow")])})
        handler = NotificationEventHandler(NotificationService(store, dispatcher))
        message = make_incoming_message(WHATSAPP_OK)

        await QueueConsumer(rabbit_settings, handler).process_message(message)

        message.reject.assert_awaited_once_with(requeue=False)
        record = next(iter(store.records.values()))
        assert record.record_metadata["ExceptionType"] == "TimeoutError"

    @pytest.mark.parametrize("body", [b"{not json", b"null"])
    async def test_undecodable_payload_is_audited_and_rejected(self, consumer, store, body):
        message = make_incoming_message(body)

        disposition = await consumer.process_message(message)

        assert disposition is MessageDisposition.REJECTED
        message.reject.assert_awaited_once_with(requeue=False)
        record = next(iter(store.records.values()))
        assert record.status is DeliveryStatus.FAILED
        assert record.channel is None
        assert record.error_message.startswith("Invalid notification payload:")

    async def test_undecodable_payload_rejected_even_if_audit_fails(self, rabbit_settings):
        handler = MagicMock()
        handler.handle_undecodable = AsyncMock(side_effect=RuntimeError("db down"))
        message = make_incoming_message(b"garbage")

        disposition = await QueueConsumer(rabbit_settings, handler).process_message(message)

        assert disposition is MessageDisposition.REJECTED
        message.reject.assert_awaited_once_with(requeue=False)

    async def test_handler_exception_is_rejected(self, rabbit_settings):
        handler = MagicMock()
        handler.handle = AsyncMock(side_effect=RuntimeError("audit store unavailable"))
        message = make_incoming_message(WHATSAPP_OK)

        disposition = await QueueConsumer(rabbit_settings, handler).process_message(message)

        assert disposition is MessageDisposition.REJECTED
        message.reject.assert_awaited_once_with(requeue=False)

    async def test_event_metadata_and_redelivery_recorded(self, consumer, store):
        body = json.dumps({**json.loads(WHATSAPP_OK), "NotificationId": "n-42", "Metadata": {"tenant": "acme"}})
        message = make_incoming_message(body, redelivered=True)

        await consumer.process_message(message)

        record = next(iter(store.records.values()))
        assert record.record_metadata["NotificationId"] == "n-42"
        assert record.record_metadata["MessageId"] == "n-42"
        assert record.record_metadata["Event:tenant"] == "acme"
        assert record.record_metadata["Redelivered"] == "true"


@pytest.mark.unit
class TestConsumerLifecycle:
    """Connection, topology and the consume loop."""

    async def test_start_declares_topology(self, rabbit_settings, handler):
        connect, connection, channel, queue, dead_letter_queue = fake_broker()
        consumer = QueueConsumer(rabbit_settings, handler, connect=connect)

        await consumer.start()

        assert consumer.is_connected
        connect.assert_awaited_once()
        assert connect.await_args.kwargs["client_properties"] == {
            "connection_name": rabbit_settings.connection_name
        }
        channel.set_qos.assert_awaited_once_with(prefetch_count=rabbit_settings.prefetch_count)
        connection.reconnect_callbacks.add.assert_called_once()
        dead_letter_queue.bind.assert_awaited_once()
        queue_call = channel.declare_queue.await_args_list[1]
        assert queue_call.args == ("test.notifications",)
        assert queue_call.kwargs["arguments"] == {
            "x-dead-letter-exchange": "test.dlx",
            "x-dead-letter-routing-key": "test.notifications",
        }
        queue.bind.assert_awaited_once()
        assert queue.bind.await_args.kwargs["routing_key"] == "notification.#"

        await consumer.stop()

    async def test_existing_queue_used_without_declaring(self, handler):
        settings = RabbitSettings(enabled=True, queue_prefix="test", declare_topology=False, retry_attempts=1)
        connect, _, channel, _, _ = fake_broker()

        await QueueConsumer(settings, handler, connect=connect).start()

        channel.get_queue.assert_awaited_once_with("test.notifications", ensure=True)
        channel.declare_queue.assert_not_awaited()

    async def test_poison_message_does_not_block_the_next(self, rabbit_settings, handler, store):
        poison = make_incoming_message(b"\xff\xfe not json", delivery_tag=1)
        good = make_incoming_message(WHATSAPP_OK, delivery_tag=2)
        connect, connection, channel, _, _ = fake_broker([poison, good])
        consumer = QueueConsumer(rabbit_settings, handler, connect=connect)

        await consumer.start()
        await consumer.run()
        await consumer.stop()

        poison.reject.assert_awaited_once_with(requeue=False)
        poison.ack.assert_not_awaited()
        good.ack.assert_awaited_once()
        assert [r.status for r in store.records.values()] == [DeliveryStatus.FAILED, DeliveryStatus.SUCCESS]
        channel.close.assert_awaited_once()
        connection.close.assert_awaited_once()
        assert consumer.state is ConsumerState.STOPPED
        assert not consumer.is_connected

    async def test_run_requires_start(self, consumer):
        with pytest.raises(RuntimeError, match="not started"):
            await consumer.run()

    async def test_context_manager(self, rabbit_settings, handler):
        connect, connection, _, _, _ = fake_broker()

        async with QueueConsumer(rabbit_settings, handler, connect=connect) as consumer:
            assert consumer.is_connected

        connection.close.assert_awaited_once()


@pytest.mark.unit
class TestGracefulShutdown:
    """Every delivered message ends acked, rejected or requeued, with its record finalized."""

    async def test_stop_cancels_slow_dispatch_after_graceful_timeout(self, rabbit_settings, store):
        provider = GatedProvider("slow-whatsapp")
        message = make_incoming_message(WHATSAPP_OK, delivery_tag=3)
        connect, _, channel, _, _ = fake_broker([message])
        order: list[str] = []
        message.reject.side_effect = lambda **_: order.append("reject")
        channel.close.side_effect = lambda: order.append("channel.close")
        consumer = QueueConsumer(
            rabbit_settings, build_handler(store, provider), connect=connect, graceful_timeout=0.05
        )

        await consumer.start()
        run_task = asyncio.create_task(consumer.run())
        await asyncio.wait_for(provider.started.wait(), timeout=1)
        await consumer.stop()
        await asyncio.wait_for(run_task, timeout=1)

        assert (store.creates, store.updates) == (1, 1)
        record = next(iter(store.records.values()))
        assert record.status is DeliveryStatus.FAILED
        assert record.record_metadata["ExceptionType"] == "CancelledError"
        message.reject.assert_awaited_once_with(requeue=False)
        message.ack.assert_not_awaited()
        assert order == ["reject", "channel.close"]
        assert consumer.state is ConsumerState.STOPPED

    async def test_cancelled_consumer_task_still_finalizes_message(self, rabbit_settings, store):
        provider = GatedProvider("slow-whatsapp")
        message = make_incoming_message(WHATSAPP_OK)
        connect, _, _, _, _ = fake_broker([message])
        consumer = QueueConsumer(rabbit_settings, build_handler(store, provider), connect=connect)

        await consumer.start()
        run_task = asyncio.create_task(consumer.run())
        await asyncio.wait_for(provider.started.wait(), timeout=1)
        run_task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await run_task

        assert store.updates == 1
        assert next(iter(store.records.values())).status is DeliveryStatus.FAILED
        message.reject.assert_awaited_once_with(requeue=False)
        message.ack.assert_not_awaited()

    async def test_in_flight_message_finishes_within_graceful_timeout(self, rabbit_settings, store):
        provider = GatedProvider("slow-whatsapp")
        in_flight = make_incoming_message(WHATSAPP_OK, delivery_tag=1)
        buffered = make_incoming_message(WHATSAPP_OK, delivery_tag=2)
        connect, _, _, _, _ = fake_broker([in_flight, buffered], iterator_cls=BufferedQueueIterator)
        consumer = QueueConsumer(rabbit_settings, build_handler(store, provider), connect=connect)

        await consumer.start()
        run_task = asyncio.create_task(consumer.run())
        await asyncio.wait_for(provider.started.wait(), timeout=1)
        stop_task = asyncio.create_task(consumer.stop())
        await asyncio.sleep(0)
        provider.release.set()
        await asyncio.wait_for(stop_task, timeout=1)
        await asyncio.wait_for(run_task, timeout=1)

        in_flight.ack.assert_awaited_once()
        buffered.nack.assert_awaited_once_with(requeue=True)
        buffered.ack.assert_not_awaited()
        buffered.reject.assert_not_awaited()
        assert store.creates == 1
        assert next(iter(store.records.values())).status is DeliveryStatus.SUCCESS

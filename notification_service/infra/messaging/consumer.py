"""RabbitMQ consumer driving the notification delivery pipeline.

One ``QueueConsumer`` owns one robust aio-pika connection and one channel.
Messages are processed one at a time::

    IDLE -> RECEIVED -> DESERIALIZING -> DISPATCHING -> ACKNOWLEDGING -> IDLE
                              |                |
                              +----------------+--> REJECTING -> IDLE

A message is acknowledged only when its dispatch succeeded. Every other
outcome rejects it without requeue, which routes it to the dead-letter queue,
so a poison message never blocks the ones behind it.

On ``stop()`` the in-flight message gets ``graceful_timeout`` seconds; after
that its dispatch is cancelled, audited and the message rejected before the
channel closes. Messages still buffered in the channel are requeued.

Usage:
    async with QueueConsumer(rabbit_settings, handler) as consumer:
        await consumer.run()
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
import logging
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika.exceptions import AMQPConnectionError

from notification_service.features.notifications.event_handlers import DeliveryInfo
from notification_service.features.notifications.events import (
    EventDeserializationError,
    NotificationEvent,
)
from notification_service.infra.logging import log_context, set_log_context
from notification_service.infra.messaging.conventions import queue_arguments
from notification_service.infra.metrics import (
    queue_consumer_connected,
    queue_deserialization_failures_total,
    queue_messages_total,
    queue_reconnects_total,
)
from notification_service.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aio_pika.abc import (
        AbstractChannel,
        AbstractIncomingMessage,
        AbstractQueue,
        AbstractQueueIterator,
        AbstractRobustConnection,
    )

    from notification_service.core.settings import RabbitSettings
    from notification_service.features.notifications.dispatcher import DispatchResult
    from notification_service.features.notifications.event_handlers import NotificationEventHandler

logger = logging.getLogger(__name__)

# Seconds allowed for the audit write and reject once a dispatch is cancelled
FINALIZE_TIMEOUT = 5.0


class ConsumerState(StrEnum):
    """Per-message processing state of the consumer."""

    IDLE = "idle"
    RECEIVED = "received"
    DESERIALIZING = "deserializing"
    DISPATCHING = "dispatching"
    ACKNOWLEDGING = "acknowledging"
    REJECTING = "rejecting"
    STOPPED = "stopped"


class MessageDisposition(StrEnum):
    """How a broker message was finalized."""

    ACKED = "acked"
    REJECTED = "rejected"


class QueueConsumer:
    """Long-lived consumer for the notifications queue.

    Args:
        settings: RabbitMQ settings (URL, topology, QoS, timeouts)
        handler: Pipeline entry point for decoded events
        connect: Connection factory, ``aio_pika.connect_robust`` by default
        graceful_timeout: Seconds ``stop()`` waits for the in-flight message
            before cancelling its dispatch (``settings.graceful_timeout`` when omitted)
    """

    def __init__(
        self,
        settings: RabbitSettings,
        handler: NotificationEventHandler,
        *,
        connect: Callable[..., Awaitable[AbstractRobustConnection]] = aio_pika.connect_robust,
        graceful_timeout: float | None = None,
    ) -> None:
        self._settings = settings
        self._handler = handler
        self._connect = connect
        self._graceful_timeout = settings.graceful_timeout if graceful_timeout is None else graceful_timeout
        self._queue_name = settings.notifications_queue_name

        self._connection: AbstractRobustConnection | None = None
        self._channel: AbstractChannel | None = None
        self._queue: AbstractQueue | None = None
        self._iterator: AbstractQueueIterator | None = None

        self._state = ConsumerState.IDLE
        self._stopping = False
        self._dispatch_task: asyncio.Task[DispatchResult] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def queue_name(self) -> str:
        return self._queue_name

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    def _set_state(self, state: ConsumerState) -> None:
        self._state = state

    # ─────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────

    async def __aenter__(self) -> QueueConsumer:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> None:
        """Connect, set QoS and declare the topology.

        Raises:
            RetryError: When the broker stays unreachable for every attempt.
        """
        if self._connection is not None:
            return

        self._stopping = False
        self._connection = await self._open_connection()
        self._connection.reconnect_callbacks.add(self._on_reconnect)

        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=self._settings.prefetch_count)
        self._queue = await self._declare_topology(self._channel)

        queue_consumer_connected.set(1)
        self._set_state(ConsumerState.IDLE)
        logger.info(
            "Notification consumer started",
            extra={
                "queue": self._queue_name,
                "prefetch_count": self._settings.prefetch_count,
                "exchange": self._settings.exchange_name,
                "binding_key": self._settings.binding_key,
            },
        )

    async def _open_connection(self) -> AbstractRobustConnection:
        settings = self._settings

        @retry(
            max_attempts=settings.retry_attempts,
            initial_delay=settings.retry_backoff,
            max_delay=settings.retry_max_backoff,
            exceptions=(AMQPConnectionError, OSError, TimeoutError),
        )
        async def connect_to_broker() -> AbstractRobustConnection:
            return await self._connect(
                settings.get_url(),
                timeout=settings.connection_timeout,
                reconnect_interval=settings.reconnect_interval,
                client_properties={"connection_name": settings.connection_name},
            )

        return await connect_to_broker()

    async def _declare_topology(self, channel: AbstractChannel) -> AbstractQueue:
        settings = self._settings
        if not settings.declare_topology:
            return await channel.get_queue(self._queue_name, ensure=True)

        exchange = await channel.declare_exchange(
            settings.exchange_name,
            aio_pika.ExchangeType(settings.exchange_type),
            durable=settings.durable,
        )
        dead_letter_exchange = await channel.declare_exchange(
            settings.dead_letter_exchange_name,
            aio_pika.ExchangeType.DIRECT,
            durable=True,
        )
        dead_letter_queue = await channel.declare_queue(settings.dead_letter_queue_name, durable=True)
        await dead_letter_queue.bind(dead_letter_exchange, routing_key=self._queue_name)

        queue = await channel.declare_queue(
            self._queue_name,
            durable=settings.durable,
            arguments=queue_arguments(settings),
        )
        await queue.bind(exchange, routing_key=settings.binding_key)
        logger.info(
            "Notification topology declared",
            extra={
                "queue": self._queue_name,
                "dead_letter_exchange": settings.dead_letter_exchange_name,
                "dead_letter_queue": settings.dead_letter_queue_name,
            },
        )
        return queue

    def _on_reconnect(self, *_args: Any) -> None:
        queue_reconnects_total.inc()
        logger.warning("Broker connection re-established", extra={"queue": self._queue_name})

    async def run(self) -> None:
        """Consume until ``stop()`` is called."""
        if self._queue is None:
            msg = "Consumer is not started; call start() first"
            raise RuntimeError(msg)

        logger.info("Consuming notifications", extra={"queue": self._queue_name})
        async with self._queue.iterator() as iterator:
            self._iterator = iterator
            async for message in iterator:
                if self._stopping:
                    await self._requeue(message)
                    break
                try:
                    await self.process_message(message)
                except Exception:
                    logger.exception(
                        "Failed to finalize message",
                        extra={"queue": self._queue_name, "delivery_tag": message.delivery_tag},
                    )
        self._iterator = None

    async def stop(self) -> None:
        """Stop consuming, let the in-flight message finish, then close channel and connection."""
        if self._stopping and self._connection is None:
            return
        self._stopping = True

        if self._iterator is not None:
            await self._iterator.close()

        try:
            await asyncio.wait_for(self._idle.wait(), timeout=self._graceful_timeout)
        except TimeoutError:
            logger.warning(
                "In-flight notification did not finish before shutdown, cancelling its dispatch",
                extra={"queue": self._queue_name, "graceful_timeout": self._graceful_timeout},
            )
            await self._cancel_in_flight()

        if self._channel is not None and not self._channel.is_closed:
            await self._channel.close()
        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()

        self._channel = None
        self._connection = None
        self._queue = None
        queue_consumer_connected.set(0)
        self._set_state(ConsumerState.STOPPED)
        logger.info("Notification consumer stopped", extra={"queue": self._queue_name})

    async def _cancel_in_flight(self) -> None:
        task = self._dispatch_task
        if task is not None and not task.done():
            task.cancel()
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=FINALIZE_TIMEOUT)
        except TimeoutError:
            logger.error(
                "In-flight notification was not finalized; the broker will redeliver it",
                extra={"queue": self._queue_name},
            )

    # ─────────────────────────────────────────────────────
    # Message protocol
    # ─────────────────────────────────────────────────────

    async def process_message(self, message: AbstractIncomingMessage) -> MessageDisposition:
        """Decode, dispatch and finalize one message."""
        self._idle.clear()
        self._set_state(ConsumerState.RECEIVED)
        info = DeliveryInfo(
            queue=self._queue_name,
            routing_key=message.routing_key,
            delivery_tag=message.delivery_tag,
            message_id=message.message_id,
            redelivered=bool(message.redelivered),
        )
        try:
            with log_context(
                queue=self._queue_name,
                routing_key=info.routing_key,
                delivery_tag=info.delivery_tag,
                message_id=info.message_id,
            ):
                return await self._process(message, info)
        finally:
            self._set_state(ConsumerState.STOPPED if self._stopping else ConsumerState.IDLE)
            self._idle.set()

    async def _process(self, message: AbstractIncomingMessage, info: DeliveryInfo) -> MessageDisposition:
        raw_payload = message.body.decode("utf-8", errors="replace")

        self._set_state(ConsumerState.DESERIALIZING)
        try:
            event = NotificationEvent.from_payload(message.body)
        except EventDeserializationError as exc:
            queue_deserialization_failures_total.labels(queue=self._queue_name).inc()
            logger.warning("Discarding undecodable notification payload", extra={"error": str(exc)})
            await self._record_undecodable(str(exc), info, raw_payload)
            return await self._reject(message, reason="deserialization")

        set_log_context(notification_id=event.notification_id, notification_type=event.type)
        self._set_state(ConsumerState.DISPATCHING)
        self._dispatch_task = asyncio.create_task(self._handler.handle(event, info, raw_payload))
        try:
            result = await self._dispatch_task
        except asyncio.CancelledError:
            logger.warning("Notification dispatch cancelled")
            disposition = await asyncio.shield(self._reject(message, reason="cancelled"))
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return disposition
        except Exception:
            logger.exception("Unexpected error while dispatching notification")
            return await self._reject(message, reason="unexpected_error")
        finally:
            self._dispatch_task = None

        if result.success:
            return await self._ack(message)
        return await self._reject(message, reason=str(result.error_kind))

    async def _record_undecodable(self, error_message: str, info: DeliveryInfo, raw_payload: str) -> None:
        try:
            await self._handler.handle_undecodable(error_message, info, raw_payload)
        except Exception:
            logger.exception("Could not audit undecodable payload")

    async def _ack(self, message: AbstractIncomingMessage) -> MessageDisposition:
        self._set_state(ConsumerState.ACKNOWLEDGING)
        await message.ack()
        queue_messages_total.labels(queue=self._queue_name, disposition=MessageDisposition.ACKED.value).inc()
        logger.info("Notification message acknowledged")
        return MessageDisposition.ACKED

    async def _reject(self, message: AbstractIncomingMessage, *, reason: str) -> MessageDisposition:
        self._set_state(ConsumerState.REJECTING)
        await message.reject(requeue=False)
        queue_messages_total.labels(queue=self._queue_name, disposition=MessageDisposition.REJECTED.value).inc()
        logger.warning("Notification message rejected", extra={"reason": reason})
        return MessageDisposition.REJECTED

    async def _requeue(self, message: AbstractIncomingMessage) -> None:
        """Hand a message delivered during shutdown back to the broker untouched."""
        try:
            await message.nack(requeue=True)
        except Exception:
            logger.exception(
                "Could not requeue message during shutdown", extra={"delivery_tag": message.delivery_tag}
            )
        else:
            logger.info("Message requeued during shutdown", extra={"delivery_tag": message.delivery_tag})


__all__ = ["ConsumerState", "MessageDisposition", "QueueConsumer"]

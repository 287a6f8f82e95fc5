"""RabbitMQ messaging: aio-pika queue consumer and FastStream publisher."""

from __future__ import annotations

from .consumer import ConsumerState, MessageDisposition, QueueConsumer
from .conventions import ROUTING_KEY_PREFIX, queue_arguments, routing_key_for
from .producer import NotificationPublisher, create_broker

__all__ = [
    "ROUTING_KEY_PREFIX",
    "ConsumerState",
    "MessageDisposition",
    "NotificationPublisher",
    "QueueConsumer",
    "create_broker",
    "queue_arguments",
    "routing_key_for",
]

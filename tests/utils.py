"""Test doubles shared across the suite.

Usage:
    from tests.utils import FakeProvider, GatedProvider, InMemoryAuditStore, make_incoming_message

    provider = FakeProvider("fake-email", outcomes=[TimeoutError("slow"), True])
    store = InMemoryAuditStore()
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock
import uuid

from notification_service.core.database.base import generate_uuid7, utcnow
from notification_service.infra.providers import ProviderResult


class FakeProvider:
    """Scriptable provider.

    ``outcomes`` is consumed one item per call: a ``ProviderResult`` is
    returned, an exception instance is raised, ``True``/``False`` are
    shorthand for success/failure. The last outcome repeats.
    """

    def __init__(self, name: str = "fake", outcomes: list[Any] | None = None, events: list | None = None) -> None:
        self._name = name
        self.outcomes = list(outcomes or [True])
        self._events = events
        self.calls: list[Any] = []

    @property
    def provider_name(self) -> str:
        return self._name

    async def send(self, request):
        self.calls.append(request)
        if self._events is not None:
            self._events.append(("send", request.to))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, ProviderResult):
            return outcome
        if outcome:
            return ProviderResult.success_result(
                self._name, status_code=202, response_body='{"ok":true}', provider_message_id="pm-1"
            )
        return ProviderResult.failure_result(self._name, status_code=422, response_body='{"ok":false}')


class GatedProvider(FakeProvider):
    """Provider whose ``send`` blocks until ``release`` is set.

    ``started`` is set as soon as a send is in flight.
    """

    def __init__(self, name: str = "gated", outcomes: list[Any] | None = None) -> None:
        super().__init__(name, outcomes)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def send(self, request):
        self.started.set()
        await self.release.wait()
        return await super().send(request)


class InMemoryAuditStore:
    """Audit store keeping copies of records in a dict.

    ``events`` records ``("create", status)`` and ``("update", status)`` in
    call order; pass a shared list to interleave with provider calls.
    """

    def __init__(self, events: list | None = None) -> None:
        self.records: dict[uuid.UUID, Any] = {}
        self.events = events if events is not None else []
        self.creates = 0
        self.updates = 0

    async def create(self, record):
        if record.id is None:
            record.id = generate_uuid7()
        record.created_at = record.updated_at = utcnow()
        self.records[record.id] = _snapshot(record)
        self.creates += 1
        self.events.append(("create", record.status))
        return record

    async def update(self, record_id, record) -> bool:
        if record_id not in self.records:
            return False
        record.updated_at = utcnow()
        self.records[record_id] = _snapshot(record)
        self.updates += 1
        self.events.append(("update", record.status))
        return True


def _snapshot(record):
    from notification_service.features.notifications.models import NotificationRecord

    return NotificationRecord(
        id=record.id,
        channel=record.channel,
        source=record.source,
        recipient=record.recipient,
        subject=record.subject,
        message=record.message,
        status=record.status,
        error_message=record.error_message,
        attempt_count=record.attempt_count,
        record_metadata=copy.deepcopy(dict(record.record_metadata or {})),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def make_incoming_message(
    body: bytes | str,
    *,
    routing_key: str = "notification.email",
    delivery_tag: int = 1,
    message_id: str | None = None,
    redelivered: bool = False,
) -> MagicMock:
    """Stand-in for ``aio_pika.abc.AbstractIncomingMessage`` with awaitable ack/reject."""
    message = MagicMock()
    message.body = body.encode() if isinstance(body, str) else body
    message.routing_key = routing_key
    message.delivery_tag = delivery_tag
    message.message_id = message_id
    message.redelivered = redelivered
    message.ack = AsyncMock()
    message.reject = AsyncMock()
    message.nack = AsyncMock()
    return message

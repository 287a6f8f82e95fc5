"""Audit store for notification records.

``NotificationRecordRepository`` holds the queries and takes an explicit
session. ``SqlAlchemyAuditStore`` wraps it with one short-lived session and
transaction per operation, so it can be shared by the HTTP app and the queue
consumer without either owning a session.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

from sqlalchemy import select

from notification_service.core.database import BaseRepository, SearchResult
from notification_service.core.database.base import utcnow
from notification_service.features.notifications.models import (
    DeliveryStatus,
    NotificationChannel,
    NotificationRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

# Fields a dispatch may change; id, source and created_at are immutable
_MUTABLE_FIELDS = (
    "channel",
    "recipient",
    "subject",
    "message",
    "status",
    "error_message",
    "attempt_count",
    "record_metadata",
)


class AuditStore(Protocol):
    """What the delivery pipeline needs from audit storage."""

    async def create(self, record: NotificationRecord) -> NotificationRecord: ...

    async def update(self, record_id: UUID, record: NotificationRecord) -> bool: ...


class NotificationRecordRepository(BaseRepository[NotificationRecord]):
    """Queries over ``notification_records``, newest first."""

    def __init__(self) -> None:
        super().__init__(NotificationRecord)

    async def list_recent(
        self,
        session: AsyncSession,
        *criteria: Any,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[NotificationRecord]:
        return await self.list(
            session,
            *criteria,
            limit=limit,
            offset=offset,
            order_by=NotificationRecord.created_at.desc(),
        )

    async def list_by_recipient(
        self, session: AsyncSession, recipient: str, *, limit: int = 100, offset: int = 0
    ) -> Sequence[NotificationRecord]:
        return await self.list_recent(session, NotificationRecord.recipient == recipient, limit=limit, offset=offset)

    async def list_by_channel(
        self, session: AsyncSession, channel: NotificationChannel, *, limit: int = 100, offset: int = 0
    ) -> Sequence[NotificationRecord]:
        return await self.list_recent(session, NotificationRecord.channel == channel, limit=limit, offset=offset)

    async def list_failed(
        self, session: AsyncSession, *, limit: int = 100, offset: int = 0
    ) -> Sequence[NotificationRecord]:
        return await self.list_recent(
            session, NotificationRecord.status == DeliveryStatus.FAILED, limit=limit, offset=offset
        )

    async def list_by_date_range(
        self,
        session: AsyncSession,
        start: datetime,
        end: datetime,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[NotificationRecord]:
        """Records created in ``[start, end]``."""
        return await self.list_recent(
            session,
            NotificationRecord.created_at >= start,
            NotificationRecord.created_at <= end,
            limit=limit,
            offset=offset,
        )

    async def search_records(
        self,
        session: AsyncSession,
        *,
        recipient: str | None = None,
        channel: NotificationChannel | None = None,
        status: DeliveryStatus | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[NotificationRecord]:
        """Combined filters for the records API."""
        stmt = select(NotificationRecord)
        if recipient:
            stmt = stmt.where(NotificationRecord.recipient == recipient)
        if channel is not None:
            stmt = stmt.where(NotificationRecord.channel == channel)
        if status is not None:
            stmt = stmt.where(NotificationRecord.status == status)
        if start is not None:
            stmt = stmt.where(NotificationRecord.created_at >= start)
        if end is not None:
            stmt = stmt.where(NotificationRecord.created_at <= end)
        stmt = stmt.order_by(NotificationRecord.created_at.desc())
        return await self.search(session, stmt, limit=limit, offset=offset)

    async def count_by_status(self, session: AsyncSession, status: DeliveryStatus) -> int:
        return await self.count(session, NotificationRecord.status == status)


class SqlAlchemyAuditStore:
    """Audit store backed by an ``async_sessionmaker``.

    Every method opens its own session and commits before returning. Returned
    records are detached but fully loaded (the factory is expected to use
    ``expire_on_commit=False``).

    Storage errors are not caught here: a failing store is an unexpected fault
    and must reach the caller.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository: NotificationRecordRepository | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._repository = repository or NotificationRecordRepository()

    @property
    def repository(self) -> NotificationRecordRepository:
        return self._repository

    # ─────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────

    async def create(self, record: NotificationRecord) -> NotificationRecord:
        async with self._session_factory() as session, session.begin():
            created = await self._repository.create(session, record)
        logger.debug("audit.create %s (%s, %s)", created.id, created.channel, created.status)
        return created

    async def create_many(self, records: Iterable[NotificationRecord]) -> Sequence[NotificationRecord]:
        async with self._session_factory() as session, session.begin():
            return await self._repository.create_many(session, records)

    async def update(self, record_id: UUID, record: NotificationRecord) -> bool:
        """Overwrite the mutable fields of the stored record with ``record``'s.

        ``updated_at`` is stamped on both the stored row and ``record``.

        Returns:
            False when no record has ``record_id``.
        """
        async with self._session_factory() as session, session.begin():
            stored = await self._repository.get(session, record_id)
            if stored is None:
                return False
            for name in _MUTABLE_FIELDS:
                setattr(stored, name, getattr(record, name))
            stored.updated_at = utcnow()
            updated_at = stored.updated_at
        record.updated_at = updated_at
        logger.debug("audit.update %s -> %s", record_id, record.status)
        return True

    async def mark_success(self, record_id: UUID) -> bool:
        async with self._session_factory() as session, session.begin():
            stored = await self._repository.get(session, record_id)
            if stored is None:
                return False
            stored.mark_success(utcnow())
            stored.updated_at = utcnow()
        return True

    async def mark_failed(self, record_id: UUID, error_message: str) -> bool:
        async with self._session_factory() as session, session.begin():
            stored = await self._repository.get(session, record_id)
            if stored is None:
                return False
            stored.mark_failed(error_message, utcnow())
            stored.updated_at = utcnow()
        return True

    async def increment_attempt_count(self, record_id: UUID) -> bool:
        async with self._session_factory() as session, session.begin():
            stored = await self._repository.get(session, record_id)
            if stored is None:
                return False
            stored.attempt_count += 1
            stored.updated_at = utcnow()
        return True

    async def delete(self, record_id: UUID) -> bool:
        async with self._session_factory() as session, session.begin():
            stored = await self._repository.get(session, record_id)
            if stored is None:
                return False
            await self._repository.delete(session, stored)
        return True

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete records created before ``cutoff``; returns the number removed."""
        async with self._session_factory() as session, session.begin():
            return await self._repository.delete_where(session, NotificationRecord.created_at < cutoff)

    # ─────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────

    async def get(self, record_id: UUID) -> NotificationRecord | None:
        async with self._session_factory() as session:
            return await self._repository.get(session, record_id)

    async def list(self, skip: int = 0, limit: int = 100) -> Sequence[NotificationRecord]:
        async with self._session_factory() as session:
            return await self._repository.list_recent(session, limit=limit, offset=skip)

    async def list_by_recipient(self, recipient: str, *, skip: int = 0, limit: int = 100) -> Sequence[NotificationRecord]:
        async with self._session_factory() as session:
            return await self._repository.list_by_recipient(session, recipient, limit=limit, offset=skip)

    async def list_by_channel(
        self, channel: NotificationChannel, *, skip: int = 0, limit: int = 100
    ) -> Sequence[NotificationRecord]:
        async with self._session_factory() as session:
            return await self._repository.list_by_channel(session, channel, limit=limit, offset=skip)

    async def list_failed(self, *, skip: int = 0, limit: int = 100) -> Sequence[NotificationRecord]:
        async with self._session_factory() as session:
            return await self._repository.list_failed(session, limit=limit, offset=skip)

    async def list_by_date_range(
        self, start: datetime, end: datetime, *, skip: int = 0, limit: int = 100
    ) -> Sequence[NotificationRecord]:
        async with self._session_factory() as session:
            return await self._repository.list_by_date_range(session, start, end, limit=limit, offset=skip)

    async def search(self, **filters) -> SearchResult[NotificationRecord]:
        async with self._session_factory() as session:
            return await self._repository.search_records(session, **filters)

    async def count_total(self) -> int:
        async with self._session_factory() as session:
            return await self._repository.count(session)

    async def count_success(self) -> int:
        async with self._session_factory() as session:
            return await self._repository.count_by_status(session, DeliveryStatus.SUCCESS)

    async def count_failed(self) -> int:
        async with self._session_factory() as session:
            return await self._repository.count_by_status(session, DeliveryStatus.FAILED)

    async def count_pending(self) -> int:
        async with self._session_factory() as session:
            return await self._repository.count_by_status(session, DeliveryStatus.PENDING)


__all__ = [
    "AuditStore",
    "NotificationRecordRepository",
    "SqlAlchemyAuditStore",
]

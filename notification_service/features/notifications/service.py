"""Notification delivery pipeline shared by the HTTP API and the queue consumer."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import TYPE_CHECKING, Any

from notification_service.features.notifications.builder import NotificationRecordBuilder

if TYPE_CHECKING:
    from notification_service.features.notifications.dispatcher import DispatchResult, Dispatcher
    from notification_service.features.notifications.models import NotificationRecord, NotificationSource
    from notification_service.features.notifications.repository import AuditStore
    from notification_service.features.notifications.schemas import NotificationRequest

logger = logging.getLogger(__name__)


class NotificationService:
    """Build -> persist pending -> dispatch.

    The pending record is written before the dispatcher runs, so every
    attempt is audited even if the process dies mid-send.
    """

    def __init__(
        self,
        store: AuditStore,
        dispatcher: Dispatcher,
        builder: NotificationRecordBuilder | None = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._builder = builder or NotificationRecordBuilder()

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    async def send(
        self,
        request: NotificationRequest,
        *,
        source: NotificationSource,
        provenance: Mapping[str, Any] | None = None,
    ) -> DispatchResult:
        record = self._builder.build(request, source=source, provenance=provenance)
        record = await self._store.create(record)
        logger.info(
            "Notification record created",
            extra={
                "record_id": str(record.id),
                "channel": str(record.channel) if record.channel else None,
                "source": str(source),
            },
        )
        return await self._dispatcher.dispatch(record, request)

    async def record_undecodable(
        self,
        error_message: str,
        *,
        provenance: Mapping[str, Any] | None = None,
    ) -> NotificationRecord:
        """Audit a queue payload that never became a request."""
        record = self._builder.build_undecodable(error_message, provenance=provenance)
        record = await self._store.create(record)
        logger.warning(
            "Undecodable notification payload recorded",
            extra={"record_id": str(record.id), "error": error_message},
        )
        return record


__all__ = ["NotificationService"]

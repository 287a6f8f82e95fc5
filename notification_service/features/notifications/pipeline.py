"""Assembly of the delivery pipeline from settings.

Both the API lifespan and the standalone consumer command build the same
object graph through ``NotificationPipeline.open``.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.builder import NotificationRecordBuilder
from notification_service.features.notifications.dispatcher import (
    Dispatcher,
    retry_strategy_from_settings,
)
from notification_service.features.notifications.event_handlers import NotificationEventHandler
from notification_service.features.notifications.repository import SqlAlchemyAuditStore
from notification_service.features.notifications.service import NotificationService
from notification_service.infra.database import Database
from notification_service.infra.providers import ProviderRegistry

if TYPE_CHECKING:
    from notification_service.core.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class NotificationPipeline:
    """Owned resources of one running pipeline."""

    database: Database
    store: SqlAlchemyAuditStore
    providers: ProviderRegistry
    service: NotificationService
    payload_echo_limit: int = 4096

    @classmethod
    async def open(cls, settings: Settings, *, database: Database | None = None) -> NotificationPipeline:
        """Connect the database, ensure tables and build the providers."""
        database = database or Database.from_settings(settings.db)
        await database.connect()
        if settings.db.create_tables:
            await database.create_tables()

        store = SqlAlchemyAuditStore(database.session_factory)
        providers = ProviderRegistry.from_settings(settings.email, settings.whatsapp)
        retry_strategy = retry_strategy_from_settings(settings.dispatch)
        dispatcher = Dispatcher(store, providers.providers, retry_strategy)
        service = NotificationService(store, dispatcher, NotificationRecordBuilder())

        logger.info(
            "Notification pipeline ready",
            extra={
                "channels": sorted(str(channel) for channel in providers.providers),
                "retry": repr(retry_strategy),
            },
        )
        return cls(
            database=database,
            store=store,
            providers=providers,
            service=service,
            payload_echo_limit=settings.dispatch.payload_echo_limit,
        )

    def event_handler(self) -> NotificationEventHandler:
        return NotificationEventHandler(self.service, payload_echo_limit=self.payload_echo_limit)

    async def close(self) -> None:
        await self.providers.aclose()
        await self.database.dispose()


__all__ = ["NotificationPipeline"]

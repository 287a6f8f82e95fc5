"""FastAPI dependencies for the notifications feature.

Everything is resolved from ``app.state``, where the lifespan stores the
objects it owns.

Example usage:
    @router.post("/email")
    async def send_email(payload: SendEmailPayload, service: NotificationServiceDep):
        ...
"""

from typing import Annotated

from fastapi import Depends, Request

from notification_service.core.exceptions import ServiceUnavailableException
from notification_service.features.notifications.repository import SqlAlchemyAuditStore
from notification_service.features.notifications.service import NotificationService
from notification_service.infra.database import Database
from notification_service.infra.messaging import NotificationPublisher
from notification_service.infra.providers import ProviderRegistry


def get_notification_service(request: Request) -> NotificationService:
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise ServiceUnavailableException(
            detail="Notification pipeline is not available (database disabled or not initialized)",
            type="pipeline-unavailable",
        )
    return service


def get_audit_store(request: Request) -> SqlAlchemyAuditStore:
    store = getattr(request.app.state, "audit_store", None)
    if store is None:
        raise ServiceUnavailableException(
            detail="Audit store is not available",
            type="audit-store-unavailable",
        )
    return store


def get_publisher(request: Request) -> NotificationPublisher | None:
    """The lifespan-owned publisher, or None when messaging is disabled."""
    return getattr(request.app.state, "publisher", None)


def get_provider_registry(request: Request) -> ProviderRegistry | None:
    return getattr(request.app.state, "providers", None)


def get_database(request: Request) -> Database | None:
    return getattr(request.app.state, "database", None)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
AuditStoreDep = Annotated[SqlAlchemyAuditStore, Depends(get_audit_store)]
PublisherDep = Annotated[NotificationPublisher | None, Depends(get_publisher)]
ProviderRegistryDep = Annotated[ProviderRegistry | None, Depends(get_provider_registry)]
DatabaseDep = Annotated[Database | None, Depends(get_database)]

__all__ = [
    "AuditStoreDep",
    "DatabaseDep",
    "NotificationServiceDep",
    "ProviderRegistryDep",
    "PublisherDep",
    "get_audit_store",
    "get_database",
    "get_notification_service",
    "get_provider_registry",
    "get_publisher",
]

"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings defaults so tests run without external infrastructure
    - Database Fixtures: in-memory SQLite engine, session factory and audit store
    - Pipeline Fixtures: fake providers and a wired NotificationService
    - Application Fixtures: FastAPI app with ``app.state`` populated, HTTP client
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
import os
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from tests.utils import FakeProvider

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("RABBIT_CONSUMER_ENABLED", "false")
os.environ.setdefault("EMAIL_PROVIDER", "console")
os.environ.setdefault("WHATSAPP_USE_MOCK_MODE", "true")
os.environ.setdefault("DISPATCH_MAX_ATTEMPTS", "1")
os.environ.setdefault("LOG_JSON_LOGS", "false")


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so monkeypatched env vars take effect."""
    from notification_service.core.settings import clear_all_caches

    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with the audit tables created.

    ``StaticPool`` keeps one connection so every session sees the same
    in-memory database.
    """
    from notification_service.core.database.base import Base
    import notification_service.features.notifications.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def database(db_engine):
    """``Database`` wrapper around the test engine."""
    from notification_service.infra.database import Database

    return Database(db_engine)


@pytest.fixture
def audit_store(database):
    """SQLAlchemy audit store bound to the test database."""
    from notification_service.features.notifications.repository import SqlAlchemyAuditStore

    return SqlAlchemyAuditStore(database.session_factory)


# ============================================================================
# Pipeline Fixtures
# ============================================================================


@pytest.fixture
def email_provider() -> FakeProvider:
    return FakeProvider("fake-email")


@pytest.fixture
def whatsapp_provider() -> FakeProvider:
    return FakeProvider("fake-whatsapp")


@pytest.fixture
def notification_service(audit_store, email_provider, whatsapp_provider):
    """Service wired to the SQLite store and fake providers."""
    from notification_service.features.notifications.dispatcher import Dispatcher
    from notification_service.features.notifications.models import NotificationChannel
    from notification_service.features.notifications.service import NotificationService

    dispatcher = Dispatcher(
        audit_store,
        {
            NotificationChannel.EMAIL: email_provider,
            NotificationChannel.WHATSAPP: whatsapp_provider,
        },
    )
    return NotificationService(audit_store, dispatcher)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(notification_service, audit_store, database, email_provider, whatsapp_provider):
    """FastAPI app with the lifespan-owned objects placed on ``app.state``.

    ``ASGITransport`` does not run the lifespan, so the state is set here.
    """
    from notification_service.app.main import create_app
    from notification_service.features.notifications.models import NotificationChannel
    from notification_service.infra.providers import ProviderRegistry

    application = create_app()
    application.state.notification_service = notification_service
    application.state.audit_store = audit_store
    application.state.database = database
    application.state.providers = ProviderRegistry(
        {
            NotificationChannel.EMAIL: email_provider,
            NotificationChannel.WHATSAPP: whatsapp_provider,
        }
    )
    application.state.publisher = None
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """HTTPX client talking to the app in-process."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

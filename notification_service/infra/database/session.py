"""Database engine and session factory management (SQLAlchemy async).

The engine is owned by whoever creates the ``Database`` (the API lifespan or
a CLI command) instead of being built at import time.

Usage:
    database = Database.from_settings(get_db_settings())
    await database.connect()
    await database.create_tables()
    store = SqlAlchemyAuditStore(database.session_factory)
    ...
    await database.dispose()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from notification_service.core.database.base import Base
from notification_service.utils.retry import retry

if TYPE_CHECKING:
    from notification_service.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the audit store.

    ``expire_on_commit=False`` keeps returned records readable after their
    session closes.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class Database:
    """Engine plus session factory with an explicit lifecycle."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: DatabaseSettings, **overrides: Any) -> Database:
        kwargs = settings.engine_kwargs()
        kwargs.update(overrides)
        engine = create_async_engine(settings.url, **kwargs)
        logger.info(
            "Database engine created",
            extra={"dialect": engine.dialect.name, "echo": kwargs.get("echo", False)},
        )
        return cls(engine)

    @retry(max_attempts=5, initial_delay=1.0, max_delay=15.0, exponential_base=2.0, jitter=True)
    async def connect(self) -> None:
        """Verify connectivity, retrying while the database comes up.

        Raises:
            RetryError: When the database stays unreachable.
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established", extra={"dialect": self.engine.dialect.name})

    async def create_tables(self) -> None:
        """Create missing tables (idempotent)."""
        # Register models on the shared metadata
        import notification_service.features.notifications.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning("Database health check failed", extra={"error": str(exc)})
            return False
        return True

    async def dispose(self) -> None:
        logger.info("Closing database connection")
        await self.engine.dispose()


__all__ = ["Database", "create_session_factory"]

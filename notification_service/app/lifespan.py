"""Application lifespan management.

Starts services in dependency order and stores what it owns on
``app.state``; shutdown runs in reverse.

Startup Order:
1. Logging
2. Delivery pipeline (database, audit store, providers) - when DB_ENABLED
3. Publisher (FastStream RabbitBroker) - when RABBIT_ENABLED
4. Queue consumer task - when RABBIT_CONSUMER_ENABLED
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from notification_service.core.settings import get_settings
from notification_service.features.notifications.pipeline import NotificationPipeline
from notification_service.infra.logging import setup_logging, shutdown
from notification_service.infra.messaging import NotificationPublisher, QueueConsumer, create_broker

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

    from notification_service.core.settings import Settings

logger = logging.getLogger(__name__)


async def _start_publisher(settings: Settings) -> NotificationPublisher | None:
    rabbit = settings.rabbit
    if not rabbit.is_configured:
        logger.info("RabbitMQ not configured, notification publishing disabled")
        return None

    publisher = NotificationPublisher(create_broker(rabbit), rabbit)
    try:
        await publisher.start()
    except Exception as exc:
        if rabbit.startup_require_rabbit:
            raise
        logger.warning(
            "RabbitMQ unavailable at startup, notification publishing disabled",
            extra={"error": str(exc)},
        )
        return None
    return publisher


async def _run_consumer(consumer: QueueConsumer) -> None:
    try:
        await consumer.start()
        await consumer.run()
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Notification consumer terminated unexpectedly")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    settings = get_settings()
    setup_logging(settings.logging)

    logger.info(
        "Starting application",
        extra={
            "service": settings.app.service_name,
            "version": settings.app.version,
            "environment": settings.app.environment,
        },
    )

    pipeline: NotificationPipeline | None = None
    publisher: NotificationPublisher | None = None
    consumer: QueueConsumer | None = None
    consumer_task: asyncio.Task[None] | None = None

    app.state.notification_service = None
    app.state.audit_store = None
    app.state.providers = None
    app.state.database = None
    app.state.publisher = None

    try:
        if settings.db.is_configured:
            pipeline = await NotificationPipeline.open(settings)
            app.state.notification_service = pipeline.service
            app.state.audit_store = pipeline.store
            app.state.providers = pipeline.providers
            app.state.database = pipeline.database
        else:
            logger.warning("Database disabled: notification delivery endpoints are unavailable")

        publisher = await _start_publisher(settings)
        app.state.publisher = publisher

        if settings.rabbit.consumer_enabled and settings.rabbit.is_configured and pipeline is not None:
            consumer = QueueConsumer(
                settings.rabbit, pipeline.event_handler(), graceful_timeout=settings.consumer_graceful_timeout
            )
            consumer_task = asyncio.create_task(_run_consumer(consumer), name="notification-consumer")

        yield
    finally:
        logger.info("Shutting down application")

        if consumer is not None:
            await consumer.stop()
        if consumer_task is not None:
            consumer_task.cancel()
            await asyncio.gather(consumer_task, return_exceptions=True)
        if publisher is not None:
            await publisher.close()
        if pipeline is not None:
            await pipeline.close()

        logger.info("Application shutdown complete")
        shutdown()


__all__ = ["lifespan"]

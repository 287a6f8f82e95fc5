"""Standalone queue consumer commands."""

import asyncio

import click

from notification_service.cli.utils import coro, error, info, stop_on_signals, success
from notification_service.core.settings import get_settings
from notification_service.features.notifications.pipeline import NotificationPipeline
from notification_service.infra.messaging import QueueConsumer


@click.group(name="consumer")
def consumer() -> None:
    """RabbitMQ notification consumer."""


@consumer.command(name="run")
@coro
async def run_consumer() -> None:
    """Consume the notifications queue until SIGINT/SIGTERM."""
    settings = get_settings()
    if not settings.rabbit.is_configured:
        error("RabbitMQ is not enabled (RABBIT_ENABLED=false)")
        raise SystemExit(1)
    if not settings.db.is_configured:
        error("The audit database is required (DB_ENABLED=false)")
        raise SystemExit(1)

    pipeline = await NotificationPipeline.open(settings)
    queue_consumer = QueueConsumer(
        settings.rabbit, pipeline.event_handler(), graceful_timeout=settings.consumer_graceful_timeout
    )

    async with stop_on_signals() as stop_requested:
        run_task: asyncio.Task[None] | None = None
        stop_task = asyncio.create_task(stop_requested.wait())
        try:
            await queue_consumer.start()
            info(f"Consuming {queue_consumer.queue_name} (Ctrl+C to stop)")
            run_task = asyncio.create_task(queue_consumer.run())
            done, _ = await asyncio.wait({run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            if run_task in done:
                run_task.result()
        finally:
            await queue_consumer.stop()
            stop_task.cancel()
            if run_task is not None and not run_task.done():
                await asyncio.wait_for(run_task, timeout=settings.consumer_graceful_timeout)
            await pipeline.close()

    success("Consumer stopped")

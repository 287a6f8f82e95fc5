"""Audit record maintenance and reporting commands."""

from datetime import timedelta

import click

from notification_service.cli.utils import coro, counts_table, header, info, record_row, success, warning
from notification_service.core.database.base import utcnow
from notification_service.core.settings import get_settings
from notification_service.features.notifications.repository import SqlAlchemyAuditStore
from notification_service.infra.database import Database


@click.group(name="records")
def records() -> None:
    """Notification audit records."""


@records.command(name="stats")
@coro
async def stats() -> None:
    """Show record counts by outcome."""
    database = Database.from_settings(get_settings().db)
    try:
        store = SqlAlchemyAuditStore(database.session_factory)
        header("Notification records")
        counts_table(
            [
                ("Total", await store.count_total()),
                ("Success", await store.count_success()),
                ("Failed", await store.count_failed()),
                ("Pending", await store.count_pending()),
            ]
        )
    finally:
        await database.dispose()


@records.command(name="failed")
@click.option("--limit", default=20, type=int, show_default=True, help="Maximum records to show")
@coro
async def failed(limit: int) -> None:
    """List the most recent failed deliveries."""
    database = Database.from_settings(get_settings().db)
    try:
        store = SqlAlchemyAuditStore(database.session_factory)
        items = await store.list_failed(limit=limit)
        if not items:
            info("No failed deliveries")
            return
        for record in items:
            click.echo(record_row(record))
    finally:
        await database.dispose()


@records.command(name="cleanup")
@click.option("--days", default=None, type=int, help="Delete records older than N days (default: DISPATCH_RETENTION_DAYS)")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@coro
async def cleanup(days: int | None, yes: bool) -> None:
    """Delete audit records older than the retention window."""
    settings = get_settings()
    days = days or settings.dispatch.retention_days
    if days < 1:
        raise click.BadParameter("must be at least 1", param_hint="--days")

    cutoff = utcnow() - timedelta(days=days)
    if not yes and not click.confirm(f"Delete records created before {cutoff:%Y-%m-%d %H:%M} UTC?"):
        warning("Aborted")
        return

    database = Database.from_settings(settings.db)
    try:
        store = SqlAlchemyAuditStore(database.session_factory)
        deleted = await store.delete_older_than(cutoff)
    finally:
        await database.dispose()
    success(f"Deleted {deleted} record(s) older than {days} day(s)")

"""Main CLI entry point for notification-service."""

import click

from notification_service import __version__
from notification_service.cli.commands import consumer, records, server
from notification_service.infra.logging import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="notification-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Notification Service CLI.

    \b
    Commands:
      serve            Run the HTTP API
      consumer run     Run the standalone RabbitMQ consumer
      records stats    Show audit record counts
      records failed   List recent failed deliveries
      records cleanup  Delete records past the retention window
    """
    ctx.ensure_object(dict)


cli.add_command(server.serve)
cli.add_command(consumer.consumer)
cli.add_command(records.records)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()

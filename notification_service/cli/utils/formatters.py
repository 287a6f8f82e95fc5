"""Console output helpers for CLI commands."""

from collections.abc import Iterable
from typing import Any

import click


def _emit(symbol: str, message: str, color: str, *, err: bool = False, bold: bool = False) -> None:
    click.secho(f"{symbol} {message}" if symbol else message, fg=color, err=err, bold=bold)


def success(message: str) -> None:
    _emit("✓", message, "green")


def error(message: str) -> None:
    _emit("✗", message, "red", err=True)


def warning(message: str) -> None:
    _emit("⚠", message, "yellow")


def info(message: str) -> None:
    _emit("ℹ", message, "blue")


def header(message: str) -> None:
    _emit("", f"\n{message}", "cyan", bold=True)


def counts_table(rows: Iterable[tuple[str, int]]) -> None:
    """Print ``label  count`` rows with the labels aligned."""
    rows = list(rows)
    width = max((len(label) for label, _ in rows), default=0) + 2
    for label, count in rows:
        click.echo(f"  {label:<{width}}{count}")


def record_row(record: Any) -> str:
    """One line per audit record: time, id, channel, recipient, error."""
    channel = record.channel or "-"
    return (
        f"  {record.created_at:%Y-%m-%d %H:%M:%S}  {record.id}  "
        f"{channel!s:<9} {record.recipient:<30} {record.error_message or ''}"
    )

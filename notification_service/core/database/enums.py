"""Centralized SQLAlchemy ENUM type definitions.

Stored as constrained VARCHARs (``native_enum=False``) so the same schema
works on PostgreSQL and SQLite without separate type migrations.

Usage in models:
    from notification_service.core.database.enums import string_enum

    class NotificationRecord(UUIDv7TimestampedBase):
        status: Mapped[DeliveryStatus] = mapped_column(string_enum(DeliveryStatus, "delivery_status"))

Note: These are SQLAlchemy column types. The Python enums they wrap live in
``notification_service.features.notifications.models``.
"""

from __future__ import annotations

from enum import Enum as PyEnum

from sqlalchemy import Enum


def _values(enum_cls: type[PyEnum]) -> list[str]:
    return [str(member.value) for member in enum_cls]


def string_enum(enum_cls: type[PyEnum], name: str, length: int = 20) -> Enum:
    """Build a non-native ENUM persisting member *values* (not names)."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=length,
        values_callable=_values,
        validate_strings=True,
    )


__all__ = ["string_enum"]

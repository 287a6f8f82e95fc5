"""Notification audit database model and its enums.

Every delivery attempt, from either ingress path, is recorded as one
``NotificationRecord`` row before the provider is called.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column

from notification_service.core.database.base import UUIDv7TimestampedBase
from notification_service.core.database.enums import string_enum


class NotificationChannel(StrEnum):
    """Closed set of delivery channels.

    Only EMAIL and WHATSAPP have providers; SMS and PUSH are reserved and are
    classified as unsupported at dispatch time.
    """

    EMAIL = "email"
    WHATSAPP = "whatsapp"
    SMS = "sms"
    PUSH = "push"

    @classmethod
    def parse(cls, value: str | None) -> NotificationChannel | None:
        """Map a wire ``Type`` to a channel, ignoring case and surrounding blanks.

        Returns None for anything that is not a known channel.
        """
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class NotificationSource(StrEnum):
    """Ingress path a notification arrived through."""

    SYNC_API = "SyncAPI"
    QUEUE = "Queue"


class DeliveryStatus(StrEnum):
    """Tri-state delivery outcome."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


# 64-char local part + "@" + 255-char domain; longer recipients are clamped by the builder
RECIPIENT_MAX_LENGTH = 320


class NotificationRecord(UUIDv7TimestampedBase):
    """Audit record for one notification delivery.

    Attributes:
        channel: Delivery channel, NULL when the requested type was not a known channel.
        source: Ingress path (SyncAPI or Queue).
        recipient: Email address or phone number, clamped to RECIPIENT_MAX_LENGTH.
        subject: Subject line (email only, optional elsewhere).
        message: Text body, falling back to the HTML body.
        status: pending until the dispatcher writes the final outcome.
        error_message: Failure description, cleared on success.
        attempt_count: Provider attempts made (starts at 1).
        record_metadata: Free-form string map (provenance, timestamps, status codes).
    """

    __tablename__ = "notification_records"

    channel: Mapped[NotificationChannel | None] = mapped_column(
        string_enum(NotificationChannel, "notificationchannel"),
        nullable=True,
        comment="Delivery channel (NULL for unknown requested types)",
    )
    source: Mapped[NotificationSource] = mapped_column(
        string_enum(NotificationSource, "notificationsource"),
        nullable=False,
        comment="Ingress path",
    )
    recipient: Mapped[str] = mapped_column(
        String(RECIPIENT_MAX_LENGTH),
        nullable=False,
        default="",
        comment="Recipient address or phone number",
    )
    subject: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Subject line",
    )
    message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Message body (text, else HTML)",
    )
    status: Mapped[DeliveryStatus] = mapped_column(
        string_enum(DeliveryStatus, "deliverystatus"),
        nullable=False,
        default=DeliveryStatus.PENDING,
        comment="Delivery outcome",
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Failure description",
    )
    attempt_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Provider attempts made",
    )

    # Column name preserved as 'metadata' (reserved attribute on declarative models)
    record_metadata: Mapped[dict[str, str]] = mapped_column(
        "metadata",
        MutableDict.as_mutable(JSON().with_variant(JSONB(), "postgresql")),
        nullable=False,
        default=dict,
        comment="Provenance, timestamps and provider details",
    )

    __table_args__ = (
        Index("ix_notification_records_recipient", "recipient"),
        Index("ix_notification_records_channel", "channel"),
        Index("ix_notification_records_created_at", "created_at"),
        Index("ix_notification_records_status_created", "status", "created_at"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == DeliveryStatus.PENDING

    def stamp(self, **values: Any) -> None:
        """Merge ``values`` into the metadata map as strings, skipping None."""
        merged = dict(self.record_metadata or {})
        merged.update({key: _stringify(value) for key, value in values.items() if value is not None})
        self.record_metadata = merged

    def mark_success(self, at: datetime, **metadata: Any) -> None:
        self.status = DeliveryStatus.SUCCESS
        self.error_message = None
        self.stamp(SentAt=at, **metadata)

    def mark_failed(self, error_message: str, at: datetime, **metadata: Any) -> None:
        self.status = DeliveryStatus.FAILED
        self.error_message = error_message
        self.stamp(FailedAt=at, **metadata)

    def __repr__(self) -> str:
        return (
            f"<NotificationRecord(id={self.id}, channel={self.channel}, "
            f"recipient={self.recipient!r}, status={self.status})>"
        )


def _stringify(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


__all__ = [
    "RECIPIENT_MAX_LENGTH",
    "DeliveryStatus",
    "NotificationChannel",
    "NotificationRecord",
    "NotificationSource",
]

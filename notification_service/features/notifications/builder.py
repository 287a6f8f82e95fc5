"""Construction of pending audit records from normalized requests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
import uuid

from notification_service.core.database.base import utcnow
from notification_service.features.notifications.models import (
    RECIPIENT_MAX_LENGTH,
    DeliveryStatus,
    NotificationRecord,
    NotificationSource,
)
from notification_service.features.notifications.schemas import (
    EmailRequest,
    NotificationRequest,
    UnsupportedChannelRequest,
    WhatsAppRequest,
)


class NotificationRecordBuilder:
    """Builds the ``pending`` record persisted before any send is attempted.

    ``build`` never raises: empty or missing request fields pass through so
    the dispatcher can audit the validation failure.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def build(
        self,
        request: NotificationRequest,
        *,
        source: NotificationSource,
        provenance: Mapping[str, Any] | None = None,
    ) -> NotificationRecord:
        metadata: dict[str, str] = {
            "Source": source.value,
            "ReceivedAt": self._clock().isoformat(),
            "MessageId": request.message_id or str(uuid.uuid4()),
        }

        match request:
            case EmailRequest():
                _put(metadata, From=request.from_address, ReplyTo=request.reply_to)
                for name, value in request.headers.items():
                    metadata[f"Header:{name}"] = value
            case WhatsAppRequest():
                _put(metadata, MediaUrl=request.media_url)
            case UnsupportedChannelRequest():
                metadata["RequestedType"] = request.requested_type

        _put(metadata, **dict(provenance or {}))

        recipient = (request.to or "").strip()
        if len(recipient) > RECIPIENT_MAX_LENGTH:
            # Metadata keeps the untruncated value
            metadata["OriginalRecipient"] = recipient
            recipient = recipient[:RECIPIENT_MAX_LENGTH]

        return NotificationRecord(
            channel=request.channel,
            source=source,
            recipient=recipient,
            subject=request.subject,
            message=request.body,
            status=DeliveryStatus.PENDING,
            attempt_count=1,
            record_metadata=metadata,
        )

    def build_undecodable(
        self,
        error_message: str,
        *,
        provenance: Mapping[str, Any] | None = None,
    ) -> NotificationRecord:
        """Build an already-failed record for a queue payload that could not be decoded."""
        now = self._clock().isoformat()
        metadata: dict[str, str] = {
            "Source": NotificationSource.QUEUE.value,
            "ReceivedAt": now,
            "FailedAt": now,
            "ExceptionType": "EventDeserializationError",
        }
        _put(metadata, **dict(provenance or {}))
        return NotificationRecord(
            channel=None,
            source=NotificationSource.QUEUE,
            recipient="",
            status=DeliveryStatus.FAILED,
            error_message=error_message,
            attempt_count=1,
            record_metadata=metadata,
        )


def _put(metadata: dict[str, str], **values: Any) -> None:
    for key, value in values.items():
        if value is None or value == "":
            continue
        metadata[key] = value.isoformat() if isinstance(value, datetime) else str(value)


__all__ = ["NotificationRecordBuilder"]

"""Pydantic schemas for the notifications feature.

Two families live here:

- Normalized requests (``EmailRequest``, ``WhatsAppRequest``,
  ``UnsupportedChannelRequest``): the channel is decided once, when the request
  is built, and the dispatcher matches on the request type.
- HTTP API payloads and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from notification_service.features.notifications.models import (
    DeliveryStatus,
    NotificationChannel,
    NotificationSource,
)

# ============================================================================
# Normalized Requests
# ============================================================================


class EmailRequest(BaseModel):
    """Email delivery request."""

    model_config = ConfigDict(frozen=True)

    channel: ClassVar[NotificationChannel] = NotificationChannel.EMAIL

    to: str = ""
    subject: str | None = None
    html_body: str | None = None
    text_body: str | None = None
    from_address: str | None = None
    reply_to: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    message_id: str | None = None

    @property
    def body(self) -> str | None:
        """Text body, falling back to the HTML body."""
        return self.text_body or self.html_body


class WhatsAppRequest(BaseModel):
    """WhatsApp delivery request."""

    model_config = ConfigDict(frozen=True)

    channel: ClassVar[NotificationChannel] = NotificationChannel.WHATSAPP

    to: str = ""
    message: str = ""
    media_url: str | None = None
    message_id: str | None = None

    @property
    def subject(self) -> None:
        return None

    @property
    def body(self) -> str:
        return self.message


class UnsupportedChannelRequest(BaseModel):
    """Request whose type has no provider (SMS, Push or an unknown type).

    Kept so the attempt is still audited before being rejected.
    """

    model_config = ConfigDict(frozen=True)

    requested_type: str = ""
    channel: NotificationChannel | None = None
    to: str = ""
    subject: str | None = None
    message: str | None = None
    message_id: str | None = None

    @property
    def body(self) -> str | None:
        return self.message


type NotificationRequest = EmailRequest | WhatsAppRequest | UnsupportedChannelRequest


# ============================================================================
# API Payloads
# ============================================================================


class SendEmailPayload(BaseModel):
    """Payload for ``POST /notifications/email``.

    Required fields are checked by the route so that missing values produce a
    single, explicit problem response.
    """

    to: str | None = Field(default=None, max_length=320, description="Recipient email address")
    subject: str | None = Field(default=None, max_length=998, description="Subject line")
    html_body: str | None = Field(default=None, description="HTML body")
    text_body: str | None = Field(default=None, description="Plain text body")
    from_address: str | None = Field(
        default=None,
        alias="from",
        description="Sender override (defaults to EMAIL_FROM_EMAIL)",
    )
    reply_to: str | None = Field(default=None, description="Reply-To address")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra headers")

    model_config = ConfigDict(populate_by_name=True)

    def to_request(self) -> EmailRequest:
        return EmailRequest(
            to=self.to or "",
            subject=self.subject,
            html_body=self.html_body,
            text_body=self.text_body,
            from_address=self.from_address,
            reply_to=self.reply_to,
            headers=self.headers,
        )


class SendWhatsAppPayload(BaseModel):
    """Payload for ``POST /notifications/whatsapp``."""

    to: str | None = Field(default=None, max_length=32, description="Recipient phone in E.164 form")
    message: str | None = Field(default=None, max_length=4096, description="Message text")
    media_url: str | None = Field(default=None, description="Optional media attachment URL")

    def to_request(self) -> WhatsAppRequest:
        return WhatsAppRequest(to=self.to or "", message=self.message or "", media_url=self.media_url)


class SendNotificationPayload(BaseModel):
    """Channel-agnostic payload for ``POST /notifications/send`` and ``/enqueue``."""

    type: str = Field(..., min_length=1, description="Channel: email or whatsapp")
    to: str | None = Field(default=None, max_length=320)
    subject: str | None = Field(default=None, max_length=998)
    html_body: str | None = None
    text_body: str | None = None
    message: str | None = None
    media_url: str | None = None
    from_address: str | None = Field(default=None, alias="from")
    reply_to: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class NotificationSendResponse(BaseModel):
    """Successful synchronous delivery."""

    success: bool = True
    message: str = Field(description="Human-readable outcome")
    record_id: UUID | None = Field(default=None, description="Audit record id")
    recipient: str
    attempts: int = 1


class NotificationEnqueueResponse(BaseModel):
    """Accepted asynchronous delivery."""

    notification_id: str
    status: str = "queued"
    routing_key: str


class NotificationRecordResponse(BaseModel):
    """Audit record as returned by the API."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    channel: NotificationChannel | None
    source: NotificationSource
    recipient: str
    subject: str | None = None
    message: str | None = None
    status: DeliveryStatus
    error_message: str | None = None
    attempt_count: int
    metadata: dict[str, str] = Field(default_factory=dict, validation_alias="record_metadata")
    created_at: datetime
    updated_at: datetime


class NotificationRecordListResponse(BaseModel):
    """Page of audit records."""

    items: list[NotificationRecordResponse]
    skip: int
    limit: int
    count: int


class NotificationStatsResponse(BaseModel):
    """Aggregate record counts."""

    total: int
    success: int
    failed: int
    pending: int


class ChannelHealth(BaseModel):
    channel: NotificationChannel
    enabled: bool
    provider: str | None = None


class NotificationHealthResponse(BaseModel):
    """Pipeline health: enabled channels plus backend reachability."""

    status: str
    channels: list[ChannelHealth]
    database: bool
    broker: bool | None = None


__all__ = [
    "ChannelHealth",
    "EmailRequest",
    "NotificationEnqueueResponse",
    "NotificationHealthResponse",
    "NotificationRecordListResponse",
    "NotificationRecordResponse",
    "NotificationRequest",
    "NotificationSendResponse",
    "NotificationStatsResponse",
    "SendEmailPayload",
    "SendNotificationPayload",
    "SendWhatsAppPayload",
    "UnsupportedChannelRequest",
    "WhatsAppRequest",
]

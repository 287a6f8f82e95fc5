"""Queue wire format for notifications.

A ``NotificationEvent`` is the JSON object carried in a RabbitMQ message
body. Producers conventionally write PascalCase keys (``Type``, ``To``,
``HtmlBody`` ...); the decoder accepts any casing and ignores ``_``/``-``
separators, so ``HtmlBody``, ``htmlBody`` and ``html_body`` are the same
field. Unknown keys are ignored.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_pascal

from notification_service.features.notifications.models import NotificationChannel
from notification_service.features.notifications.schemas import (
    EmailRequest,
    NotificationRequest,
    UnsupportedChannelRequest,
    WhatsAppRequest,
)

_SEPARATORS = re.compile(r"[_\-]")


class EventDeserializationError(ValueError):
    """Raised when a message body cannot be decoded into a ``NotificationEvent``."""

    def __init__(self, message: str, *, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def _normalize_key(key: str) -> str:
    return _SEPARATORS.sub("", key).lower()


class NotificationEvent(BaseModel):
    """Notification request received from (or published to) the queue."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    type: str = Field(default="", description="Channel name (email, whatsapp, ...)")
    to: str = Field(default="", description="Recipient address or phone number")
    subject: str | None = None
    html_body: str | None = None
    text_body: str | None = None
    message: str | None = Field(default=None, description="WhatsApp text")
    media_url: str | None = None
    from_address: str | None = Field(default=None, alias="From")
    reply_to: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, str] = Field(default_factory=dict)
    notification_id: str | None = Field(default=None, description="Producer-assigned id")

    @model_validator(mode="before")
    @classmethod
    def _match_keys(cls, data: Any) -> Any:
        """Rename incoming keys to field names, whatever their casing."""
        if not isinstance(data, dict):
            return data
        lookup = _field_lookup()
        matched: dict[str, Any] = {}
        for key, value in data.items():
            name = lookup.get(_normalize_key(str(key)))
            if name is not None and name not in matched:
                matched[name] = value
        return matched

    @field_validator("type", "to", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("headers", "metadata", mode="before")
    @classmethod
    def _coerce_map(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(k): "" if v is None else _scalar_text(v) for k, v in value.items()}
        return value

    @classmethod
    def from_payload(cls, body: bytes | str) -> NotificationEvent:
        """Decode a message body.

        Raises:
            EventDeserializationError: The body is not valid JSON, is not an
                object (``null``, array, scalar) or has wrongly typed fields.
        """
        try:
            return cls.model_validate_json(body)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            first = errors[0]["msg"] if errors else str(exc)
            msg = f"Invalid notification payload: {first}"
            raise EventDeserializationError(msg, errors=errors) from exc

    def to_payload(self) -> bytes:
        """Encode with PascalCase keys, omitting unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode()

    @property
    def channel(self) -> NotificationChannel | None:
        return NotificationChannel.parse(self.type)

    def to_request(self) -> NotificationRequest:
        """Build the normalized request for this event's channel."""
        match self.channel:
            case NotificationChannel.EMAIL:
                return EmailRequest(
                    to=self.to,
                    subject=self.subject,
                    html_body=self.html_body,
                    text_body=self.text_body,
                    from_address=self.from_address,
                    reply_to=self.reply_to,
                    headers=self.headers,
                    message_id=self.notification_id,
                )
            case NotificationChannel.WHATSAPP:
                return WhatsAppRequest(
                    to=self.to,
                    message=self.message or self.text_body or self.html_body or "",
                    media_url=self.media_url,
                    message_id=self.notification_id,
                )
            case channel:
                return UnsupportedChannelRequest(
                    requested_type=self.type,
                    channel=channel,
                    to=self.to,
                    subject=self.subject,
                    message=self.message or self.text_body or self.html_body,
                    message_id=self.notification_id,
                )


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return str(value)


_LOOKUP: dict[str, str] = {}


def _field_lookup() -> dict[str, str]:
    if not _LOOKUP:
        for name in NotificationEvent.model_fields:
            _LOOKUP[_normalize_key(name)] = name
        # "From" is the conventional wire key for the sender
        _LOOKUP["from"] = "from_address"
    return _LOOKUP


__all__ = ["EventDeserializationError", "NotificationEvent"]

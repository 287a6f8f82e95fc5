"""Console email provider for development.

Logs emails instead of sending them. Always succeeds.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
import uuid

from notification_service.features.notifications.models import NotificationChannel

from .base import BaseProviderClient, ProviderResult

if TYPE_CHECKING:
    from notification_service.core.settings import EmailSettings
    from notification_service.features.notifications.schemas import EmailRequest

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 500


class ConsoleEmailClient(BaseProviderClient):
    """Email provider that writes the message to the log."""

    channel = NotificationChannel.EMAIL

    def __init__(self, settings: EmailSettings) -> None:
        self._settings = settings
        logger.info("Console email provider initialized (development mode)")

    @property
    def provider_name(self) -> str:
        return "console"

    async def _do_send(self, request: EmailRequest) -> ProviderResult:
        message_id = f"console-{uuid.uuid4()}"
        from_email = request.from_address or self._settings.from_email

        separator = "=" * 60
        output_lines = [
            "",
            separator,
            "EMAIL (Console Backend - Development Mode)",
            separator,
            f"Message-ID: {message_id}",
            f"From: {self._settings.from_name} <{from_email}>",
            f"To: {request.to}",
        ]
        if request.reply_to:
            output_lines.append(f"Reply-To: {request.reply_to}")
        output_lines.append(f"Subject: {request.subject or self._settings.default_subject}")
        output_lines.append(separator)

        for label, content in (("TEXT BODY:", request.text_body), ("HTML BODY:", request.html_body)):
            if not content:
                continue
            output_lines.append(label)
            output_lines.append(content[:_PREVIEW_CHARS])
            if len(content) > _PREVIEW_CHARS:
                output_lines.append(f"... ({len(content) - _PREVIEW_CHARS} more characters)")
        output_lines.extend([separator, ""])

        logger.info("\n".join(output_lines))
        return ProviderResult.success_result(self.provider_name, provider_message_id=message_id)


__all__ = ["ConsoleEmailClient"]

"""Mock WhatsApp provider for development and tests.

Logs the message and reports success without contacting any API.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
import uuid

from notification_service.features.notifications.models import NotificationChannel

from .base import BaseProviderClient, ProviderResult

if TYPE_CHECKING:
    from notification_service.features.notifications.schemas import WhatsAppRequest

logger = logging.getLogger(__name__)


class MockWhatsAppClient(BaseProviderClient):
    """WhatsApp provider used while ``WHATSAPP_USE_MOCK_MODE`` is on.

    Sent requests are kept in ``sent`` for inspection.
    """

    channel = NotificationChannel.WHATSAPP

    def __init__(self) -> None:
        self.sent: list[WhatsAppRequest] = []
        logger.info("Mock WhatsApp provider initialized (messages are not delivered)")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _do_send(self, request: WhatsAppRequest) -> ProviderResult:
        self.sent.append(request)
        message_id = f"mock-{uuid.uuid4()}"
        logger.info(
            "WhatsApp message (mock mode)",
            extra={
                "to": request.to,
                "body_length": len(request.message),
                "media_url": request.media_url,
                "provider_message_id": message_id,
            },
        )
        return ProviderResult.success_result(self.provider_name, provider_message_id=message_id)


__all__ = ["MockWhatsAppClient"]

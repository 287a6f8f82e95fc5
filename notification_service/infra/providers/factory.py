"""Provider construction from settings.

Usage:
    registry = ProviderRegistry.from_settings(email_settings, whatsapp_settings)
    provider = registry.get(NotificationChannel.EMAIL)
    ...
    await registry.aclose()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from notification_service.features.notifications.models import NotificationChannel

from .console import ConsoleEmailClient
from .maileroo import MailerooEmailClient
from .mock import MockWhatsAppClient
from .twilio import TwilioWhatsAppClient

if TYPE_CHECKING:
    from collections.abc import Mapping

    from notification_service.core.settings import EmailSettings, WhatsAppSettings

    from .base import ProviderClient

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Channel -> provider mapping plus the HTTP client the providers share.

    A disabled channel simply has no entry; the dispatcher then classifies
    requests for it as unsupported.
    """

    def __init__(
        self,
        providers: Mapping[NotificationChannel, ProviderClient],
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._providers = dict(providers)
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls,
        email: EmailSettings,
        whatsapp: WhatsAppSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> ProviderRegistry:
        needs_http = (email.enabled and email.provider == "maileroo") or (
            whatsapp.enabled and not whatsapp.use_mock_mode
        )
        owned_client = None
        if needs_http and http_client is None:
            owned_client = httpx.AsyncClient(timeout=max(email.timeout, whatsapp.timeout))
            http_client = owned_client

        providers: dict[NotificationChannel, ProviderClient] = {}
        if email.enabled:
            if email.provider == "maileroo":
                providers[NotificationChannel.EMAIL] = MailerooEmailClient(email, http_client)
            else:
                providers[NotificationChannel.EMAIL] = ConsoleEmailClient(email)
        if whatsapp.enabled:
            if whatsapp.use_mock_mode:
                providers[NotificationChannel.WHATSAPP] = MockWhatsAppClient()
            else:
                providers[NotificationChannel.WHATSAPP] = TwilioWhatsAppClient(whatsapp, http_client)

        logger.info(
            "Notification providers configured",
            extra={"providers": {str(ch): p.provider_name for ch, p in providers.items()}},
        )
        return cls(providers, owned_client)

    @property
    def providers(self) -> dict[NotificationChannel, ProviderClient]:
        return dict(self._providers)

    def get(self, channel: NotificationChannel | None) -> ProviderClient | None:
        if channel is None:
            return None
        return self._providers.get(channel)

    def is_enabled(self, channel: NotificationChannel) -> bool:
        return channel in self._providers

    async def aclose(self) -> None:
        """Close the HTTP client if this registry created it."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


__all__ = ["ProviderRegistry"]

"""Twilio WhatsApp provider.

Uses the Twilio Messages REST resource with ``whatsapp:``-prefixed numbers:

    POST {api_base_url}/Accounts/{sid}/Messages.json   (HTTP basic auth)
    From=whatsapp:+14155238886&To=whatsapp:+5491112345678&Body=...
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from notification_service.features.notifications.models import NotificationChannel

from .base import BaseProviderClient, ProviderResult

if TYPE_CHECKING:
    from notification_service.core.settings import WhatsAppSettings
    from notification_service.features.notifications.schemas import WhatsAppRequest

logger = logging.getLogger(__name__)

_PREFIX = "whatsapp:"


def whatsapp_address(number: str) -> str:
    """Return ``number`` with exactly one ``whatsapp:`` prefix."""
    number = number.strip()
    if number.lower().startswith(_PREFIX):
        number = number[len(_PREFIX) :]
    return f"{_PREFIX}{number}"


class TwilioWhatsAppClient(BaseProviderClient):
    """WhatsApp provider backed by Twilio."""

    channel = NotificationChannel.WHATSAPP

    def __init__(self, settings: WhatsAppSettings, http_client: httpx.AsyncClient) -> None:
        if not (settings.account_sid and settings.auth_token and settings.from_number):
            msg = "Twilio provider requires account_sid, auth_token and from_number"
            raise ValueError(msg)
        self._settings = settings
        self._client = http_client
        self._url = f"{settings.api_base_url.rstrip('/')}/Accounts/{settings.account_sid}/Messages.json"
        logger.info("Twilio WhatsApp provider initialized", extra={"account_sid": settings.account_sid})

    @property
    def provider_name(self) -> str:
        return "twilio"

    def build_form(self, request: WhatsAppRequest) -> dict[str, str]:
        form = {
            "From": whatsapp_address(self._settings.from_number or ""),
            "To": whatsapp_address(request.to),
            "Body": request.message,
        }
        if request.media_url:
            form["MediaUrl"] = request.media_url
        return form

    async def _do_send(self, request: WhatsAppRequest) -> ProviderResult:
        auth_token = self._settings.auth_token.get_secret_value() if self._settings.auth_token else ""
        response = await self._client.post(
            self._url,
            data=self.build_form(request),
            auth=httpx.BasicAuth(self._settings.account_sid or "", auth_token),
            timeout=self._settings.timeout,
        )

        if not response.is_success:
            return ProviderResult.failure_result(
                self.provider_name,
                status_code=response.status_code,
                response_body=response.text,
            )

        sid = None
        try:
            sid = response.json().get("sid")
        except (ValueError, AttributeError):
            sid = None
        return ProviderResult.success_result(
            self.provider_name,
            status_code=response.status_code,
            response_body=response.text,
            provider_message_id=sid,
        )


__all__ = ["TwilioWhatsAppClient", "whatsapp_address"]

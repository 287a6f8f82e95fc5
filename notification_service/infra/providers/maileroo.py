"""Maileroo HTTP email provider.

Sends through the Maileroo v2 JSON API:

    POST {api_url}
    X-API-Key: <key>
    {"from": {"address", "display_name"}, "to": [{"address"}], "subject",
     "html", "plain", "tracking"}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from notification_service.features.notifications.models import NotificationChannel

from .base import BaseProviderClient, ProviderResult

if TYPE_CHECKING:
    from notification_service.core.settings import EmailSettings
    from notification_service.features.notifications.schemas import EmailRequest

logger = logging.getLogger(__name__)


class MailerooEmailClient(BaseProviderClient):
    """Email provider backed by the Maileroo API.

    A non-2xx response, or a 2xx body with ``"success": false``, is a
    provider-reported failure. Network errors and timeouts propagate.
    """

    channel = NotificationChannel.EMAIL

    def __init__(self, settings: EmailSettings, http_client: httpx.AsyncClient) -> None:
        if settings.api_key is None:
            msg = "Maileroo provider requires EMAIL_API_KEY"
            raise ValueError(msg)
        self._settings = settings
        self._client = http_client
        logger.info("Maileroo email provider initialized", extra={"api_url": settings.api_url})

    @property
    def provider_name(self) -> str:
        return "maileroo"

    def build_payload(self, request: EmailRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "from": {
                "address": request.from_address or self._settings.from_email,
                "display_name": self._settings.from_name,
            },
            "to": [{"address": request.to}],
            "subject": request.subject or self._settings.default_subject,
            "html": request.html_body,
            "plain": request.text_body or request.html_body,
            "tracking": self._settings.tracking,
        }
        if request.reply_to:
            payload["reply_to"] = {"address": request.reply_to}
        if request.headers:
            payload["headers"] = dict(request.headers)
        return payload

    async def _do_send(self, request: EmailRequest) -> ProviderResult:
        api_key = self._settings.api_key.get_secret_value() if self._settings.api_key else ""
        response = await self._client.post(
            self._settings.api_url,
            json=self.build_payload(request),
            headers={"X-API-Key": api_key, "Accept": "application/json"},
            timeout=self._settings.timeout,
        )

        body = response.text
        data = _json_or_none(response)
        accepted = response.is_success and (not isinstance(data, dict) or data.get("success", True) is not False)

        if not accepted:
            return ProviderResult.failure_result(
                self.provider_name,
                status_code=response.status_code,
                response_body=body,
            )

        message_id = None
        if isinstance(data, dict):
            payload = data.get("data")
            if isinstance(payload, dict):
                message_id = payload.get("reference_id") or payload.get("message_id")
        return ProviderResult.success_result(
            self.provider_name,
            status_code=response.status_code,
            response_body=body,
            provider_message_id=str(message_id) if message_id else None,
        )


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


__all__ = ["MailerooEmailClient"]

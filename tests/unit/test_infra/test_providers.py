"""Unit tests for notification providers (HTTP calls via httpx.MockTransport)."""

from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest

from notification_service.core.settings import EmailSettings, WhatsAppSettings
from notification_service.features.notifications.models import NotificationChannel
from notification_service.features.notifications.schemas import EmailRequest, WhatsAppRequest
from notification_service.infra.providers import (
    ConsoleEmailClient,
    MailerooEmailClient,
    MockWhatsAppClient,
    ProviderClient,
    ProviderRegistry,
    ProviderResult,
    TwilioWhatsAppClient,
)
from notification_service.infra.providers.twilio import whatsapp_address


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def maileroo_settings() -> EmailSettings:
    return EmailSettings(
        provider="maileroo",
        api_key="key-123",
        api_url="https://maileroo.test/api/v2/emails",
        from_email="noreply@example.com",
        from_name="Example",
        tracking=False,
    )


@pytest.fixture
def twilio_settings() -> WhatsAppSettings:
    return WhatsAppSettings(
        use_mock_mode=False,
        account_sid="AC123",
        auth_token="secret",
        from_number="+14155238886",
        api_base_url="https://twilio.test/2010-04-01",
    )


@pytest.mark.unit
class TestProviderResult:
    """Test suite for ProviderResult."""

    def test_response_body_truncated(self):
        result = ProviderResult.failure_result("x", response_body="a" * 5000)

        assert len(result.response_body) == 1000

    def test_success_result(self):
        result = ProviderResult.success_result("x", status_code=200, provider_message_id="m-1")

        assert result.success is True
        assert result.metadata == {}


@pytest.mark.unit
class TestMailerooEmailClient:
    """Test suite for MailerooEmailClient."""

    async def test_successful_send(self, maileroo_settings):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["headers"] = request.headers
            captured["json"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": {"reference_id": "ref-9"}})

        async with mock_client(handler) as http_client:
            provider = MailerooEmailClient(maileroo_settings, http_client)
            result = await provider.send(
                EmailRequest(
                    to="user@example.com",
                    subject="Welcome",
                    html_body="<p>Hi</p>",
                    reply_to="support@example.com",
                    headers={"X-Campaign": "welcome"},
                )
            )

        assert result.success is True
        assert result.provider == "maileroo"
        assert result.status_code == 200
        assert result.provider_message_id == "ref-9"
        assert result.duration_ms is not None
        assert captured["url"] == "https://maileroo.test/api/v2/emails"
        assert captured["headers"]["X-API-Key"] == "key-123"
        body = captured["json"]
        assert body["from"] == {"address": "noreply@example.com", "display_name": "Example"}
        assert body["to"] == [{"address": "user@example.com"}]
        assert body["subject"] == "Welcome"
        assert body["html"] == "<p>Hi</p>"
        assert body["plain"] == "<p>Hi</p>"
        assert body["tracking"] is False
        assert body["reply_to"] == {"address": "support@example.com"}
        assert body["headers"] == {"X-Campaign": "welcome"}

    def test_payload_defaults(self, maileroo_settings):
        provider = MailerooEmailClient(maileroo_settings, httpx.AsyncClient())

        payload = provider.build_payload(
            EmailRequest(to="a@b.c", text_body="plain", from_address="sales@example.com")
        )

        assert payload["subject"] == "Notification"
        assert payload["plain"] == "plain"
        assert payload["from"]["address"] == "sales@example.com"
        assert "reply_to" not in payload
        assert "headers" not in payload

    async def test_non_2xx_is_failure(self, maileroo_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"success": False, "message": "bad key"})

        async with mock_client(handler) as http_client:
            result = await MailerooEmailClient(maileroo_settings, http_client).send(
                EmailRequest(to="a@b.c", text_body="x")
            )

        assert result.success is False
        assert result.status_code == 401
        assert "bad key" in result.response_body

    async def test_success_false_body_is_failure(self, maileroo_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False})

        async with mock_client(handler) as http_client:
            result = await MailerooEmailClient(maileroo_settings, http_client).send(
                EmailRequest(to="a@b.c", text_body="x")
            )

        assert result.success is False

    async def test_transport_error_propagates(self, maileroo_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as http_client:
            provider = MailerooEmailClient(maileroo_settings, http_client)
            with pytest.raises(httpx.ConnectError):
                await provider.send(EmailRequest(to="a@b.c", text_body="x"))


@pytest.mark.unit
class TestTwilioWhatsAppClient:
    """Test suite for TwilioWhatsAppClient."""

    @pytest.mark.parametrize(
        ("number", "expected"),
        [
            ("+5491112345678", "whatsapp:+5491112345678"),
            ("whatsapp:+5491112345678", "whatsapp:+5491112345678"),
            (" WhatsApp:+1 ", "whatsapp:+1"),
        ],
    )
    def test_whatsapp_address(self, number, expected):
        assert whatsapp_address(number) == expected

    async def test_successful_send(self, twilio_settings):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["form"] = parse_qs(request.content.decode())
            return httpx.Response(201, json={"sid": "SM123", "status": "queued"})

        async with mock_client(handler) as http_client:
            provider = TwilioWhatsAppClient(twilio_settings, http_client)
            result = await provider.send(
                WhatsAppRequest(to="+5491112345678", message="hi", media_url="https://cdn.test/a.png")
            )

        assert result.success is True
        assert result.provider_message_id == "SM123"
        assert result.status_code == 201
        assert captured["url"] == "https://twilio.test/2010-04-01/Accounts/AC123/Messages.json"
        assert captured["auth"].startswith("Basic ")
        assert captured["form"] == {
            "From": ["whatsapp:+14155238886"],
            "To": ["whatsapp:+5491112345678"],
            "Body": ["hi"],
            "MediaUrl": ["https://cdn.test/a.png"],
        }

    async def test_error_response_is_failure(self, twilio_settings):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

        async with mock_client(handler) as http_client:
            result = await TwilioWhatsAppClient(twilio_settings, http_client).send(
                WhatsAppRequest(to="bogus", message="hi")
            )

        assert result.success is False
        assert result.status_code == 400

    def test_requires_credentials(self):
        settings = WhatsAppSettings(use_mock_mode=True)

        with pytest.raises(ValueError, match="account_sid"):
            TwilioWhatsAppClient(settings, httpx.AsyncClient())


@pytest.mark.unit
class TestDevelopmentProviders:
    """Console and mock providers."""

    async def test_console_email_always_succeeds(self):
        provider = ConsoleEmailClient(EmailSettings(provider="console"))

        result = await provider.send(EmailRequest(to="a@b.c", subject="s", text_body="x" * 600))

        assert result.success is True
        assert result.provider_message_id.startswith("console-")

    async def test_mock_whatsapp_keeps_sent_messages(self):
        provider = MockWhatsAppClient()

        result = await provider.send(WhatsAppRequest(to="+1", message="hi"))

        assert result.success is True
        assert result.provider == "mock"
        assert [r.to for r in provider.sent] == ["+1"]
        assert isinstance(provider, ProviderClient)


@pytest.mark.unit
class TestProviderRegistry:
    """Test suite for ProviderRegistry.from_settings."""

    async def test_development_providers(self):
        registry = ProviderRegistry.from_settings(
            EmailSettings(provider="console"), WhatsAppSettings(use_mock_mode=True)
        )

        assert registry.get(NotificationChannel.EMAIL).provider_name == "console"
        assert registry.get(NotificationChannel.WHATSAPP).provider_name == "mock"
        assert registry.get(NotificationChannel.SMS) is None
        assert registry.get(None) is None
        await registry.aclose()

    async def test_live_providers_share_http_client(self, maileroo_settings, twilio_settings):
        registry = ProviderRegistry.from_settings(maileroo_settings, twilio_settings)

        assert registry.get(NotificationChannel.EMAIL).provider_name == "maileroo"
        assert registry.get(NotificationChannel.WHATSAPP).provider_name == "twilio"
        await registry.aclose()

    async def test_disabled_channel_has_no_provider(self):
        registry = ProviderRegistry.from_settings(
            EmailSettings(enabled=False), WhatsAppSettings(use_mock_mode=True)
        )

        assert registry.is_enabled(NotificationChannel.EMAIL) is False
        assert registry.is_enabled(NotificationChannel.WHATSAPP) is True
        assert NotificationChannel.EMAIL not in registry.providers

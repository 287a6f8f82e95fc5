"""WhatsApp delivery settings (Twilio).

Environment variables use WHATSAPP_ prefix.
Example: WHATSAPP_USE_MOCK_MODE=false, WHATSAPP_ACCOUNT_SID=AC...
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import DomainSettings


class WhatsAppSettings(DomainSettings):
    """WhatsApp channel configuration.

    Mock mode is on by default: messages are logged and reported as sent
    without touching Twilio.
    """

    config_name: ClassVar[str] = "whatsapp"

    enabled: bool = Field(default=True, description="Enable the WhatsApp channel")
    use_mock_mode: bool = Field(
        default=True,
        description="Log messages instead of calling Twilio",
    )

    account_sid: str | None = Field(default=None, description="Twilio account SID")
    auth_token: SecretStr | None = Field(default=None, description="Twilio auth token")
    from_number: str | None = Field(
        default=None,
        description="Twilio WhatsApp sender number in E.164 form (e.g. +14155238886)",
    )
    api_base_url: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        le=300.0,
        description="Provider request timeout in seconds",
    )

    @model_validator(mode="after")
    def validate_credentials(self) -> WhatsAppSettings:
        """Twilio credentials are mandatory outside of mock mode."""
        if self.enabled and not self.use_mock_mode:
            missing = [
                name
                for name, value in (
                    ("account_sid", self.account_sid),
                    ("auth_token", self.auth_token),
                    ("from_number", self.from_number),
                )
                if not value
            ]
            if missing:
                msg = f"WhatsApp live mode requires: {', '.join(missing)}"
                raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="WHATSAPP_",
    )

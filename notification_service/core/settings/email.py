"""Email delivery settings.

Environment variables use EMAIL_ prefix.
Example: EMAIL_PROVIDER=maileroo, EMAIL_API_KEY=..., EMAIL_FROM_EMAIL=no-reply@example.com
"""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import EmailStr, Field, SecretStr, model_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import DomainSettings


class EmailSettings(DomainSettings):
    """Email channel configuration.

    Supports two providers:
    - maileroo: HTTP API delivery (production)
    - console: Log emails instead of sending them (development)
    """

    config_name: ClassVar[str] = "email"

    enabled: bool = Field(
        default=True,
        description="Enable the email channel",
    )
    provider: Literal["maileroo", "console"] = Field(
        default="console",
        description="Email provider: maileroo (production) or console (dev)",
    )

    # Maileroo API
    api_url: str = Field(
        default="https://smtp.maileroo.com/api/v2/emails",
        description="Maileroo send endpoint",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Maileroo API key (sent as X-API-Key)",
    )
    tracking: bool = Field(
        default=True,
        description="Ask the provider to track opens and clicks",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        le=300.0,
        description="Provider request timeout in seconds",
    )

    # Sender configuration
    from_email: EmailStr = Field(
        default="notifications@example.com",
        description="Default sender address",
    )
    from_name: str = Field(
        default="Notification Service",
        max_length=255,
        description="Default sender display name",
    )
    default_subject: str = Field(
        default="Notification",
        min_length=1,
        max_length=255,
        description="Subject used when a request carries none",
    )

    @model_validator(mode="after")
    def validate_provider_credentials(self) -> EmailSettings:
        """Require an API key when the Maileroo provider is selected."""
        if self.enabled and self.provider == "maileroo" and self.api_key is None:
            msg = "EMAIL_API_KEY is required when EMAIL_PROVIDER=maileroo"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
    )

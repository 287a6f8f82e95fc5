"""HTTP application settings.

Environment variables use APP_ prefix.
Example: APP_PORT=8080, APP_CORS_ORIGINS='["https://admin.example.com"]'
"""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import DomainSettings

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(DomainSettings):
    """FastAPI application and uvicorn settings."""

    config_name: ClassVar[str] = "app"

    service_name: str = Field(
        default="notification-service",
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Service name attached to log lines",
    )
    title: str = Field(default="Notification Service API", min_length=1, max_length=200)
    description: str = Field(default="Email and WhatsApp notification delivery with an audit trail")
    version: str = Field(default="1.0.0", pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$")
    environment: Environment = "development"
    api_prefix: str = Field(default="/api/v1", pattern=r"^/.*$", description="Prefix for the notification routes")

    debug: bool = False
    docs_url: str | None = "/docs"
    redoc_url: str | None = "/redoc"
    disable_docs: bool = Field(default=False, description="Hide Swagger UI and ReDoc")

    host: str = Field(default="0.0.0.0", min_length=1, description="Bind host for `serve`")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port for `serve`")

    cors_origins: list[str] = Field(default_factory=list, description="Allowed CORS origins (JSON array)")

    model_config = SettingsConfigDict(env_prefix="APP_")

    @model_validator(mode="after")
    def _no_debug_in_production(self) -> AppSettings:
        if self.environment == "production" and self.debug:
            msg = "Debug mode cannot be enabled in production environment"
            raise ValueError(msg)
        return self

    def get_docs_url(self) -> str | None:
        return None if self.disable_docs else self.docs_url

    def get_redoc_url(self) -> str | None:
        return None if self.disable_docs else self.redoc_url

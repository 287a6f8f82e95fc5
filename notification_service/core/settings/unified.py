"""Unified settings composition for convenient access.

Composes every domain-specific settings class into a single object. Each
nested class still reads its own environment prefix.

Usage:
    from notification_service.core.settings import get_settings

    settings = get_settings()
    print(settings.rabbit.notifications_queue_name)
    print(settings.dispatch.max_attempts)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

from .app import AppSettings
from .db import DatabaseSettings
from .dispatch import DispatchSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .rabbit import RabbitSettings
from .whatsapp import WhatsAppSettings


class Settings(BaseModel):
    """All settings domains in one frozen object."""

    model_config = ConfigDict(frozen=True)

    app: AppSettings = Field(default_factory=AppSettings)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    rabbit: RabbitSettings = Field(default_factory=RabbitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    whatsapp: WhatsAppSettings = Field(default_factory=WhatsAppSettings)
    dispatch: DispatchSettings = Field(default_factory=DispatchSettings)

    @property
    def consumer_graceful_timeout(self) -> float:
        """Seconds the consumer waits for its in-flight message on shutdown.

        ``RABBIT_GRACEFUL_TIMEOUT``, raised to the dispatch budget of the
        slowest provider so a healthy send is never cut short.
        """
        provider_timeout = max(self.email.timeout, self.whatsapp.timeout)
        return max(self.rabbit.graceful_timeout, self.dispatch.dispatch_budget(provider_timeout))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached unified settings."""
    return Settings()

"""Cached settings loaders.

Each domain is validated once per process. Tests that change the
environment call ``clear_all_caches()`` to force a reload.
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .db import DatabaseSettings
from .dispatch import DispatchSettings
from .email import EmailSettings
from .logs import LoggingSettings
from .rabbit import RabbitSettings
from .whatsapp import WhatsAppSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    return EmailSettings()


@lru_cache(maxsize=1)
def get_whatsapp_settings() -> WhatsAppSettings:
    return WhatsAppSettings()


@lru_cache(maxsize=1)
def get_dispatch_settings() -> DispatchSettings:
    return DispatchSettings()


_LOADERS = (
    get_app_settings,
    get_db_settings,
    get_rabbit_settings,
    get_logging_settings,
    get_email_settings,
    get_whatsapp_settings,
    get_dispatch_settings,
)


def clear_all_caches() -> None:
    """Forget every cached settings object, including the unified one."""
    for loader in _LOADERS:
        loader.cache_clear()

    from .unified import get_settings

    get_settings.cache_clear()

"""Modular Pydantic Settings v2 configuration.

One settings class per domain (app, db, rabbit, logging, email, whatsapp,
dispatch), each with its own environment prefix, frozen after validation and
loaded through LRU-cached loaders.

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .db import DatabaseSettings
from .dispatch import DispatchSettings
from .email import EmailSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_dispatch_settings,
    get_email_settings,
    get_logging_settings,
    get_rabbit_settings,
    get_whatsapp_settings,
)
from .logs import LoggingSettings
from .rabbit import RabbitSettings
from .unified import Settings, get_settings
from .whatsapp import WhatsAppSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "DispatchSettings",
    "EmailSettings",
    "LoggingSettings",
    "RabbitSettings",
    "Settings",
    "WhatsAppSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_dispatch_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_settings",
    "get_whatsapp_settings",
]

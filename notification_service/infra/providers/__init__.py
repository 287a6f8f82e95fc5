"""Outbound notification providers (email, WhatsApp).

Usage:
    from notification_service.infra.providers import ProviderRegistry

    registry = ProviderRegistry.from_settings(get_email_settings(), get_whatsapp_settings())
"""

from __future__ import annotations

from .base import BaseProviderClient, ProviderClient, ProviderResult
from .console import ConsoleEmailClient
from .factory import ProviderRegistry
from .maileroo import MailerooEmailClient
from .mock import MockWhatsAppClient
from .twilio import TwilioWhatsAppClient

__all__ = [
    "BaseProviderClient",
    "ConsoleEmailClient",
    "MailerooEmailClient",
    "MockWhatsAppClient",
    "ProviderClient",
    "ProviderRegistry",
    "ProviderResult",
    "TwilioWhatsAppClient",
]

"""Dispatch pipeline settings: retry policy and audit housekeeping.

Environment variables use DISPATCH_ prefix.
Example: DISPATCH_MAX_ATTEMPTS=3, DISPATCH_INITIAL_DELAY=0.5
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import DomainSettings


class DispatchSettings(DomainSettings):
    """Dispatcher behaviour.

    ``max_attempts=1`` keeps a single provider call per dispatch and leaves
    ``attempt_count`` informational; redelivery is then the broker's (dead
    letter) or an operator's concern. Values above 1 enable bounded retry with
    exponential backoff inside the dispatch.
    """

    config_name: ClassVar[str] = "dispatch"

    # ─────────────────────────────────────────────────────
    # Retry policy
    # ─────────────────────────────────────────────────────
    max_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Provider attempts per dispatch (1 disables retry).",
    )
    initial_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Delay in seconds before the first retry.",
    )
    max_delay: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Upper bound in seconds for any single retry delay.",
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.0,
        le=10.0,
        description="Multiplier applied to the delay after each attempt.",
    )
    jitter: bool = Field(
        default=True,
        description="Randomize retry delays to avoid synchronized retries.",
    )

    # ─────────────────────────────────────────────────────
    # Audit record shaping and retention
    # ─────────────────────────────────────────────────────
    payload_echo_limit: int = Field(
        default=4096,
        ge=0,
        le=65536,
        description="Maximum characters of the raw queue payload echoed into record metadata.",
    )
    retention_days: int = Field(
        default=90,
        ge=1,
        le=3650,
        description="Default age in days for `records cleanup`.",
    )

    @model_validator(mode="after")
    def validate_delays(self) -> DispatchSettings:
        """Ensure the delay cap is not below the initial delay."""
        if self.max_delay < self.initial_delay:
            msg = "max_delay must be greater than or equal to initial_delay"
            raise ValueError(msg)
        return self

    @property
    def retry_enabled(self) -> bool:
        return self.max_attempts > 1

    def dispatch_budget(self, provider_timeout: float) -> float:
        """Longest a single dispatch can take: every attempt timing out plus capped backoff."""
        return self.max_attempts * provider_timeout + (self.max_attempts - 1) * self.max_delay

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
    )

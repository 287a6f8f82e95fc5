"""Logging settings.

Environment variables use LOG_ prefix.
Example: LOG_LEVEL=DEBUG, LOG_JSON_LOGS=false, LOG_FILE_ENABLED=true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import DomainSettings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(DomainSettings):
    """Structured logging: JSON lines on the console and an optional rotating file."""

    config_name: ClassVar[str] = "logging"

    service_name: str = Field(default="notification-service", description="Static `service` field of every JSON line")
    level: LogLevel = Field(default="INFO", description="Root logger level")
    json_logs: bool = Field(default=True, description="JSON Lines output; plain text when false")
    console_enabled: bool = True
    console_level: LogLevel | None = Field(default=None, description="Console handler level (defaults to `level`)")

    file_enabled: bool = Field(default=False, description="Write to `file_path` as well")
    file_path: Path = Path("logs/notification-service.log.jsonl")
    file_level: LogLevel | None = Field(default=None, description="File handler level (defaults to `level`)")
    file_max_bytes: int = Field(default=10_485_760, ge=1024, le=1_073_741_824, description="Rotate after this size")
    file_backup_count: int = Field(default=5, ge=0, le=100)

    include_context: bool = Field(
        default=True,
        description="Copy the task's log context (notification_id, delivery_tag, ...) onto records",
    )
    capture_warnings: bool = Field(default=True, description="Route `warnings` through logging")

    model_config = SettingsConfigDict(env_prefix="LOG_")

    @field_validator("level", "console_level", "file_level", mode="before")
    @classmethod
    def _upper(cls, v: str | None) -> str | None:
        return v.upper() if isinstance(v, str) else v

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``configure_logging``."""
        return {
            "service_name": self.service_name,
            "log_level": self.level,
            "json_logs": self.json_logs,
            "console_enabled": self.console_enabled,
            "console_level": self.console_level or self.level,
            "file_path": str(self.file_path) if self.file_enabled else None,
            "file_level": self.file_level or self.level,
            "file_max_bytes": self.file_max_bytes,
            "file_backup_count": self.file_backup_count,
            "include_context": self.include_context,
            "capture_warnings": self.capture_warnings,
        }

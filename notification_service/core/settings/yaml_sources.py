"""YAML config source with conf.d directory support, and the settings base
class that plugs it in.

Each domain reads, in merge order:
- conf/<name>.yaml        (base configuration)
- conf/<name>.d/*.yaml    (override files, alphabetical)

The base directory defaults to ``conf`` and can be moved per domain with
``<PREFIX>CONFIG_DIR`` (for example ``RABBIT_CONFIG_DIR=/etc/notification-service``).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict, YamlConfigSettingsSource


class ConfDYamlConfigSettingsSource(YamlConfigSettingsSource):
    """``YamlConfigSettingsSource`` over a main file plus a conf.d directory."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        name: str,
        *,
        config_dir_env: str,
        base_dir: str = "conf",
        yaml_file_encoding: str | None = "utf-8",
    ) -> None:
        config_base = Path(os.getenv(config_dir_env, base_dir))

        yaml_files: list[Path] = []
        main_file = config_base / f"{name}.yaml"
        if main_file.exists():
            yaml_files.append(main_file)

        confd_path = config_base / f"{name}.d"
        if confd_path.is_dir():
            yaml_files.extend(sorted([*confd_path.glob("*.yaml"), *confd_path.glob("*.yml")]))

        self._yaml_files = yaml_files
        super().__init__(
            settings_cls=settings_cls,
            yaml_file=yaml_files or None,
            yaml_file_encoding=yaml_file_encoding,
        )

    @property
    def yaml_files(self) -> list[Path]:
        """Files this source was built from, in merge order."""
        return list(self._yaml_files)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(yaml_files=[{', '.join(map(str, self._yaml_files))}])"


class DomainSettings(BaseSettings):
    """Base for the per-domain settings classes.

    Subclasses set ``config_name`` (the YAML file stem) and ``env_prefix``.
    Source precedence: init > yaml > env > dotenv > secrets.
    """

    config_name: ClassVar[str] = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        yaml_source = ConfDYamlConfigSettingsSource(
            settings_cls,
            cls.config_name,
            config_dir_env=f"{settings_cls.model_config.get('env_prefix', '')}CONFIG_DIR",
        )
        return (init_settings, yaml_source, env_settings, dotenv_settings, file_secret_settings)

"""
YAML + environment configuration backed by pydantic-settings.

Values are read from ``<config_path>/<env>.yaml`` and can be overridden by
environment variables of the same name (a ``.env`` file is honoured too).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Tuple, Type, TypeVar

import yaml
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from gemdesk.components.configuration.configuration_interface import (
    ConfigurationInterface,
)

T = TypeVar("T")


class AppSettings(BaseSettings):
    """Application settings schema."""

    LOG_FORMAT: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    LOG_LEVEL: str = "INFO"

    GEMINI_API_KEY: str | None = None
    VERTEX_PROJECT_ID: str | None = None
    VERTEX_LOCATION: str = "us-central1"

    CHAT_MODEL_NAME: str = "gemini-3-flash-preview"
    TTS_MODEL_NAME: str = "gemini-2.5-flash-preview-tts"
    TRANSCRIBE_MODEL_NAME: str = "gemini-2.5-flash"
    SYSTEM_PROMPT: str | None = None
    CHAT_TIMEOUT_SECONDS: int = 300

    SQLITE_DB_PATH: str = "gemdesk.db"

    OUTPUT_SAMPLE_RATE: int = 24000
    MAX_ATTACHMENT_BYTES: int = 20 * 1024 * 1024
    SYNTHESIS_MAX_ATTEMPTS: int = 3

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Environment first, then ``.env``, then the YAML values passed to ``__init__``."""
        return (env_settings, dotenv_settings, init_settings)


def load_yaml_values(yaml_path: Path) -> dict[str, Any]:
    if not yaml_path.exists():
        return {}
    with yaml_path.open(encoding="utf-8") as handle:
        values = yaml.safe_load(handle) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Configuration file {yaml_path} must contain a mapping")
    return values


class Configuration(ConfigurationInterface):
    def __init__(self, env: str, config_path: str) -> None:
        self.env = env
        self.yaml_path = Path(config_path) / f"{env}.yaml"
        self.settings = AppSettings(**load_yaml_values(self.yaml_path))

    def get_configuration(
        self, key: str, value_type: type[T], default: Any = None
    ) -> T:
        value = getattr(self.settings, key, None)
        if value is None:
            if default is None:
                raise KeyError(f"Configuration key {key} is not set")
            return default
        return value_type(value)  # type: ignore[call-arg]

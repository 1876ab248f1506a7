"""Configuration module using pydantic-settings."""

import logging
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class GeminiConfig(BaseSettings):
    """Google Gemini API configuration."""

    api_key: str = Field(..., min_length=1, description="Gemini API key")
    model: str = Field(
        "gemini-2.5-flash-preview-09-2025",
        description="Gemini model name",
    )
    timeout: int = Field(60, ge=1, description="Request timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="GEMINI_", case_sensitive=False)


class TelegramConfig(BaseSettings):
    """Telegram bot configuration."""

    bot_token: str = Field(..., min_length=1, description="Telegram bot token")
    owner_id: int | None = Field(None, description="User ID notified about handler errors")

    model_config = SettingsConfigDict(env_prefix="TELEGRAM_", case_sensitive=False)


class HealthConfig(BaseSettings):
    """Health check HTTP server configuration."""

    enabled: bool = Field(True, description="Serve the health check endpoint")
    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(
        8080,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("health_port", "port"),
        description="Bind port (HEALTH_PORT, or PORT as set by hosting platforms)",
    )

    model_config = SettingsConfigDict(
        env_prefix="HEALTH_", case_sensitive=False, populate_by_name=True
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Logging level")

    model_config = SettingsConfigDict(env_prefix="LOG_", case_sensitive=False)


class AppConfig(BaseSettings):
    """Main application configuration."""

    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_yaml(cls, yaml_path: Path | str) -> "AppConfig":
        """Load configuration from YAML file.

        Secrets are still read from the environment: every section is built
        through its own settings class, so env vars fill what the file omits.
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        import yaml

        with yaml_path.open("r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        sections = {
            "gemini": GeminiConfig,
            "telegram": TelegramConfig,
            "health": HealthConfig,
            "logging": LoggingConfig,
        }
        config_data: dict[str, Any] = {}
        for key, section_cls in sections.items():
            value = yaml_data.get(key)
            if isinstance(value, dict):
                config_data[key] = section_cls(**value)

        return cls(**config_data)


# Global config instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get application configuration (singleton).

    Raises:
        pydantic.ValidationError: If a required secret is missing
    """
    global _config
    if _config is None:
        config_path = Path("config.yaml")
        if config_path.exists():
            _config = AppConfig.from_yaml(config_path)
        else:
            _config = AppConfig()
        logger.info("Configuration loaded successfully")
    return _config

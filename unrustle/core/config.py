"""Application configuration using Pydantic Settings

Settings are read from a TOML file (``config.toml`` by default, or the path in
``UNRUSTLE_CONFIG``) and may be overridden by ``UNRUSTLE_``-prefixed
environment variables, e.g. ``UNRUSTLE_SERVER__JWT_SECRET``.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "UNRUSTLE_CONFIG"
DEFAULT_CONFIG_FILE = "config.toml"


def config_file_path() -> Path:
    """Resolve the TOML config file location"""
    return Path(os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))


class TwitchSettings(BaseModel):
    """Twitch OAuth application"""

    client_id: str = Field(..., min_length=1, description="Twitch OAuth Client ID")
    client_secret: str = Field(..., min_length=1, description="Twitch OAuth Client Secret")
    redirect_url: str = Field(..., description="Registered Twitch OAuth redirect URL")
    scopes: list[str] = Field(default_factory=lambda: ["user:read:email"])
    cookie: str = Field(default="twitch_session", description="Session cookie name")


class DestinyggSettings(BaseModel):
    """Destiny.gg OAuth application"""

    client_id: str = Field(..., min_length=1, description="Destiny.gg OAuth Client ID")
    client_secret: str = Field(..., min_length=1, description="Destiny.gg OAuth Client Secret")
    redirect_url: str = Field(..., description="Registered Destiny.gg OAuth redirect URL")
    cookie: str = Field(default="dgg_session", description="Session cookie name")


class ServerSettings(BaseModel):
    """HTTP server, session and login-flow tuning"""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # Session tokens
    jwt_secret: str = Field(..., min_length=1, description="Secret key for session token signing")
    jwt_algorithm: str = Field(default="HS256", description="Session token signing algorithm")
    session_ttl_days: int = Field(
        default=30, description="Session token and cookie lifetime in days"
    )

    # Pending authorizations
    state_ttl_seconds: float = Field(default=300.0, description="OAuth state lifetime")
    state_sweep_interval: float = Field(
        default=60.0, description="Seconds between expired OAuth state sweeps"
    )

    http_timeout: float = Field(default=10.0, description="Provider request timeout in seconds")
    refresh_profile_on_login: bool = Field(
        default=False, description="Refresh stored display name/email on every login"
    )

    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"

    @property
    def session_max_age(self) -> int:
        """Cookie Max-Age in seconds, matching the token lifetime"""
        return self.session_ttl_days * 24 * 60 * 60


class DatabaseSettings(BaseModel):
    """User store location"""

    url: str = Field(default="", description="PostgreSQL URL; empty keeps users in memory")


class Settings(BaseSettings):
    """Application settings with TOML file and environment variable support"""

    model_config = SettingsConfigDict(
        env_prefix="UNRUSTLE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    twitch: TwitchSettings
    destinygg: DestinyggSettings
    server: ServerSettings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_file_path()),
            file_secret_settings,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]

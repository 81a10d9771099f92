"""Application settings and configuration.

This module defines all configuration options for the ALTCHA Guard service.
Settings are loaded from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HMAC_KEY = "MY_ALTCHA_HMAC_KEY"
SECONDS_PER_MINUTE = 60

CacheBackend = Literal["memory", "bounded"]


class Settings(BaseSettings):
    """Service settings loaded from environment variables.

    Settings can be overridden via environment variables or a `.env` file.
    """

    # Application metadata
    app_name: str = Field(default="ALTCHA Guard", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Listen socket
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Challenge issuance and verification
    altcha_hmac_key: str = Field(default=DEFAULT_HMAC_KEY, alias="ALTCHA_HMAC_KEY")
    altcha_max_number: int = Field(default=50_000, alias="ALTCHA_MAX_NUMBER")
    expire_minutes: int = Field(default=5, alias="ALTCHA_EXPIRE_MINUTES")

    # Replay protection
    replay_detection_enabled: bool = Field(default=True, alias="REPLAY_DETECTION_ENABLED")
    cache_backend: CacheBackend = Field(default="memory", alias="CACHE_BACKEND")
    cache_max_entries: int = Field(default=100_000, alias="CACHE_MAX_ENTRIES")
    cache_sweep_interval_seconds: float = Field(
        default=900.0,
        alias="CACHE_SWEEP_INTERVAL_SECONDS",
    )

    # CORS configuration for browser widgets
    cors_origin: str = Field(default="*", alias="CORS_ORIGIN")

    model_config = SettingsConfigDict(
        env_file=".env",
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("altcha_max_number", "expire_minutes")
    @classmethod
    def _require_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("cache_sweep_interval_seconds")
    @classmethod
    def _require_positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def ttl_seconds(self) -> int:
        """Return the challenge and replay window in seconds.

        The same window bounds how long an issued challenge stays valid and
        how long a redeemed token is remembered.
        """
        return self.expire_minutes * SECONDS_PER_MINUTE

    @property
    def uses_default_hmac_key(self) -> bool:
        return self.altcha_hmac_key == DEFAULT_HMAC_KEY


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use.

    Raises:
        pydantic.ValidationError: If the environment holds invalid values.
    """
    return Settings()

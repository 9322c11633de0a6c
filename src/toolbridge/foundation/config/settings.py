"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files and nested configuration.

Example:
    >>> from toolbridge.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.cache.ttl
    300.0

    # Or with environment variables:
    # TOOLBRIDGE_CACHE_TTL=60
    # TOOLBRIDGE_LOG_LEVEL=DEBUG

Backend credentials are separate settings classes, loaded only when the
matching adapter starts:
    # CONFLUENCE_BASE_URL=https://wiki.example.com
    # CONFLUENCE_API_TOKEN=...
    # JIRA_BASE_URL=https://jira.example.com
    # JIRA_API_TOKEN=...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, PositiveFloat, PositiveInt, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """Response cache configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLBRIDGE_CACHE_", extra="ignore")

    enabled: bool = True
    ttl: PositiveFloat = Field(default=300.0, description="Entry lifetime in seconds")


class LoggingSettings(BaseSettings):
    """Logging configuration. All log output goes to stderr."""

    model_config = SettingsConfigDict(env_prefix="TOOLBRIDGE_LOG_", extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class HttpSettings(BaseSettings):
    """HTTP client default configuration."""

    model_config = SettingsConfigDict(env_prefix="TOOLBRIDGE_HTTP_", extra="ignore")

    timeout: PositiveFloat = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = True
    user_agent: str = "toolbridge/1.0"


class NormalizerSettings(BaseSettings):
    """Default bounds for document normalization."""

    model_config = SettingsConfigDict(env_prefix="TOOLBRIDGE_NORMALIZER_", extra="ignore")

    max_chars: PositiveInt = Field(default=8000, description="Length cap before summarization")
    summary_chars: PositiveInt = Field(default=7000, description="Budget for accumulated sentences")
    marker: str = " [...]"

    @model_validator(mode="after")
    def _check_bounds(self) -> NormalizerSettings:
        if self.summary_chars + len(self.marker) > self.max_chars:
            raise ValueError("summary_chars plus marker length must not exceed max_chars")
        return self


class BridgeSettings(BaseSettings):
    """Root settings for toolbridge.

    Loads configuration from environment variables with TOOLBRIDGE_ prefix.

    Example environment variables:
        TOOLBRIDGE_CACHE_TTL=120
        TOOLBRIDGE_LOG_FORMAT=json
        TOOLBRIDGE_HTTP_TIMEOUT=60
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    normalizer: NormalizerSettings = Field(default_factory=NormalizerSettings)


# ─────────────────────────────────────────────────────────────────────────────
# Backend credentials
# ─────────────────────────────────────────────────────────────────────────────


class _BackendSettings(BaseSettings):
    base_url: str = Field(..., min_length=1)
    api_token: SecretStr

    @field_validator("base_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    @field_validator("api_token")
    @classmethod
    def _check_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("api_token must not be empty")
        return v


class ConfluenceSettings(_BackendSettings):
    """Confluence connection. REST root is ``{base_url}/rest/api``."""

    model_config = SettingsConfigDict(env_prefix="CONFLUENCE_", env_file=".env", extra="ignore")

    max_chars: PositiveInt | None = Field(default=None, description="Overrides the normalizer length cap")

    @property
    def api_root(self) -> str:
        return f"{self.base_url}/rest/api"


class JiraSettings(_BackendSettings):
    """Jira connection. REST root is ``{base_url}/rest/api/2``."""

    model_config = SettingsConfigDict(env_prefix="JIRA_", env_file=".env", extra="ignore")

    browse_url: str | None = Field(default=None, description="Issue link base; defaults to {base_url}/browse")
    max_chars: PositiveInt = 500
    summary_chars: PositiveInt = 400

    @property
    def api_root(self) -> str:
        return f"{self.base_url}/rest/api/2"

    @property
    def browse_root(self) -> str:
        return (self.browse_url or f"{self.base_url}/browse").rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Get the global settings instance (cached)."""
    return BridgeSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    After calling this, the next get_settings() call will
    reload configuration from environment.
    """
    get_settings.cache_clear()

"""Configuration management via pydantic-settings."""

from .settings import (
    BridgeSettings,
    CacheSettings,
    ConfluenceSettings,
    HttpSettings,
    JiraSettings,
    LoggingSettings,
    NormalizerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "BridgeSettings", "CacheSettings", "LoggingSettings", "HttpSettings", "NormalizerSettings",
    "ConfluenceSettings", "JiraSettings",
    "get_settings", "clear_settings_cache",
]

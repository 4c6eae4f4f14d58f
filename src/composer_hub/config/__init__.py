"""Configuration helpers."""

from .settings import (
    DEFAULT_VENDOR,
    ComposerHubApiSettings,
    ComposerHubSettings,
    get_api_settings,
    get_settings,
    sanitize_vendor,
)

__all__ = [
    "DEFAULT_VENDOR",
    "ComposerHubApiSettings",
    "ComposerHubSettings",
    "get_api_settings",
    "get_settings",
    "sanitize_vendor",
]

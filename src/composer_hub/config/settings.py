"""composer-hub configuration using pydantic-settings."""

from __future__ import annotations

import re
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_STORAGE_ROOT = PROJECT_ROOT / "var" / "hub" / "storage"
DEFAULT_VENDOR = "composer-hub"

_VENDOR_PATTERN = re.compile(r"[^A-Za-z0-9_.\-]+")


def sanitize_vendor(value: str | None) -> str:
    cleaned = _VENDOR_PATTERN.sub("", value or "")
    return cleaned or DEFAULT_VENDOR


class ComposerHubApiSettings(BaseSettings):
    """Process/runtime settings for the repository API server."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="COMPOSER_HUB_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Bind address for the repository API.")
    port: PositiveInt = Field(default=8320, description="Port for the repository API.")
    reload: bool = Field(default=False, description="Enable uvicorn auto-reload (dev only).")
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = Field(
        default="info",
        description="Log level for the repository API / uvicorn.",
    )


class ComposerHubSettings(BaseSettings):
    """Validated settings for the package repository."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="COMPOSER_HUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    vendor: str = Field(
        default=DEFAULT_VENDOR,
        description="Vendor namespace packages are exposed under (vendor/slug).",
    )
    base_url: str = Field(
        default="http://127.0.0.1:8320",
        description="Public base URL used to build dist download URLs.",
    )
    storage_root: Path = Field(
        default=DEFAULT_STORAGE_ROOT,
        description="Directory holding committed package artifacts.",
    )
    scratch_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "composer-hub",
        description="Scratch directory for artifacts being built.",
    )
    catalog_path: Path | None = Field(
        default=None,
        description="YAML catalog describing the packages to expose.",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for the API key store.",
    )
    plugins: list[str] | None = Field(
        default=None,
        description="Plugin slugs to expose; all plugins when unset.",
    )
    themes: list[str] | None = Field(
        default=None,
        description="Theme slugs to expose; all themes when unset.",
    )
    strict_index: bool = Field(
        default=False,
        description="Fail the whole index when one release cannot be built or checksummed.",
    )
    download_timeout_seconds: PositiveInt = Field(
        default=300,
        description="Timeout for fetching release assets from a source URL.",
    )

    @field_validator("vendor", mode="before")
    @classmethod
    def _sanitize_vendor(cls, value: object) -> str:
        return sanitize_vendor(str(value) if value is not None else None)

    @field_validator("base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache()
def get_settings() -> ComposerHubSettings:
    """Return memoized repository settings."""

    return ComposerHubSettings()


@lru_cache()
def get_api_settings() -> ComposerHubApiSettings:
    """Return memoized API process settings."""

    return ComposerHubApiSettings()

"""
Client configuration models and helpers.

Centralizes settings management so the network client, the credential store
and the local cache share a consistent configuration surface.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    populate_by_name=True,
    extra="ignore",
)


class ApiSettings(BaseSettings):
    """Configuration required for talking to the REST backend."""

    model_config = _ENV_CONFIG

    base_url: str = Field(..., alias="LIFTSYNC_API_BASE_URL")
    timeout_seconds: float = Field(30.0, alias="LIFTSYNC_HTTP_TIMEOUT")
    refresh_path: str = Field(
        "token/refresh/",
        alias="LIFTSYNC_REFRESH_PATH",
        description="Path, relative to the base URL, of the token refresh endpoint.",
    )
    profile_paths: Dict[str, str] = Field(
        default_factory=dict,
        alias="LIFTSYNC_PROFILE_PATHS",
        description="JSON object overriding profile endpoint paths, e.g. {\"gender\": \"profile/gender/\"}.",
    )

    @field_validator("base_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        """Relative request paths are joined onto the base URL."""
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("API base URL must be an http(s) URL.")
        return value if value.endswith("/") else f"{value}/"


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _ENV_CONFIG

    credential_secret: Optional[str] = Field(
        None,
        alias="LIFTSYNC_CREDENTIAL_SECRET",
        description="Secret used to derive the symmetric key for stored credentials.",
    )


class StorageSettings(BaseSettings):
    """Locations of the on-device SQLite files."""

    model_config = _ENV_CONFIG

    credential_db_path: str = Field(
        "data/credentials.sqlite3", alias="LIFTSYNC_CREDENTIAL_DB"
    )
    cache_db_path: str = Field("data/cache.sqlite3", alias="LIFTSYNC_CACHE_DB")


class SyncSettings(BaseSettings):
    """Delta sync tuning."""

    model_config = _ENV_CONFIG

    max_pages: int = Field(
        20,
        alias="LIFTSYNC_SYNC_MAX_PAGES",
        description="Upper bound on has_more pages followed by a single sync.",
        ge=1,
    )


class AppSettings(BaseSettings):
    """Root settings object for the client core."""

    model_config = _ENV_CONFIG

    environment: str = Field("development", alias="LIFTSYNC_ENV")
    log_level: str = Field("INFO", alias="LIFTSYNC_LOG_LEVEL")
    api: ApiSettings = Field(default_factory=ApiSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


def load_settings(env_file: str | Path) -> AppSettings:
    """Build settings from an explicit env file, bypassing the cache.

    Nested groups are created with the same file so none of them silently
    falls back to the default ``.env``.
    """
    return AppSettings(  # type: ignore[call-arg]
        _env_file=env_file,
        api=ApiSettings(_env_file=env_file),  # type: ignore[call-arg]
        security=SecuritySettings(_env_file=env_file),  # type: ignore[call-arg]
        storage=StorageSettings(_env_file=env_file),  # type: ignore[call-arg]
        sync=SyncSettings(_env_file=env_file),  # type: ignore[call-arg]
    )


__all__ = [
    "ApiSettings",
    "AppSettings",
    "SecuritySettings",
    "StorageSettings",
    "SyncSettings",
    "get_settings",
    "load_settings",
]

"""Configuration management for the live shows discovery core."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Remote proxy used when no usable API base is configured
DEFAULT_REMOTE_API_BASE = "https://us-central1-liveshows-app.cloudfunctions.net"
DEFAULT_SHOWS_ENDPOINT = f"{DEFAULT_REMOTE_API_BASE}/shows"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Endpoint resolution
    api_base_url: str = Field(default="", description="Configured API base URL")
    api_base_url_override: str = Field(
        default="",
        description="Explicit API base override; disables same-origin fallback",
    )
    shows_endpoint_override: str = Field(
        default="",
        description="Runtime shows endpoint override, used verbatim",
    )
    default_shows_endpoint: str = Field(
        default=DEFAULT_SHOWS_ENDPOINT,
        validation_alias=AliasChoices("SHOWS_ENDPOINT", "SHOWS_PROXY_ENDPOINT"),
        description="Remote endpoint used when the base URL is unusable",
    )
    current_origin: str = Field(
        default="",
        description="Origin the client runs on, e.g. http://localhost:3003",
    )

    # Cache and network
    cache_ttl_hours: float = Field(default=8.0, description="Hours a cached fetch stays fresh")
    http_timeout_seconds: float = Field(default=30.0, description="HTTP request timeout")
    geolocation_timeout_seconds: float = Field(
        default=10.0, description="Upper bound on waiting for a position fix"
    )

    # Storage
    storage_path: str = Field(
        default="data/liveshows.db",
        description="SQLite file backing the local key-value store",
    )

    # Remote mirror (Turso/libsql)
    user_id: str = Field(default="", description="Identity owning the remote document")
    turso_database_url: str = Field(default="", description="libsql:// database URL")
    turso_auth_token: str = Field(default="", description="Turso authentication token")

    # Auth for remote endpoints
    auth_token: str = Field(default="", description="Bearer token for remote endpoints")

    # Location used by the CLI when no geolocation source is wired in
    default_latitude: float | None = Field(default=None, description="Fallback latitude")
    default_longitude: float | None = Field(default=None, description="Fallback longitude")

    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def cache_ttl_ms(self) -> float:
        """Cache TTL in milliseconds."""
        return self.cache_ttl_hours * 60 * 60 * 1000

    @property
    def has_remote_mirror(self) -> bool:
        """Check if the remote document store is configured."""
        return bool(self.user_id) and bool(self.turso_database_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure application logging."""
    if settings is None:
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Suppress verbose third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

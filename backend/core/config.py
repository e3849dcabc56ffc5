"""Application settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the API service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = "beforeafter"
    app_env: str = "local"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./beforeafter.db"
    database_echo: bool = False

    # Clients send the opaque session token in this header.
    auth_header_name: str = "x-auth"
    max_active_tokens: int = Field(default=10, ge=1)

    feed_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    redis_url: str = "redis://localhost:6379/0"
    rate_limit_requests: int = Field(default=0, ge=0)
    rate_limit_window_seconds: int = Field(default=60, ge=0)
    rate_limit_trusted_proxies: list[str] = Field(default_factory=list)
    rate_limit_ip_headers: list[str] = Field(
        default_factory=lambda: ["x-forwarded-for", "x-real-ip"]
    )

    cors_origins: list[str] = Field(default_factory=list)


settings = Settings()

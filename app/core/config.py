"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_log_settings() -> "LogSettings":
    return LogSettings()


def _build_app_settings() -> "AppSettings":
    return AppSettings()


def _build_cache_settings() -> "CacheSettings":
    return CacheSettings()


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level (DEBUG, INFO, ...)")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/app.log)",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        False,
        description="Whether X-API-Key authentication is required on /api routes",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-route rate limiting by client IP",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )
    rate_limit_store_capacity: int = Field(
        10_000,
        description="Maximum number of distinct client keys tracked by the limiter",
        ge=1,
    )
    rate_limit_cleanup_threshold: float = Field(
        0.9,
        description="Fill ratio at which the limiter sweeps stale keys inline",
        gt=0,
        le=1,
    )
    rate_limit_sweep_interval_seconds: float = Field(
        900.0,
        description="Interval between background sweeps of the limiter store",
        gt=0,
    )
    rate_limit_retention_ms: int = Field(
        3_600_000,
        description="Timestamps older than this are dropped by the background sweep",
        ge=1,
    )
    pinned_write_rate_limit_requests: int = Field(
        30,
        description="Maximum pin/unpin requests per window (per client IP)",
        ge=1,
    )
    pinned_write_rate_limit_window_ms: int = Field(
        60_000,
        description="Pin/unpin rate limit window in milliseconds",
        ge=1,
    )
    account_rate_limit_requests: int = Field(
        10,
        description="Maximum account write requests per window (per client IP)",
        ge=1,
    )
    account_rate_limit_window_ms: int = Field(
        60_000,
        description="Account write rate limit window in milliseconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Read-through cache configuration for the storage layer."""

    max_entries: int = Field(
        1000,
        description="Maximum entries per cache instance",
        ge=1,
    )
    user_ttl_ms: int = Field(
        10_000,
        description="TTL for cached user records in milliseconds",
        ge=1,
    )
    pinned_items_ttl_ms: int = Field(
        5_000,
        description="TTL for cached pinned-item collections in milliseconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    cache: CacheSettings = Field(default_factory=_build_cache_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()

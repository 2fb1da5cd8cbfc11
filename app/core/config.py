"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Production may inject everything through the environment
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class RateLimitPolicyConfig(BaseModel):
    """Quota for one category of mutating operation."""

    window_ms: int = Field(60_000, ge=1, description="Counting window length in milliseconds")
    max_attempts: int = Field(..., ge=1, description="Attempts allowed per window")


def _default_policies() -> dict[str, RateLimitPolicyConfig]:
    per_minute = {
        "match": 10,
        "invite": 5,
        "event": 20,
        "player": 30,
        "venue": 20,
        "attendance": 30,
        "social": 30,
        "group-join": 5,
        "group-settings": 10,
        "default": 30,
    }
    return {
        category: RateLimitPolicyConfig(window_ms=60_000, max_attempts=attempts)
        for category, attempts in per_minute.items()
    }


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    title: str = Field("Padel League API", description="Title shown in the OpenAPI docs")
    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_prefix: str = Field("/v1", description="Prefix for versioned routes")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo request correlation ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting for mutating endpoints.

    Policies may be overridden as JSON, e.g.
    ``RATE_LIMIT_POLICIES='{"match": {"window_ms": 60000, "max_attempts": 5}}'``.
    Categories absent from the mapping are not limited.
    """

    enabled: bool = Field(True, description="Enable rate limiting on mutating endpoints")
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on limited responses",
    )
    strategy: str = Field("fixed", description="Window strategy: 'fixed' or 'sliding'")
    stale_after_windows: int = Field(
        10,
        ge=1,
        description="Evict entries idle for more than this many window lengths",
    )
    sweep_interval_seconds: float = Field(
        300.0,
        gt=0,
        description="Minimum time between opportunistic sweeps of stale entries",
    )
    identifier_headers: list[str] = Field(
        default_factory=lambda: ["x-forwarded-for", "x-real-ip", "cf-connecting-ip"],
        description="Headers inspected, in order, for the client address",
    )
    fallback_identifier: str = Field(
        "anonymous",
        description="Identifier used when no client address is available",
    )
    policies: dict[str, RateLimitPolicyConfig] = Field(default_factory=_default_policies)

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    return AppSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


def _build_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()

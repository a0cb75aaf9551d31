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


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def parse_csv(value: str | None) -> set[str]:
    """Parse a comma-separated setting into a set of trimmed, non-empty items.

    Examples:
        >>> sorted(parse_csv("a, b ,,c"))
        ['a', 'b', 'c']
        >>> parse_csv(None)
        set()
    """
    if not value:
        return set()
    return {item.strip() for item in value.split(",") if item.strip()}


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    allowed_origins: str = Field(
        "http://localhost:3000",
        description="Comma-separated list of browser origins allowed by CORS",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Identity token verification.

    Either ``jwt_key`` (PEM public key or shared secret) or ``jwks_url`` must be
    set; the verifier factory rejects a configuration with neither.
    """

    jwt_key: str | None = Field(
        None,
        description="PEM public key (RS*/ES*) or shared secret (HS*) used to verify tokens",
    )
    jwks_url: str | None = Field(
        None,
        description="JWKS endpoint of the identity provider (takes precedence over jwt_key)",
    )
    jwt_algorithms: str = Field(
        "RS256",
        description="Comma-separated list of accepted signing algorithms",
    )
    jwt_audience: str | None = Field(
        None,
        description="Expected 'aud' claim; audience is not checked when unset",
    )
    jwt_issuer: str | None = Field(
        None,
        description="Expected 'iss' claim; issuer is not checked when unset",
    )
    jwt_leeway_seconds: int = Field(
        30,
        description="Clock skew tolerated on exp/nbf/iat claims",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Shared fast store connection."""

    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Per-operation timeout; a timeout counts as a store failure",
    )
    connect_timeout_seconds: float = Field(
        2.0,
        description="Connection establishment timeout",
    )
    max_connections: int = Field(
        50,
        description="Upper bound of pooled connections per process",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Plan-aware sliding-window rate limiting."""

    enabled: bool = Field(
        True,
        description="Enable per-identity rate limiting on the HTTP API",
    )
    backend: str = Field(
        "redis",
        description="Fast store backend: 'redis' (shared) or 'memory' (single process)",
    )
    window_seconds: int = Field(
        3600,
        description="Sliding window length in seconds (all plans)",
        ge=1,
    )
    free_requests: int = Field(
        100,
        description="Maximum requests per window on the free plan",
        ge=1,
    )
    tier2_requests: int = Field(
        500,
        description="Maximum requests per window on the tier2 plan",
        ge=1,
    )
    tier3_requests: int = Field(
        2000,
        description="Maximum requests per window on the tier3 plan",
        ge=1,
    )
    plan_cache_ttl_seconds: int = Field(
        300,
        description="How long a resolved plan is cached in the fast store",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    exempt_identities: str | None = Field(
        None,
        description="Comma-separated identities that bypass rate limiting",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
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
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables, but
    static type checkers treat fields as constructor arguments.
    """

    return AppSettings()  # type: ignore[call-arg]


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe configuration with validation and environment variable
support for every gateway concern.

Features:
- **Type safety**: All configuration values are validated and typed
- **Environment variables**: Supports .env files and environment overrides
- **Nested configuration**: Uses __ delimiter for complex config structures
- **Auto-detection**: Picks a log formatter from the runtime environment
- **Caching**: Configuration is cached for performance

Configuration sources (in order of precedence):
1. Environment variables
2. .env file in project root
3. Default values in model definitions
"""

import os
import re
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CORS_ORIGIN_PATTERN = re.compile(r"^https?://[a-zA-Z0-9.-]+(:\d+)?$")
CORS_FALLBACK_ORIGIN = "https://yourdomain.com"

CLOUDFLARE_RANGE_URLS = [
    "https://www.cloudflare.com/ips-v4",
    "https://www.cloudflare.com/ips-v6",
]


def _split_csv(value: str, *, lower: bool = False) -> list[str]:
    items = [item.strip() for item in value.split(",")]
    if lower:
        items = [item.lower() for item in items]
    return [item for item in items if item]


class LogConfig(BaseModel):
    """Simplified logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/health/live", "/health/metrics"],
        description="Paths to exclude from request logging",
    )
    slow_request_threshold_ms: int = Field(
        default=1000,
        gt=0,
        description="Threshold for slow request warnings (milliseconds)",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "signature",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class RateLimitConfig(BaseModel):
    """Fixed-window rate limiting and trusted proxy range configuration."""

    max_requests: int = Field(
        default=100,
        ge=1,
        description="Requests allowed per client within one window",
    )
    window_seconds: int = Field(
        default=60,
        ge=1,
        description="Window duration; also the TTL of each counter",
    )
    refresh_interval_seconds: int = Field(
        default=3600,
        ge=1,
        description="Interval between trusted range refreshes",
    )
    refresh_enabled: bool = Field(
        default=True,
        description="Run the background trusted range refresher",
    )
    client_ip_header: str = Field(
        default="cf-connecting-ip",
        description="Header carrying the real client IP set by the trusted proxy",
    )
    range_source_urls: list[str] = Field(
        default_factory=lambda: list(CLOUDFLARE_RANGE_URLS),
        description="URLs serving newline-delimited trusted CIDR ranges",
    )
    fetch_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for each trusted range fetch",
    )


class RedisConfig(BaseModel):
    """Counter store connection settings."""

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    password: str | None = Field(default=None, description="Redis password")
    socket_timeout: float = Field(
        default=2.0,
        gt=0,
        le=60,
        description="Timeout in seconds for each Redis command",
    )
    use_memory_store: bool = Field(
        default=False,
        description="Use the in-process counter store instead of Redis",
    )

    @field_validator("password", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v

    @field_validator("redis_url", mode="after")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate the Redis URL scheme."""
        if not v.startswith(("redis://", "rediss://", "unix://")):
            msg = "Redis URL must use redis://, rediss:// or unix:// scheme"
            raise ValueError(msg)
        return v


class CorsConfig(BaseModel):
    """Cross-origin resource sharing policy.

    List-like values are accepted as comma separated strings so they can be
    set from plain environment variables.
    """

    origins: str = Field(
        default="",
        description="Comma separated allowed origins, or '*' for any origin",
    )
    allowed_headers: str = Field(
        default="content-type,authorization,x-requested-with",
        description="Comma separated request headers allowed cross-origin",
    )
    exposed_headers: str = Field(
        default="",
        description="Comma separated response headers exposed to browsers",
    )
    methods: str = Field(
        default="GET,POST,PUT,DELETE,OPTIONS",
        description="Comma separated methods allowed cross-origin",
    )
    credentials: bool = Field(default=False, description="Allow credentials")
    max_age: int = Field(default=86400, ge=0, description="Preflight cache seconds")
    options_success_status: int = Field(
        default=204,
        ge=200,
        le=299,
        description="Status code returned for preflight requests",
    )

    @property
    def allow_all_origins(self) -> bool:
        """Whether the wildcard origin is configured."""
        return self.origins.strip() == "*"

    @property
    def allowed_origin_list(self) -> list[str]:
        """Well-formed explicit origins, falling back to a placeholder origin."""
        if self.allow_all_origins:
            return []
        origins = [o for o in _split_csv(self.origins) if CORS_ORIGIN_PATTERN.match(o)]
        return origins or [CORS_FALLBACK_ORIGIN]

    @property
    def allowed_header_list(self) -> list[str]:
        """Allowed request headers, lowercased."""
        return _split_csv(self.allowed_headers, lower=True)

    @property
    def exposed_header_list(self) -> list[str]:
        """Exposed response headers."""
        return _split_csv(self.exposed_headers)

    @property
    def method_list(self) -> list[str]:
        """Allowed methods."""
        return _split_csv(self.methods)


class SignatureConfig(BaseModel):
    """Request signature credentials."""

    client_secrets: dict[str, str] = Field(
        default_factory=dict,
        description="Mapping of client id to shared signing secret",
    )
    signature_key: str = Field(
        default="x-signature",
        description="Header/field name carrying the request signature",
    )
    secret_key: str = Field(
        default="x-secret",
        description="Header/field name carrying the client secret",
    )


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="NeaCore API", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=True, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")  # noqa: S104
    api_port: int = Field(default=3000, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str | None = Field(default="/redoc", description="ReDoc URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )
    error_base_url: str = Field(
        default="https://api.domain.com/errors",
        description="Base URL of the error documentation pages",
    )
    max_body_bytes: int = Field(
        default=1024 * 1024,
        gt=0,
        description="Largest accepted request body",
    )

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    rate_limit_config: RateLimitConfig = Field(
        default_factory=RateLimitConfig, description="Rate limiting configuration"
    )
    redis_config: RedisConfig = Field(
        default_factory=RedisConfig, description="Counter store configuration"
    )
    cors_config: CorsConfig = Field(
        default_factory=CorsConfig, description="CORS configuration"
    )
    signature_config: SignatureConfig = Field(
        default_factory=SignatureConfig, description="Signature configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

    def _detect_formatter(self) -> Literal["console", "json"]:
        """Auto-detect log formatter based on environment."""
        if os.getenv("K_SERVICE") or os.getenv("AWS_EXECUTION_ENV"):
            return "json"
        if self.environment == "development":
            return "console"
        return "json"

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        _ = cls
        if v == "":
            return None
        return v

    @field_validator("error_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the error base URL so kinds can be appended."""
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

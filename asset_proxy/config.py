"""Application settings and logging configuration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Literal, TextIO

import structlog
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from asset_keys.types import DELIVERY_API_HOST, MAX_ASSET_KEY_LIFETIME_MS

_LOG_CONTEXT: dict[str, str] = {"environment": "development", "service": "asset-proxy"}


class AppSettings(BaseModel):
    """Application identity and runtime settings."""

    environment: Literal["development", "staging", "production"]
    service: str = "asset-proxy"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class ContentfulSettings(BaseModel):
    """Credentials used to request asset keys from the authority."""

    api_host: str = DELIVERY_API_HOST
    access_token: SecretStr
    space_id: str = Field(min_length=1)
    environment_id: str = Field(default="master", min_length=1)

    @field_validator("api_host")
    @classmethod
    def validate_api_host(cls, value: str) -> str:
        """Ensure the API host is a bare hostname."""
        if not value or "/" in value:
            raise ValueError("contentful.api_host must be a hostname without scheme or path.")
        return value


class SigningSettings(BaseModel):
    """Signed URL lifetime and upstream asset location settings."""

    url_lifetime_seconds: int = Field(default=10, ge=1, le=MAX_ASSET_KEY_LIFETIME_MS // 1000)
    upstream_domain: str = "secure.ctfassets.net"
    subdomains: list[str] = Field(
        default_factory=lambda: ["images", "assets", "downloads", "videos"], min_length=1
    )
    http_timeout_seconds: float = Field(default=5.0, gt=0)


class Settings(BaseSettings):
    """Root application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings
    contentful: ContentfulSettings
    signing: SigningSettings = Field(default_factory=SigningSettings)


def _standard_log_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject required structured logging fields."""
    context_vars = structlog.contextvars.get_contextvars()
    event_dict.setdefault("correlation_id", str(context_vars.get("correlation_id", "unknown")))
    event_dict.setdefault("environment", _LOG_CONTEXT["environment"])
    event_dict.setdefault("service", _LOG_CONTEXT["service"])
    event_dict.setdefault("timestamp", datetime.now(UTC).isoformat())
    return event_dict


def configure_structlog(settings: Settings, log_file: TextIO | None = None) -> None:
    """Configure structlog for JSON output with required fields.

    Logs go to stdout unless ``log_file`` is given; the CLI sends them to
    stderr so command output stays machine-readable.
    """
    _LOG_CONTEXT["environment"] = settings.app.environment
    _LOG_CONTEXT["service"] = settings.app.service

    log_level = getattr(logging, settings.app.log_level, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _standard_log_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=log_file),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings from environment variables."""
    return Settings()

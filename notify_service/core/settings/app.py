"""Application-level settings.

Environment variables use APP_ prefix.
Example: APP_DEBUG=true, APP_API_PREFIX=/api/v1
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Service identity and HTTP surface configuration."""

    service_name: str = Field(
        default="notify-service",
        min_length=1,
        max_length=100,
        description="Service name used in logs and metrics",
    )
    title: str = Field(
        default="Notification Rendering Service",
        description="OpenAPI title",
    )
    version: str = Field(default="0.1.0", description="Service version")
    debug: bool = Field(default=False, description="Enable debug mode")
    api_prefix: str = Field(
        default="/api/v1",
        pattern=r"^(/[a-z0-9_-]+)*$",
        description="Prefix for all versioned API routes",
    )
    docs_enabled: bool = Field(default=True, description="Serve /docs and /openapi.json")
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins (JSON array); empty disables CORS",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

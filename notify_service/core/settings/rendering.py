"""Template resolution and rendering settings.

Environment variables use TEMPLATE_ prefix.
Example: TEMPLATE_CACHE_TTL_SECONDS=120, TEMPLATE_STRICT_UNDEFINED=true
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RenderSettings(BaseSettings):
    """Resolver cache, partial recursion and formatting defaults."""

    cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0.0,
        le=86_400.0,
        description="Time-to-live of resolved template content; 0 disables caching",
    )
    max_partial_depth: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum nesting of partial includes before rendering fails",
    )
    strict_undefined: bool = Field(
        default=False,
        description="Fail rendering on any undefined variable instead of rendering empty",
    )
    autoescape: bool = Field(
        default=False,
        description="HTML-escape interpolated values",
    )
    default_locale: str = Field(
        default="en-US",
        pattern=r"^[a-z]{2}(-[A-Z]{2})?$",
        description="Locale used when the recipient has none",
    )
    default_timezone: str = Field(
        default="UTC",
        min_length=1,
        description="IANA timezone used when the recipient has none",
    )
    default_currency: str = Field(
        default="USD",
        pattern=r"^[A-Z]{3}$",
        description="ISO 4217 currency used when a payload omits one",
    )
    webhook_category_prefix: str = Field(
        default="webhook-",
        description="Routing prefix stripped from webhook category codes to form the event type",
    )
    webhook_api_version: str = Field(
        default="2024-06-01",
        description="apiVersion reported in webhook envelopes",
    )
    prewarm_tenants: list[int] = Field(
        default_factory=list,
        description="Tenants whose partials are loaded into the cache at startup (JSON array)",
    )

    model_config = SettingsConfigDict(
        env_prefix="TEMPLATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            msg = f"Unknown timezone: {value}"
            raise ValueError(msg) from exc
        return value

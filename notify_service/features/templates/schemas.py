"""Pydantic schemas for template rendering requests and results."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# ============================================================================
# Requests
# ============================================================================


class Recipient(BaseModel):
    """Who the notification is for; drives locale and timezone formatting."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str | None = Field(default=None, max_length=200, description="Display name")
    email: EmailStr | None = Field(default=None, description="Email address")
    phone: str | None = Field(default=None, max_length=32, description="E.164 phone number for SMS")
    locale: str | None = Field(
        default=None,
        pattern=r"^[A-Za-z]{2}([-_][A-Za-z]{2})?$",
        description="BCP 47 style locale (e.g., 'en-US')",
    )
    timezone: str | None = Field(default=None, max_length=64, description="IANA timezone (e.g., 'Europe/Berlin')")


class NotificationRequest(BaseModel):
    """A request to render one notification."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., min_length=1, max_length=120, description="Notification category code")
    tenant_id: int = Field(..., ge=1, description="Owning tenant")
    payload: Any = Field(default=None, description="Category-specific business data")
    recipient: Recipient = Field(default_factory=Recipient)
    metadata: dict[str, Any] = Field(default_factory=dict, description="Caller metadata; scalars reach the context")


class DraftPreviewRequest(BaseModel):
    """Sample context for previewing a draft."""

    sample_context: dict[str, Any] = Field(default_factory=dict)


class ValidationRequest(BaseModel):
    """Ad-hoc template text to check."""

    template_text: str = Field(..., description="Template source")
    sample_context: dict[str, Any] = Field(default_factory=dict)
    tenant_id: int | None = Field(default=None, ge=1, description="Tenant whose partials may be included")


# ============================================================================
# Results
# ============================================================================


class RenderResult(BaseModel):
    """Rendered notification content handed to the dispatch collaborator."""

    model_config = ConfigDict(frozen=True)

    category: str
    channel: str
    subject: str | None = None
    body: str
    recipient_email: str | None = None
    template_slug: str
    template_version: int


class DraftPreview(BaseModel):
    """Rendered draft (version 0) content."""

    model_config = ConfigDict(frozen=True)

    template_slug: str
    template_version: int = 0
    subject: str | None = None
    body: str


class ValidationResult(BaseModel):
    """Outcome of validate(); never an exception."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    error_message: str | None = None
    line: int | None = None
    column: int | None = None


RenderErrorCode = Literal["template_not_found", "draft_not_found", "rendering_error"]


class RenderError(BaseModel):
    """Typed failure for dispatchers that must not handle exceptions."""

    model_config = ConfigDict(frozen=True)

    code: RenderErrorCode
    message: str
    retryable: bool = False


class RenderOutcome(BaseModel):
    """Either a RenderResult or a RenderError."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    result: RenderResult | None = None
    error: RenderError | None = None


# ============================================================================
# Introspection
# ============================================================================


class CategoryResponse(BaseModel):
    code: str
    display_name: str
    channel: str
    group: str | None = None
    presenter: str
    default_template_slug: str


class CacheStatsResponse(BaseModel):
    total_entries: int
    valid_entries: int
    expired_entries: int
    inflight_fetches: int
    ttl_seconds: float
    max_partial_depth: int


class CacheInvalidationResponse(BaseModel):
    tenant_id: int
    slug: str | None = None
    removed: int = Field(description="Number of cache entries evicted")


__all__ = [
    "CacheInvalidationResponse",
    "CacheStatsResponse",
    "CategoryResponse",
    "DraftPreview",
    "DraftPreviewRequest",
    "NotificationRequest",
    "Recipient",
    "RenderError",
    "RenderErrorCode",
    "RenderOutcome",
    "RenderResult",
    "ValidationRequest",
    "ValidationResult",
]

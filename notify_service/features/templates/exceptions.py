"""Exceptions for template resolution and rendering.

All of them derive from AppException so the HTTP layer can turn them into
RFC 7807 problem details without a translation table.
"""

from __future__ import annotations

from typing import Any

from notify_service.core.exceptions import AppException, ConfigurationException


class TemplateNotFoundError(AppException):
    """No active template with a published version exists for (tenant, slug).

    ``store_unavailable`` distinguishes "does not exist" from "the store could
    not be reached"; only the latter is worth retrying by a dispatcher.
    """

    def __init__(
        self,
        tenant_id: int,
        slug: str,
        *,
        store_unavailable: bool = False,
        reason: str | None = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.slug = slug
        self.store_unavailable = store_unavailable
        if store_unavailable:
            detail = f"Template store unavailable while resolving '{slug}' for tenant {tenant_id}"
        else:
            detail = reason or f"Template '{slug}' not found for tenant {tenant_id}"
        super().__init__(
            status_code=503 if store_unavailable else 404,
            detail=detail,
            type="template-store-unavailable" if store_unavailable else "template-not-found",
            extra={"tenant_id": tenant_id, "slug": slug, "store_unavailable": store_unavailable},
        )


class DraftNotFoundError(AppException):
    """The template has no draft (version 0) to preview."""

    def __init__(self, tenant_id: int, slug: str) -> None:
        self.tenant_id = tenant_id
        self.slug = slug
        super().__init__(
            status_code=404,
            detail=f"No draft exists for template '{slug}' of tenant {tenant_id}",
            type="draft-not-found",
            extra={"tenant_id": tenant_id, "slug": slug},
        )


class TemplateRenderingError(AppException):
    """Compiling or applying a template failed.

    Covers syntax errors, undefined variables in strict mode, missing or
    cyclic partials, and payloads that do not fit the category's shape.
    """

    def __init__(
        self,
        message: str,
        *,
        template_name: str | None = None,
        line: int | None = None,
        column: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.template_name = template_name
        self.line = line
        self.column = column
        details: dict[str, Any] = {"template": template_name, "line": line, "column": column}
        details.update(extra or {})
        super().__init__(
            status_code=422,
            detail=message,
            type="template-rendering-error",
            title="Template Rendering Error",
            extra={k: v for k, v in details.items() if v is not None},
        )


class PayloadShapeError(TemplateRenderingError):
    """The request payload does not match what the category's presenter expects."""

    def __init__(self, category: str, errors: list[dict[str, Any]]) -> None:
        self.category = category
        self.errors = errors
        fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) or "<root>" for err in errors)
        super().__init__(
            f"Payload for category '{category}' has an unexpected shape: {fields}",
            extra={"category": category, "fields": fields},
        )


class PresenterConfigurationError(ConfigurationException):
    """Two presenters claim the same category, or a presenter is malformed."""

    def __init__(self, message: str, *, category: str | None = None) -> None:
        self.category = category
        super().__init__(
            message,
            type="presenter-configuration-error",
            extra={"category": category} if category else None,
        )


__all__ = [
    "DraftNotFoundError",
    "PayloadShapeError",
    "PresenterConfigurationError",
    "TemplateNotFoundError",
    "TemplateRenderingError",
]

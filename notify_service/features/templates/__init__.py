"""Versioned, tenant-scoped notification templates.

Architecture:
    - Models: Template, TemplateVersion, NotificationCategory, CategoryMapping, TemplateVariable
    - Store: TemplateStore protocol with a SQLAlchemy implementation returning frozen snapshots
    - Resolver: (tenant, slug) TTL cache with coalescing, eager invalidation
      and recursive partial resolution
    - Engine: sandboxed Jinja2 with locale/timezone aware helpers
    - Service: NotificationRenderService (render, render_draft, validate)
    - Events: publish/archive events that invalidate the resolver cache

Example:
    ```python
    service = get_render_service()
    result = await service.render(
        NotificationRequest(
            category="invoice-overdue",
            tenant_id=7,
            payload={"invoice_number": "INV-1", "amount_due": "120.00", "due_date": "2026-01-02"},
            recipient={"name": "Ada", "email": "ada@example.com", "timezone": "Europe/London"},
        )
    )
    ```

Import the service, router and resolver from their own modules.
"""

from notify_service.features.templates.exceptions import (
    DraftNotFoundError,
    PayloadShapeError,
    PresenterConfigurationError,
    TemplateNotFoundError,
    TemplateRenderingError,
)
from notify_service.features.templates.models import (
    CategoryMapping,
    Channel,
    NotificationCategory,
    Template,
    TemplateKind,
    TemplateStatus,
    TemplateVariable,
    TemplateVersion,
)
from notify_service.features.templates.schemas import (
    DraftPreview,
    NotificationRequest,
    Recipient,
    RenderOutcome,
    RenderResult,
    ValidationResult,
)

__all__ = [
    "CategoryMapping",
    "Channel",
    "DraftNotFoundError",
    "DraftPreview",
    "NotificationCategory",
    "NotificationRequest",
    "PayloadShapeError",
    "PresenterConfigurationError",
    "Recipient",
    "RenderOutcome",
    "RenderResult",
    "Template",
    "TemplateKind",
    "TemplateNotFoundError",
    "TemplateRenderingError",
    "TemplateStatus",
    "TemplateVariable",
    "TemplateVersion",
    "ValidationResult",
]

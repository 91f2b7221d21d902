"""Templates REST API router.

Endpoints:
    POST   /templates/render                   Render a notification (errors as problem details)
    POST   /templates/render/outcome           Render a notification into a typed outcome
    POST   /templates/drafts/{slug}/preview    Preview a template draft with sample data
    POST   /templates/validate                 Validate ad-hoc template text
    GET    /templates/categories               List known categories and their presenters
    GET    /templates/cache/stats              Resolver cache statistics
    DELETE /templates/cache/{tenant_id}        Evict a tenant's (or one slug's) cached content
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query

from notify_service.features.templates.catalog import CATEGORIES
from notify_service.features.templates.dependencies import (
    PresenterRegistryDep,
    RenderServiceDep,
    TemplateResolverDep,
    TenantIdDep,
)
from notify_service.features.templates.schemas import (
    CacheInvalidationResponse,
    CacheStatsResponse,
    CategoryResponse,
    DraftPreview,
    DraftPreviewRequest,
    NotificationRequest,
    RenderOutcome,
    RenderResult,
    ValidationRequest,
    ValidationResult,
)

router = APIRouter(prefix="/templates", tags=["templates"])


# ============================================================================
# Rendering
# ============================================================================


@router.post(
    "/render",
    response_model=RenderResult,
    summary="Render a notification",
    description="""
Render the tenant's published template for a notification category.

The template is the tenant's category mapping when one exists, otherwise
the presenter's default slug for the category.

**Errors (RFC 7807 problem details):**
- `404 template-not-found`: no usable published template
- `503 template-store-unavailable`: the template store could not be reached
- `422 template-rendering-error`: payload shape, syntax, runtime or partial errors
""",
)
async def render_notification(
    request: NotificationRequest,
    service: RenderServiceDep,
) -> RenderResult:
    """Render a notification, raising on failure."""
    return await service.render(request)


@router.post(
    "/render/outcome",
    response_model=RenderOutcome,
    summary="Render a notification into a typed outcome",
    description="""
Same as `POST /render`, but failures are reported in the body with
`ok=false` and an error code. `retryable` is true only when the template
store was unavailable.
""",
)
async def render_notification_outcome(
    request: NotificationRequest,
    service: RenderServiceDep,
) -> RenderOutcome:
    """Render a notification for a dispatcher."""
    return await service.render_for_dispatch(request)


@router.post(
    "/drafts/{slug}/preview",
    response_model=DraftPreview,
    summary="Preview a template draft",
)
async def preview_draft(
    slug: Annotated[str, Path(min_length=1, max_length=120, description="Template slug")],
    body: DraftPreviewRequest,
    tenant_id: TenantIdDep,
    service: RenderServiceDep,
) -> DraftPreview:
    """Render version 0 of a template against the supplied sample context."""
    return await service.render_draft(tenant_id, slug, body.sample_context)


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate template text",
    description="""
Compile and apply template text against a sample context.

Always answers 200; problems are reported with `valid=false` and, where
known, the 1-based line of the error. Partial includes resolve only when
`tenant_id` is given.
""",
)
async def validate_template(
    body: ValidationRequest,
    service: RenderServiceDep,
) -> ValidationResult:
    """Validate ad-hoc template text."""
    return await service.validate(body.template_text, body.sample_context, body.tenant_id)


# ============================================================================
# Introspection
# ============================================================================


@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    summary="List notification categories",
)
async def list_categories(
    registry: PresenterRegistryDep,
    group: Annotated[str | None, Query(description="Filter by category group")] = None,
) -> list[CategoryResponse]:
    """List catalog categories with the presenter each one routes to."""
    categories = [category for category in CATEGORIES if group is None or category.group == group]
    responses = []
    for category in categories:
        presenter = registry.presenter_for(category.code)
        responses.append(
            CategoryResponse(
                code=category.code,
                display_name=category.display_name,
                channel=category.channel,
                group=category.group,
                presenter=presenter.name,
                default_template_slug=presenter.default_template_slug(category.code),
            )
        )
    return responses


@router.get(
    "/cache/stats",
    response_model=CacheStatsResponse,
    summary="Resolver cache statistics",
)
async def get_cache_stats(resolver: TemplateResolverDep) -> CacheStatsResponse:
    """Report entry counts, in-flight fetches and limits of the resolver cache."""
    return CacheStatsResponse(**resolver.get_cache_stats())


@router.delete(
    "/cache/{tenant_id}",
    response_model=CacheInvalidationResponse,
    summary="Invalidate cached template content",
)
async def invalidate_cache(
    tenant_id: Annotated[int, Path(ge=1, description="Tenant identifier")],
    resolver: TemplateResolverDep,
    slug: Annotated[str | None, Query(description="Only evict this slug")] = None,
) -> CacheInvalidationResponse:
    """Evict cached content so the next render reads the store."""
    if slug is None:
        removed = resolver.invalidate_tenant(tenant_id)
    else:
        removed = int(resolver.invalidate(tenant_id, slug))
    return CacheInvalidationResponse(tenant_id=tenant_id, slug=slug, removed=removed)


__all__ = ["router"]

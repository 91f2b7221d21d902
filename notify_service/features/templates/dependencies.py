"""FastAPI dependencies for the templates feature.

Provides Annotated type aliases for dependency injection in route handlers.

Example usage:
    from notify_service.features.templates.dependencies import (
        RenderServiceDep,
        TenantIdDep,
    )

    @router.post("/drafts/{slug}/preview")
    async def preview_draft(slug: str, tenant_id: TenantIdDep, service: RenderServiceDep):
        return await service.render_draft(tenant_id, slug)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from notify_service.features.presenters import PresenterRegistry
from notify_service.features.templates.resolver import TemplateResolver, get_template_resolver
from notify_service.features.templates.service import NotificationRenderService, get_render_service
from notify_service.infra.logging import set_log_context

RenderServiceDep = Annotated[NotificationRenderService, Depends(get_render_service)]

TemplateResolverDep = Annotated[TemplateResolver, Depends(get_template_resolver)]


def get_presenter_registry(service: RenderServiceDep) -> PresenterRegistry:
    """The registry the render service routes categories through."""
    return service.registry


PresenterRegistryDep = Annotated[PresenterRegistry, Depends(get_presenter_registry)]


def get_tenant_id(
    x_tenant_id: Annotated[int, Header(alias="X-Tenant-ID", ge=1, description="Tenant identifier")],
) -> int:
    """Read the tenant from the X-Tenant-ID header and bind it to the log context.

    Missing or non-positive values are rejected by request validation (422).
    """
    set_log_context(tenant_id=x_tenant_id)
    return x_tenant_id


TenantIdDep = Annotated[int, Depends(get_tenant_id)]


__all__ = [
    "PresenterRegistryDep",
    "RenderServiceDep",
    "TemplateResolverDep",
    "TenantIdDep",
    "get_presenter_registry",
    "get_tenant_id",
]

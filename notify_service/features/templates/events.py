"""Template lifecycle events and the cache invalidation handlers.

Authoring collaborators publish these after committing a version change.
The handlers evict the affected (tenant, slug) from the resolver cache so
the next render sees the change immediately, without waiting for the TTL.

Example:
    version = await TemplateVersionRepository().publish(session, template, published_by="ops@acme")
    await session.commit()
    await event_registry.dispatch(
        TemplatePublishedEvent(
            tenant_id=template.tenant_id,
            template_id=template.id,
            slug=template.slug,
            version=version.version,
            published_by="ops@acme",
        )
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, ClassVar

from pydantic import Field

from notify_service.core.events import DomainEvent, EventRegistry, event_registry

if TYPE_CHECKING:
    from notify_service.features.templates.resolver import TemplateResolver

logger = logging.getLogger(__name__)


class TemplateEvent(DomainEvent):
    """Common fields of template lifecycle events."""

    tenant_id: int = Field(ge=1, description="Owning tenant")
    template_id: int = Field(description="Template primary key")
    slug: str = Field(min_length=1, description="Template slug")


@event_registry.register
class TemplatePublishedEvent(TemplateEvent):
    """A new version became the template's current version."""

    event_type: ClassVar[str] = "template.published"

    version: int = Field(ge=1, description="Newly published version number")
    published_by: str | None = Field(default=None, description="Publisher identity")


@event_registry.register
class TemplateRolledBackEvent(TemplateEvent):
    """current_version was pointed back at an older published version."""

    event_type: ClassVar[str] = "template.rolled_back"

    version: int = Field(ge=1, description="Version that is current again")


@event_registry.register
class TemplateArchivedEvent(TemplateEvent):
    """The template was archived and must no longer render."""

    event_type: ClassVar[str] = "template.archived"


@event_registry.register
class TenantTemplatesResetEvent(DomainEvent):
    """Bulk change to a tenant's templates (import, restore)."""

    event_type: ClassVar[str] = "template.tenant_reset"

    tenant_id: int = Field(ge=1)


def register_cache_invalidation(resolver: TemplateResolver, registry: EventRegistry | None = None) -> None:
    """Subscribe cache invalidation to the template lifecycle events."""
    registry = registry or event_registry

    async def on_template_changed(event: TemplateEvent) -> None:
        removed = resolver.invalidate(event.tenant_id, event.slug)
        logger.info(
            "Template change invalidated cache",
            extra={
                "event_type": event.get_event_type(),
                "tenant_id": event.tenant_id,
                "slug": event.slug,
                "version": getattr(event, "version", None),
                "was_cached": removed,
            },
        )

    async def on_tenant_reset(event: TenantTemplatesResetEvent) -> None:
        resolver.invalidate_tenant(event.tenant_id)

    for event_class in (TemplatePublishedEvent, TemplateRolledBackEvent, TemplateArchivedEvent):
        registry.subscribe(event_class, on_template_changed)
    registry.subscribe(TenantTemplatesResetEvent, on_tenant_reset)


__all__ = [
    "TemplateArchivedEvent",
    "TemplateEvent",
    "TemplatePublishedEvent",
    "TemplateRolledBackEvent",
    "TenantTemplatesResetEvent",
    "register_cache_invalidation",
]

"""Domain events with a type registry and in-process dispatch.

Usage:
    from notify_service.core.events import DomainEvent, event_registry

    @event_registry.register
    class TemplateArchivedEvent(DomainEvent):
        event_type: ClassVar[str] = "template.archived"
        slug: str

    await event_registry.dispatch(TemplateArchivedEvent(slug="welcome"))
"""

from notify_service.core.events.base import DomainEvent
from notify_service.core.events.registry import EventRegistry, event_registry

__all__ = ["DomainEvent", "EventRegistry", "event_registry"]

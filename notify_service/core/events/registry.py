"""Event type registry and in-process dispatch.

The registry maps event type strings to event classes (for deserializing
payloads received from other processes) and event types to the async
handlers subscribed to them.

Usage:
    from notify_service.core.events import DomainEvent, event_registry

    @event_registry.register
    class TemplatePublishedEvent(DomainEvent):
        event_type: ClassVar[str] = "template.published"
        slug: str

    event_registry.subscribe(TemplatePublishedEvent, on_template_published)
    await event_registry.dispatch(TemplatePublishedEvent(slug="invoice-overdue"))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from notify_service.core.events.base import DomainEvent

logger = logging.getLogger(__name__)


class EventRegistry:
    """Registry of event classes and their handlers.

    Registration happens at startup; dispatch is safe to call concurrently.
    """

    def __init__(self) -> None:
        self._events: dict[str, type[DomainEvent]] = {}
        self._handlers: dict[str, list[Callable[[Any], Awaitable[None]]]] = {}

    def register[E: DomainEvent](self, event_class: type[E]) -> type[E]:
        """Register an event class. Usable as a decorator.

        Raises:
            ValueError: If another class already uses the same event type.
        """
        event_type = event_class.get_event_type()
        existing = self._events.get(event_type)
        if existing is not None and existing is not event_class:
            msg = f"Event type '{event_type}' already registered with {existing.__name__}"
            raise ValueError(msg)
        self._events[event_type] = event_class
        logger.debug(
            "Registered event type",
            extra={"event_type": event_type, "class": event_class.__name__},
        )
        return event_class

    def get(self, event_type: str) -> type[DomainEvent] | None:
        return self._events.get(event_type)

    def deserialize(self, payload: dict[str, Any]) -> DomainEvent:
        """Rebuild an event from ``DomainEvent.to_payload()`` output.

        Raises:
            KeyError: If the event type is unknown.
        """
        event_class = self.get(payload["event_type"])
        if event_class is None:
            msg = f"Unknown event type: '{payload['event_type']}'"
            raise KeyError(msg)
        return event_class.model_validate(payload["data"])

    def subscribe(
        self,
        event_class: type[DomainEvent],
        handler: Callable[[Any], Awaitable[None]],
    ) -> None:
        handlers = self._handlers.setdefault(event_class.get_event_type(), [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_class: type[DomainEvent], handler: Callable[[Any], Awaitable[None]]) -> None:
        handlers = self._handlers.get(event_class.get_event_type(), [])
        if handler in handlers:
            handlers.remove(handler)

    def clear_handlers(self) -> None:
        self._handlers.clear()

    async def dispatch(self, event: DomainEvent) -> int:
        """Run every handler subscribed to the event's type, in order.

        A failing handler is logged and does not stop the others.

        Returns:
            Number of handlers that completed successfully.
        """
        handlers = list(self._handlers.get(event.get_event_type(), ()))
        completed = 0
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={
                        "event_type": event.get_event_type(),
                        "event_id": event.event_id,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                    },
                )
            else:
                completed += 1
        return completed


event_registry = EventRegistry()

__all__ = ["EventRegistry", "event_registry"]

"""Domain event base class.

Domain events record something that happened (a template version was
published, a template was archived) and let other components react to it
without the producer knowing about them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from notify_service.core.settings import get_app_settings


class DomainEvent(BaseModel):
    """Base class for all domain events.

    Subclasses define:
    - event_type: ClassVar[str] - unique identifier (e.g., "template.published")
    - event_version: ClassVar[int] - schema version (default: 1)

    Example:
        class TemplatePublishedEvent(DomainEvent):
            event_type: ClassVar[str] = "template.published"

            tenant_id: int
            slug: str
            version: int

    Attributes:
        event_id: Unique identifier for this event instance
        timestamp: When the event occurred (UTC)
        correlation_id: ID linking related events and requests
        service: Name of the service that generated the event
        metadata: Additional context (user_id, request_id, etc.)
    """

    event_type: ClassVar[str] = "domain.event"
    event_version: ClassVar[int] = 1

    event_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique event identifier",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Event timestamp in UTC",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Correlation ID for request tracing",
    )
    service: str = Field(
        default_factory=lambda: get_app_settings().service_name,
        description="Service that generated the event",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event metadata",
    )

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        extra="forbid",
    )

    @classmethod
    def get_event_type(cls) -> str:
        return cls.event_type

    @classmethod
    def get_event_version(cls) -> int:
        return cls.event_version

    def to_payload(self) -> dict[str, Any]:
        """Serialize with type and version for transport or storage."""
        return {
            "event_type": self.event_type,
            "event_version": self.event_version,
            "data": self.model_dump(mode="json"),
        }


__all__ = ["DomainEvent"]

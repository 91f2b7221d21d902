"""Webhook event envelopes.

Every webhook category renders the same envelope:

    {"event": {"type": "invoice.paid", "id": "evt_...", "created": 1767225600,
               "apiVersion": "2024-06-01"},
     "data": {"object": <payload>}}

The event type is the category code with the routing prefix removed and
separators turned into dots: ``webhook-invoice-paid`` -> ``invoice.paid``.
"""

from __future__ import annotations

import json
import re
import uuid
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from notify_service.features.presenters.base import ContextFormatter, Presenter

if TYPE_CHECKING:
    from notify_service.features.presenters.base import Clock
    from notify_service.features.templates.schemas import NotificationRequest
    from notify_service.utils.formatting import FormatDefaults

DEFAULT_TEMPLATE_SLUG = "webhook-event"
_SEPARATORS = re.compile(r"[-_]+")

# Namespace for deterministic event ids
EVENT_ID_NAMESPACE = uuid.UUID("5b0c3f55-8a51-4a3e-9b7e-0a6f4c1d2e10")


class WebhookObject(BaseModel):
    """Any JSON object; webhook payloads are forwarded as-is."""

    model_config = ConfigDict(extra="allow")


def event_type_for(category: str, prefix: str = "webhook-") -> str:
    """``webhook-subscription_updated`` -> ``subscription.updated``."""
    name = category[len(prefix):] if prefix and category.startswith(prefix) else category
    return _SEPARATORS.sub(".", name).strip(".")


class WebhookEventPresenter(Presenter):
    group = "webhook"

    def __init__(
        self,
        clock: Clock | None = None,
        defaults: FormatDefaults | None = None,
        *,
        api_version: str = "2024-06-01",
        category_prefix: str = "webhook-",
        template_slug: str = DEFAULT_TEMPLATE_SLUG,
    ) -> None:
        super().__init__(clock, defaults)
        self.api_version = api_version
        self.category_prefix = category_prefix
        self.template_slug = template_slug

    def default_template_slug(self, category: str) -> str:
        return self.template_slug

    def event_id(self, request: NotificationRequest, created: int, data: dict[str, Any]) -> str:
        """Caller-supplied ``metadata.event_id`` or an id derived from the event content."""
        supplied = request.metadata.get("event_id")
        if isinstance(supplied, str) and supplied:
            return supplied
        fingerprint = json.dumps(
            [request.tenant_id, request.category, created, data],
            sort_keys=True,
            default=str,
        )
        return f"evt_{uuid.uuid5(EVENT_ID_NAMESPACE, fingerprint).hex}"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        data = self.parse_payload(request, WebhookObject).model_dump(mode="json")
        created = int(fmt.now.timestamp())
        event_type = event_type_for(request.category, self.category_prefix)

        envelope = {
            "event": {
                "type": event_type,
                "id": self.event_id(request, created, data),
                "created": created,
                "apiVersion": self.api_version,
            },
            "data": {"object": data},
        }
        return {
            "event_type": event_type,
            "envelope": envelope,
            "envelope_json": json.dumps(envelope, sort_keys=True),
        }


__all__ = [
    "DEFAULT_TEMPLATE_SLUG",
    "WebhookEventPresenter",
    "event_type_for",
]

"""Presenter for categories no dedicated presenter owns."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from notify_service.features.presenters.base import ContextFormatter, Presenter

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest


class FallbackPresenter(Presenter):
    """Exposes the raw payload to the template.

    No shape is enforced: templates for unowned categories read
    ``payload`` directly. Mapping payloads are also merged at the top level
    for convenience, without overriding envelope keys.
    """

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        payload = request.payload
        context: dict[str, Any] = {"payload": payload}
        if isinstance(payload, dict):
            context.update({key: value for key, value in payload.items() if isinstance(key, str)})
            context["payload"] = payload
        return context


__all__ = ["FallbackPresenter"]

"""Invitations, mentions, comments, tasks and sharing."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, PayloadModel, Presenter
from notify_service.utils.formatting import truncate

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest

EXCERPT_LENGTH = 140


class Actor(PayloadModel):
    name: str = Field(..., min_length=1)
    email: str | None = None


class Resource(PayloadModel):
    type: str = Field(..., min_length=1)
    title: str
    url: str | None = None


class CollaborationPayload(PayloadModel):
    actor: Actor
    resource: Resource | None = None
    message: str | None = None
    team_name: str | None = None
    role: str | None = None
    due_date: date | None = None
    expires_at: datetime | None = None
    accept_url: str | None = None


class CollaborationPresenter(Presenter):
    group = "collaboration"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        collab = self.parse_payload(request, CollaborationPayload)
        days_until_due = fmt.days_until(collab.due_date) if collab.due_date else None

        return {
            "actor": collab.actor.model_dump(),
            "resource": collab.resource.model_dump() if collab.resource else None,
            "message": collab.message,
            "excerpt": truncate(collab.message, EXCERPT_LENGTH) if collab.message else None,
            "team_name": collab.team_name,
            "role": collab.role,
            "due_date": fmt.date(collab.due_date, "long") if collab.due_date else None,
            "days_until_due": days_until_due,
            "is_due_today": days_until_due == 0,
            "invitation_expires_at": fmt.datetime(collab.expires_at) if collab.expires_at else None,
            "accept_url": collab.accept_url,
        }


__all__ = ["CollaborationPayload", "CollaborationPresenter"]

"""Account and security notifications."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, PayloadModel, Presenter

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest

SECURITY_ALERT_CATEGORIES = frozenset(
    {
        "password-changed",
        "login-new-device",
        "login-suspicious",
        "mfa-disabled",
        "api-key-created",
        "account-locked",
        "email-changed",
    }
)


class AccountPayload(PayloadModel):
    action_url: str | None = None
    expires_in_minutes: int | None = Field(default=None, ge=1)
    occurred_at: datetime | None = None
    ip_address: str | None = None
    device: str | None = None
    location: str | None = None
    key_name: str | None = None
    new_email: str | None = None
    previous_email: str | None = None
    reason: str | None = None


class AccountPresenter(Presenter):
    """Welcome, verification, credential and sign-in notifications.

    Security-relevant categories set ``is_security_alert`` so templates can
    add the "wasn't you?" block.
    """

    group = "account"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        account = self.parse_payload(request, AccountPayload)
        occurred_at = account.occurred_at or fmt.now

        link_expires_at = None
        if account.expires_in_minutes:
            link_expires_at = fmt.datetime(occurred_at + timedelta(minutes=account.expires_in_minutes))

        return {
            "account": {
                "action_url": account.action_url,
                "occurred_at": fmt.datetime(occurred_at),
                "ip_address": account.ip_address,
                "device": account.device,
                "location": account.location,
                "key_name": account.key_name,
                "new_email": account.new_email,
                "previous_email": account.previous_email,
                "reason": account.reason,
            },
            "link_expires_at": link_expires_at,
            "expires_in_minutes": account.expires_in_minutes,
            "is_security_alert": request.category in SECURITY_ALERT_CATEGORIES,
            "has_action": bool(account.action_url),
        }


__all__ = ["SECURITY_ALERT_CATEGORIES", "AccountPayload", "AccountPresenter"]

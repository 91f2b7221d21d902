"""Short-form SMS notifications."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, Money, PayloadModel, Presenter
from notify_service.utils.formatting import truncate

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest

SMS_SEGMENT_LENGTH = 160


class SmsPayload(PayloadModel):
    code: str | None = Field(default=None, pattern=r"^[0-9A-Za-z]{4,10}$")
    code_ttl_minutes: int | None = Field(default=None, ge=1)
    amount: Money | None = None
    currency: str | None = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    due_date: date | None = None
    order_number: str | None = None
    short_url: str | None = None
    appointment_at: datetime | None = None
    location: str | None = None
    sender_name: str | None = Field(default=None, max_length=30)


class SmsPresenter(Presenter):
    """Every value is pre-formatted in its shortest style.

    ``max_length`` tells templates the single-segment budget; the
    orchestrator does not truncate rendered SMS bodies.
    """

    group = "sms"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        sms = self.parse_payload(request, SmsPayload)
        currency = (sms.currency or self.defaults.currency).upper()
        sender = sms.sender_name or request.metadata.get("sender_name")

        return {
            "currency": currency,
            "sms": {
                "code": sms.code,
                "code_ttl_minutes": sms.code_ttl_minutes,
                "amount": fmt.money(sms.amount, currency) if sms.amount is not None else None,
                "due_date": fmt.date(sms.due_date, "short") if sms.due_date else None,
                "order_number": sms.order_number,
                "short_url": sms.short_url,
                "appointment": (
                    f"{fmt.date(sms.appointment_at, 'short')} {fmt.time(sms.appointment_at)}"
                    if sms.appointment_at
                    else None
                ),
                "location": truncate(sms.location, 40) if sms.location else None,
                "sender": sender if isinstance(sender, str) else None,
            },
            "max_length": SMS_SEGMENT_LENGTH,
        }


__all__ = ["SMS_SEGMENT_LENGTH", "SmsPayload", "SmsPresenter"]

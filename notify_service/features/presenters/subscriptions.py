"""Subscription lifecycle and trial notifications."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, Money, PayloadModel, Presenter

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest

_INTERVAL_LABELS = {"day": "day", "week": "week", "month": "month", "year": "year"}


class SubscriptionPayload(PayloadModel):
    plan_name: str = Field(..., min_length=1)
    previous_plan: str | None = None
    status: str | None = None
    amount: Money | None = None
    currency: str | None = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    interval: Literal["day", "week", "month", "year"] | None = None
    current_period_end: date | None = None
    trial_end: date | None = None
    cancel_at: date | None = None
    seats_used: int | None = Field(default=None, ge=0)
    seats_limit: int | None = Field(default=None, ge=0)
    manage_url: str | None = None


class SubscriptionPresenter(Presenter):
    group = "subscription"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        sub = self.parse_payload(request, SubscriptionPayload)
        currency = (sub.currency or self.defaults.currency).upper()

        price = None
        if sub.amount is not None:
            price = fmt.money(sub.amount, currency)
            if sub.interval:
                price = f"{price} / {_INTERVAL_LABELS[sub.interval]}"

        seats = None
        if sub.seats_limit is not None:
            used = sub.seats_used or 0
            seats = {"used": used, "limit": sub.seats_limit, "remaining": max(sub.seats_limit - used, 0)}

        is_trial = request.category.startswith("trial-") or (sub.status or "").lower() == "trialing"

        return {
            "currency": currency,
            "subscription": {
                "plan": sub.plan_name,
                "previous_plan": sub.previous_plan,
                "status": sub.status,
                "price": price,
                "renews_on": fmt.date(sub.current_period_end, "long") if sub.current_period_end else None,
                "trial_ends_on": fmt.date(sub.trial_end, "long") if sub.trial_end else None,
                "cancels_on": fmt.date(sub.cancel_at, "long") if sub.cancel_at else None,
                "manage_url": sub.manage_url,
            },
            "seats": seats,
            "is_trial": is_trial,
            "is_cancelling": sub.cancel_at is not None or request.category == "subscription-cancelled",
            "is_upgrade": request.category == "subscription-upgraded",
            "days_until_renewal": fmt.days_until(sub.current_period_end) if sub.current_period_end else None,
            "days_left_in_trial": max(fmt.days_until(sub.trial_end), 0) if sub.trial_end else None,
        }


__all__ = ["SubscriptionPayload", "SubscriptionPresenter"]

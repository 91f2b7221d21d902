"""Order, shipping and return notifications."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, Money, PayloadModel, Presenter, money_value

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest


class Address(PayloadModel):
    name: str | None = None
    line1: str
    line2: str | None = None
    city: str
    region: str | None = None
    postal_code: str | None = None
    country: str | None = None


class OrderItem(PayloadModel):
    name: str
    quantity: int = Field(default=1, ge=1)
    unit_price: Money
    sku: str | None = None


class OrderPayload(PayloadModel):
    order_number: str = Field(..., min_length=1)
    items: list[OrderItem] = Field(default_factory=list)
    total: Money | None = None
    currency: str | None = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    shipping_address: Address | None = None
    carrier: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: date | None = None
    delivered_at: datetime | None = None
    delay_reason: str | None = None
    return_label_url: str | None = None
    order_url: str | None = None


class OrderPresenter(Presenter):
    group = "order"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        order = self.parse_payload(request, OrderPayload)
        currency = (order.currency or self.defaults.currency).upper()

        items = []
        computed_total = Decimal(0)
        for item in order.items:
            line_total = item.unit_price * item.quantity
            computed_total += line_total
            items.append(
                {
                    "name": item.name,
                    "sku": item.sku,
                    "quantity": item.quantity,
                    "unit_price": fmt.money(item.unit_price, currency),
                    "line_total": fmt.money(line_total, currency),
                }
            )
        total = order.total if order.total is not None else computed_total

        days_until_delivery = fmt.days_until(order.estimated_delivery) if order.estimated_delivery else None
        delivered = order.delivered_at is not None or request.category == "order-delivered"
        late = days_until_delivery is not None and days_until_delivery < 0 and not delivered

        return {
            "currency": currency,
            "order": {
                "number": order.order_number,
                "items": items,
                "item_count": sum(item.quantity for item in order.items),
                "total": fmt.money(total, currency),
                "total_value": money_value(total),
                "shipping_address_lines": fmt.address(order.shipping_address),
                "carrier": order.carrier,
                "tracking_number": order.tracking_number,
                "tracking_url": order.tracking_url,
                "estimated_delivery": fmt.date(order.estimated_delivery, "long") if order.estimated_delivery else None,
                "delivered_at": fmt.datetime(order.delivered_at) if order.delivered_at else None,
                "delay_reason": order.delay_reason,
                "return_label_url": order.return_label_url,
                "url": order.order_url,
            },
            "has_tracking": bool(order.tracking_number or order.tracking_url),
            "is_delivered": delivered,
            "is_delayed": request.category == "order-delayed" or late,
            "days_until_delivery": days_until_delivery,
        }


__all__ = ["Address", "OrderItem", "OrderPayload", "OrderPresenter"]

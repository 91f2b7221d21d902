"""Invoice and payment notifications."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Literal

from pydantic import Field

from notify_service.features.presenters.base import ContextFormatter, Money, PayloadModel, Presenter, money_value

if TYPE_CHECKING:
    from notify_service.features.templates.schemas import NotificationRequest

Urgency = Literal["low", "medium", "high", "critical"]

CRITICAL_AFTER_DAYS = 30
DUE_SOON_DAYS = 3

# Categories where the invoice is settled or cancelled; never ask for payment
_CLOSED_INVOICE_CATEGORIES = frozenset({"invoice-paid", "invoice-voided", "invoice-refunded"})
_CLOSED_STATUSES = frozenset({"paid", "void", "voided", "refunded", "uncollectible"})


class LineItem(PayloadModel):
    description: str
    quantity: int = Field(default=1, ge=0)
    amount: Money


class InvoicePayload(PayloadModel):
    invoice_number: str = Field(..., min_length=1)
    amount_due: Money
    amount_paid: Money = Decimal(0)
    currency: str | None = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    due_date: date
    issued_at: date | None = None
    status: str | None = None
    pay_url: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)


class PaymentPayload(PayloadModel):
    amount: Money | None = None
    currency: str | None = Field(default=None, pattern=r"^[A-Za-z]{3}$")
    invoice_number: str | None = None
    paid_at: datetime | None = None
    payment_method: str | None = None
    failure_reason: str | None = None
    next_retry_at: datetime | None = None
    method_expires_on: date | None = None
    statement_period_end: date | None = None
    receipt_url: str | None = None
    update_payment_url: str | None = None


def invoice_urgency(days_until_due: int, *, outstanding: bool = True) -> Urgency:
    """Urgency of an unpaid invoice.

    Overdue by 30+ days is critical, overdue at all is high, due within
    three days (or today) is medium, anything else is low. Settled invoices
    are always low.
    """
    if not outstanding:
        return "low"
    if days_until_due <= -CRITICAL_AFTER_DAYS:
        return "critical"
    if days_until_due < 0:
        return "high"
    if days_until_due <= DUE_SOON_DAYS:
        return "medium"
    return "low"


class BillingPresenter(Presenter):
    """Invoices, payments, receipts and dunning.

    Context keys: ``invoice`` or ``payment``, ``is_overdue``,
    ``days_overdue``, ``days_until_due``, ``urgency``, ``show_pay_button``.
    """

    group = "billing"

    @staticmethod
    def is_invoice_category(category: str) -> bool:
        return category.startswith("invoice-") or category == "dunning-final-notice"

    def present(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        if self.is_invoice_category(request.category):
            return self._present_invoice(request, fmt)
        return self._present_payment(request, fmt)

    def _present_invoice(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        invoice = self.parse_payload(request, InvoicePayload)
        currency = (invoice.currency or self.defaults.currency).upper()
        balance = max(invoice.amount_due - invoice.amount_paid, Decimal(0))

        closed = (
            request.category in _CLOSED_INVOICE_CATEGORIES
            or (invoice.status or "").lower() in _CLOSED_STATUSES
        )
        outstanding = balance > 0 and not closed
        days_until_due = fmt.days_until(invoice.due_date)
        is_overdue = outstanding and days_until_due < 0

        return {
            "currency": currency,
            "invoice": {
                "number": invoice.invoice_number,
                "amount_due": fmt.money(invoice.amount_due, currency),
                "amount_paid": fmt.money(invoice.amount_paid, currency),
                "balance": fmt.money(balance, currency),
                "balance_value": money_value(balance),
                "due_date": fmt.date(invoice.due_date, "long"),
                "due_date_iso": invoice.due_date.isoformat(),
                "issued_on": fmt.date(invoice.issued_at) if invoice.issued_at else None,
                "status": invoice.status,
                "pay_url": invoice.pay_url,
                "line_items": [
                    {
                        "description": item.description,
                        "quantity": item.quantity,
                        "amount": fmt.money(item.amount, currency),
                    }
                    for item in invoice.line_items
                ],
            },
            "is_overdue": is_overdue,
            "days_overdue": -days_until_due if is_overdue else 0,
            "days_until_due": days_until_due,
            "urgency": invoice_urgency(days_until_due, outstanding=outstanding),
            "show_pay_button": outstanding and bool(invoice.pay_url),
        }

    def _present_payment(self, request: NotificationRequest, fmt: ContextFormatter) -> dict[str, Any]:
        payment = self.parse_payload(request, PaymentPayload)
        currency = (payment.currency or self.defaults.currency).upper()
        days_until_expiry = fmt.days_until(payment.method_expires_on) if payment.method_expires_on else None

        return {
            "currency": currency,
            "payment": {
                "amount": fmt.money(payment.amount, currency) if payment.amount is not None else None,
                "amount_value": money_value(payment.amount),
                "invoice_number": payment.invoice_number,
                "paid_at": fmt.datetime(payment.paid_at) if payment.paid_at else None,
                "method": payment.payment_method,
                "failure_reason": payment.failure_reason,
                "next_retry_at": fmt.datetime(payment.next_retry_at) if payment.next_retry_at else None,
                "method_expires_on": fmt.date(payment.method_expires_on) if payment.method_expires_on else None,
                "statement_period_end": (
                    fmt.date(payment.statement_period_end, "long") if payment.statement_period_end else None
                ),
                "receipt_url": payment.receipt_url,
                "update_payment_url": payment.update_payment_url,
            },
            "is_failure": request.category == "payment-failed",
            "will_retry": payment.next_retry_at is not None,
            "days_until_expiry": days_until_expiry,
            "show_update_button": bool(payment.update_payment_url)
            and request.category in {"payment-failed", "payment-method-expiring", "payment-retry-scheduled"},
        }


__all__ = ["BillingPresenter", "InvoicePayload", "PaymentPayload", "invoice_urgency"]

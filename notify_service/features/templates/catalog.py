"""Notification category catalog.

The catalog is the source of truth for the ``notification_categories``
table. ``group`` routes a category to the presenter that owns the group;
categories without a group render through the fallback presenter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from notify_service.features.templates.models import Channel, NotificationCategory
from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_lazy = get_lazy_logger(__name__)


@dataclass(frozen=True, slots=True)
class CategoryDefinition:
    code: str
    display_name: str
    channel: str = Channel.EMAIL.value
    group: str | None = None


def _group(group: str, channel: Channel, *entries: tuple[str, str]) -> tuple[CategoryDefinition, ...]:
    return tuple(CategoryDefinition(code, name, channel.value, group) for code, name in entries)


CATEGORIES: tuple[CategoryDefinition, ...] = (
    *_group(
        "billing",
        Channel.EMAIL,
        ("invoice-created", "Invoice created"),
        ("invoice-sent", "Invoice sent"),
        ("invoice-due-soon", "Invoice due soon"),
        ("invoice-overdue", "Invoice overdue"),
        ("invoice-paid", "Invoice paid"),
        ("invoice-partially-paid", "Invoice partially paid"),
        ("invoice-voided", "Invoice voided"),
        ("invoice-refunded", "Invoice refunded"),
        ("payment-received", "Payment received"),
        ("payment-failed", "Payment failed"),
        ("payment-retry-scheduled", "Payment retry scheduled"),
        ("payment-method-expiring", "Payment method expiring"),
        ("payment-method-updated", "Payment method updated"),
        ("credit-note-issued", "Credit note issued"),
        ("receipt-issued", "Receipt issued"),
        ("statement-available", "Statement available"),
        ("dunning-final-notice", "Final payment notice"),
        ("refund-processed", "Refund processed"),
    ),
    *_group(
        "subscription",
        Channel.EMAIL,
        ("subscription-created", "Subscription created"),
        ("subscription-renewed", "Subscription renewed"),
        ("subscription-renewal-upcoming", "Subscription renewal upcoming"),
        ("subscription-cancelled", "Subscription cancelled"),
        ("subscription-paused", "Subscription paused"),
        ("subscription-resumed", "Subscription resumed"),
        ("subscription-upgraded", "Subscription upgraded"),
        ("subscription-downgraded", "Subscription downgraded"),
        ("subscription-expired", "Subscription expired"),
        ("trial-started", "Trial started"),
        ("trial-ending", "Trial ending"),
        ("trial-ended", "Trial ended"),
        ("plan-changed", "Plan changed"),
        ("seat-limit-reached", "Seat limit reached"),
    ),
    *_group(
        "account",
        Channel.EMAIL,
        ("account-welcome", "Welcome"),
        ("email-verification", "Verify your email"),
        ("password-reset-requested", "Password reset requested"),
        ("password-changed", "Password changed"),
        ("login-new-device", "New device sign-in"),
        ("login-suspicious", "Suspicious sign-in"),
        ("mfa-enabled", "Two-factor authentication enabled"),
        ("mfa-disabled", "Two-factor authentication disabled"),
        ("api-key-created", "API key created"),
        ("api-key-revoked", "API key revoked"),
        ("account-locked", "Account locked"),
        ("account-unlocked", "Account unlocked"),
        ("account-deleted", "Account deleted"),
        ("email-changed", "Email address changed"),
        ("profile-updated", "Profile updated"),
    ),
    *_group(
        "order",
        Channel.EMAIL,
        ("order-placed", "Order placed"),
        ("order-confirmed", "Order confirmed"),
        ("order-processing", "Order processing"),
        ("order-shipped", "Order shipped"),
        ("order-out-for-delivery", "Out for delivery"),
        ("order-delivered", "Order delivered"),
        ("order-delayed", "Order delayed"),
        ("order-cancelled", "Order cancelled"),
        ("order-returned", "Order returned"),
        ("return-requested", "Return requested"),
        ("return-approved", "Return approved"),
        ("backorder-notice", "Item backordered"),
    ),
    *_group(
        "collaboration",
        Channel.EMAIL,
        ("invitation-sent", "Invitation sent"),
        ("invitation-accepted", "Invitation accepted"),
        ("invitation-expired", "Invitation expired"),
        ("mention-received", "You were mentioned"),
        ("comment-added", "New comment"),
        ("comment-reply", "Reply to your comment"),
        ("task-assigned", "Task assigned"),
        ("task-due-soon", "Task due soon"),
        ("task-completed", "Task completed"),
        ("document-shared", "Document shared"),
        ("team-member-added", "Team member added"),
        ("team-member-removed", "Team member removed"),
    ),
    *_group(
        "system",
        Channel.EMAIL,
        ("maintenance-scheduled", "Scheduled maintenance"),
        ("maintenance-completed", "Maintenance completed"),
        ("service-incident", "Service incident"),
        ("service-restored", "Service restored"),
        ("usage-threshold-reached", "Usage threshold reached"),
        ("usage-limit-exceeded", "Usage limit exceeded"),
        ("storage-quota-warning", "Storage quota warning"),
        ("export-ready", "Export ready"),
        ("import-completed", "Import completed"),
        ("import-failed", "Import failed"),
        ("report-ready", "Report ready"),
    ),
    *_group(
        "sms",
        Channel.SMS,
        ("sms-verification-code", "Verification code"),
        ("sms-login-alert", "Sign-in alert"),
        ("sms-payment-reminder", "Payment reminder"),
        ("sms-order-shipped", "Order shipped"),
        ("sms-delivery-update", "Delivery update"),
        ("sms-appointment-reminder", "Appointment reminder"),
    ),
    *_group(
        "webhook",
        Channel.WEBHOOK,
        ("webhook-invoice-created", "invoice.created"),
        ("webhook-invoice-paid", "invoice.paid"),
        ("webhook-payment-failed", "payment.failed"),
        ("webhook-subscription-updated", "subscription.updated"),
        ("webhook-subscription-cancelled", "subscription.cancelled"),
        ("webhook-customer-created", "customer.created"),
        ("webhook-customer-updated", "customer.updated"),
        ("webhook-order-completed", "order.completed"),
        ("webhook-refund-created", "refund.created"),
    ),
    # Ungrouped: rendered from the raw payload by the fallback presenter
    CategoryDefinition("newsletter-digest", "Newsletter digest"),
    CategoryDefinition("product-announcement", "Product announcement"),
    CategoryDefinition("survey-request", "Survey request"),
    CategoryDefinition("feedback-thank-you", "Thanks for your feedback"),
)

CATEGORY_INDEX: dict[str, CategoryDefinition] = {category.code: category for category in CATEGORIES}


def get_category(code: str) -> CategoryDefinition | None:
    return CATEGORY_INDEX.get(code)


def categories_in_group(group: str) -> list[CategoryDefinition]:
    return [category for category in CATEGORIES if category.group == group]


async def seed_categories(session: AsyncSession) -> int:
    """Insert or update every catalog category.

    Returns:
        Number of rows inserted.
    """
    inserted = 0
    for definition in CATEGORIES:
        row = await session.get(NotificationCategory, definition.code)
        if row is None:
            session.add(
                NotificationCategory(
                    code=definition.code,
                    display_name=definition.display_name,
                    channel=definition.channel,
                    group=definition.group,
                )
            )
            inserted += 1
        else:
            row.display_name = definition.display_name
            row.channel = definition.channel
            row.group = definition.group
    await session.flush()
    _lazy.debug(lambda: f"catalog.seed: {inserted} inserted, {len(CATEGORIES) - inserted} updated")
    return inserted


__all__ = [
    "CATEGORIES",
    "CATEGORY_INDEX",
    "CategoryDefinition",
    "categories_in_group",
    "get_category",
    "seed_categories",
]

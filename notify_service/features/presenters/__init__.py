"""Context presenters: one per category group, plus a fallback.

A presenter validates a request's payload and derives the render context
for its categories. The registry routes each category to exactly one
presenter and sends unknown categories to the fallback.

Example:
    registry = build_default_registry(clock=SystemClock(), settings=get_render_settings())
    context = registry.presenter_for("invoice-overdue").build_context(request)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notify_service.features.presenters.account import AccountPresenter
from notify_service.features.presenters.base import (
    Clock,
    ContextFormatter,
    FixedClock,
    Presenter,
    SystemClock,
)
from notify_service.features.presenters.billing import BillingPresenter, invoice_urgency
from notify_service.features.presenters.collaboration import CollaborationPresenter
from notify_service.features.presenters.fallback import FallbackPresenter
from notify_service.features.presenters.orders import OrderPresenter
from notify_service.features.presenters.registry import PresenterRegistry
from notify_service.features.presenters.sms import SmsPresenter
from notify_service.features.presenters.subscriptions import SubscriptionPresenter
from notify_service.features.presenters.system import SystemPresenter
from notify_service.features.presenters.webhooks import WebhookEventPresenter, event_type_for
from notify_service.utils.formatting import FormatDefaults

if TYPE_CHECKING:
    from notify_service.core.settings import RenderSettings


def build_default_registry(
    clock: Clock | None = None,
    settings: RenderSettings | None = None,
) -> PresenterRegistry:
    """Registry with every shipped presenter sharing one clock and formatting defaults.

    Raises:
        PresenterConfigurationError: If presenters overlap.
    """
    clock = clock or SystemClock()
    defaults = FormatDefaults.from_settings(settings) if settings else FormatDefaults()
    webhook_options = (
        {"api_version": settings.webhook_api_version, "category_prefix": settings.webhook_category_prefix}
        if settings
        else {}
    )
    return PresenterRegistry(
        [
            BillingPresenter(clock, defaults),
            SubscriptionPresenter(clock, defaults),
            AccountPresenter(clock, defaults),
            OrderPresenter(clock, defaults),
            CollaborationPresenter(clock, defaults),
            SystemPresenter(clock, defaults),
            SmsPresenter(clock, defaults),
            WebhookEventPresenter(clock, defaults, **webhook_options),
        ],
        fallback=FallbackPresenter(clock, defaults),
    )


__all__ = [
    "AccountPresenter",
    "BillingPresenter",
    "Clock",
    "CollaborationPresenter",
    "ContextFormatter",
    "FallbackPresenter",
    "FixedClock",
    "OrderPresenter",
    "Presenter",
    "PresenterRegistry",
    "SmsPresenter",
    "SubscriptionPresenter",
    "SystemClock",
    "SystemPresenter",
    "WebhookEventPresenter",
    "build_default_registry",
    "event_type_for",
    "invoice_urgency",
]

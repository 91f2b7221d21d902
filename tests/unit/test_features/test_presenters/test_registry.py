"""Tests for category to presenter routing."""

from __future__ import annotations

import pytest

from notify_service.features.presenters import (
    AccountPresenter,
    BillingPresenter,
    FallbackPresenter,
    PresenterRegistry,
    SmsPresenter,
    build_default_registry,
)
from notify_service.features.presenters.base import Presenter
from notify_service.features.templates.catalog import CATEGORIES
from notify_service.features.templates.exceptions import PresenterConfigurationError


class TrialPresenter(Presenter):
    categories = frozenset({"trial-ending"})

    def present(self, request, fmt):
        return {}


class EmptyPresenter(Presenter):
    def present(self, request, fmt):
        return {}


class TestPresenterRegistry:
    def test_routes_group_categories(self, clock) -> None:
        billing = BillingPresenter(clock)
        registry = PresenterRegistry([billing, AccountPresenter(clock)])

        assert registry.presenter_for("invoice-overdue") is billing
        assert "payment-failed" in registry
        assert registry.routes()["password-changed"] == "AccountPresenter"

    def test_unknown_category_goes_to_fallback(self, clock) -> None:
        fallback = FallbackPresenter(clock)
        registry = PresenterRegistry([BillingPresenter(clock)], fallback=fallback)

        assert registry.presenter_for("quarterly-recap") is fallback
        assert registry.presenter_for("newsletter-digest") is fallback
        assert not registry.is_registered("quarterly-recap")

    def test_overlapping_presenters_are_rejected(self, clock) -> None:
        from notify_service.features.presenters import SubscriptionPresenter

        with pytest.raises(PresenterConfigurationError) as exc_info:
            PresenterRegistry([SubscriptionPresenter(clock), TrialPresenter(clock)])

        assert exc_info.value.category == "trial-ending"
        assert "SubscriptionPresenter" in str(exc_info.value.detail)

    def test_same_instance_twice_is_rejected(self, clock) -> None:
        sms = SmsPresenter(clock)

        with pytest.raises(PresenterConfigurationError, match="registered twice"):
            PresenterRegistry([sms, sms])

    def test_presenter_without_categories_is_rejected(self) -> None:
        with pytest.raises(PresenterConfigurationError, match="owns no categories"):
            PresenterRegistry([EmptyPresenter()])

    def test_explicit_categories_outside_catalog_are_routed(self) -> None:
        registry = PresenterRegistry([TrialPresenter()], catalog=())

        assert registry.presenter_for("trial-ending").name == "TrialPresenter"


class TestDefaultRegistry:
    def test_every_grouped_category_has_a_presenter(self, registry) -> None:
        grouped = {category.code for category in CATEGORIES if category.group}
        ungrouped = {category.code for category in CATEGORIES if not category.group}

        assert set(registry.routes()) == grouped
        assert all(registry.presenter_for(code) is registry.fallback for code in ungrouped)

    def test_presenters_share_the_clock(self, registry, clock) -> None:
        assert all(presenter.clock is clock for presenter in registry.presenters)
        assert registry.fallback.clock is clock

    def test_settings_configure_webhooks(self, clock) -> None:
        from notify_service.core.settings import RenderSettings

        settings = RenderSettings(webhook_api_version="2025-01-01", default_currency="EUR")
        registry = build_default_registry(clock=clock, settings=settings)
        webhook = registry.presenter_for("webhook-invoice-paid")

        assert webhook.api_version == "2025-01-01"
        assert webhook.defaults.currency == "EUR"

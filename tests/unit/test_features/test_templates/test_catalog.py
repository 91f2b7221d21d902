"""Tests for the notification category catalog."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from notify_service.features.templates.catalog import (
    CATEGORIES,
    categories_in_group,
    get_category,
    seed_categories,
)
from notify_service.features.templates.models import NotificationCategory


class TestCatalog:
    def test_codes_are_unique(self) -> None:
        codes = [category.code for category in CATEGORIES]

        assert len(codes) == len(set(codes))

    def test_get_category(self) -> None:
        category = get_category("invoice-overdue")

        assert category is not None
        assert category.group == "billing"
        assert category.channel == "email"
        assert get_category("does-not-exist") is None

    def test_webhook_group_uses_webhook_channel(self) -> None:
        webhooks = categories_in_group("webhook")

        assert len(webhooks) == 9
        assert {category.channel for category in webhooks} == {"webhook"}

    def test_ungrouped_categories(self) -> None:
        ungrouped = [category.code for category in CATEGORIES if category.group is None]

        assert "newsletter-digest" in ungrouped
        assert "feedback-thank-you" in ungrouped


class TestSeedCategories:
    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session) -> None:
        assert await seed_categories(db_session) == len(CATEGORIES)
        assert await seed_categories(db_session) == 0

        count = (await db_session.execute(select(func.count()).select_from(NotificationCategory))).scalar_one()
        assert count == len(CATEGORIES)

    @pytest.mark.asyncio
    async def test_reseed_restores_display_name(self, db_session) -> None:
        await seed_categories(db_session)
        row = await db_session.get(NotificationCategory, "invoice-paid")
        row.display_name = "edited"

        await seed_categories(db_session)

        assert row.display_name == "Invoice paid"

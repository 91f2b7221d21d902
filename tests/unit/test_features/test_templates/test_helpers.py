"""Tests for the template helper set."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from notify_service.features.presenters import BillingPresenter, FixedClock
from notify_service.features.templates.engine import RenderingEngine
from notify_service.features.templates.helpers import between, eq, gt, lte, ne
from notify_service.features.templates.schemas import NotificationRequest, Recipient
from notify_service.features.templates.scope import RenderScope
from notify_service.utils.formatting import FormatDefaults

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
EARLY_UTC = datetime(2026, 3, 10, 2, 0, tzinfo=UTC)


async def _render(source: str, context: dict | None = None, engine: RenderingEngine | None = None) -> str:
    async with RenderScope(7) as scope:
        return (engine or RenderingEngine()).render(scope, source, context or {})


class TestComparisons:
    def test_numeric_strings_compare_as_numbers(self) -> None:
        assert eq("10.0", 10)
        assert gt("10", "9")
        assert lte(Decimal("2.50"), 2.5)

    def test_non_numeric_strings_compare_as_text(self) -> None:
        assert eq("paid", "paid")
        assert ne("paid", "open")

    def test_between_is_inclusive(self) -> None:
        assert between(90, 90, 100)
        assert between("100", 90, 100)
        assert not between(101, 90, 100)

    def test_bool_is_not_coerced(self) -> None:
        assert eq(True, True)
        assert ne(True, "True")

    @pytest.mark.asyncio
    async def test_comparison_globals_in_templates(self) -> None:
        source = "{% if gt(usage, 90) %}high{% else %}ok{% endif %}"

        assert await _render(source, {"usage": "95.5"}) == "high"
        assert await _render(source, {"usage": 12}) == "ok"


class TestFormattingFilters:
    """Filters read locale, timezone and currency from the context."""

    @pytest.mark.asyncio
    async def test_currency_uses_context_locale(self) -> None:
        source = "{{ amount | currency }}"

        assert await _render(source, {"amount": "1234.5", "currency": "USD", "locale": "en-US"}) == "$1,234.50"
        assert await _render(source, {"amount": "1234.5", "currency": "EUR", "locale": "de-DE"}) == "1.234,50 €"

    @pytest.mark.asyncio
    async def test_currency_explicit_code_and_engine_defaults(self) -> None:
        engine = RenderingEngine(defaults=FormatDefaults(locale="en-GB", currency="GBP"))

        assert await _render("{{ 5 | currency }}", engine=engine) == "£5.00"
        assert await _render("{{ 1500 | currency('JPY') }}", engine=engine) == "¥1,500"

    @pytest.mark.asyncio
    async def test_format_date_in_recipient_timezone(self) -> None:
        context = {"at": "2026-03-10T23:30:00Z", "timezone": "Asia/Tokyo", "locale": "en-US"}

        assert await _render("{{ at | format_date('long') }}", context) == "March 11, 2026"

    @pytest.mark.asyncio
    async def test_format_datetime_includes_zone(self) -> None:
        context = {"at": "2026-01-15T09:05:00Z", "timezone": "Europe/Berlin", "locale": "de-DE"}

        assert await _render("{{ at | format_datetime }}", context) == "15.01.2026 10:05 CET"

    @pytest.mark.asyncio
    async def test_empty_values_render_empty(self) -> None:
        assert await _render("[{{ none | format_date }}{{ none | currency }}]", {"none": None}) == "[]"

    @pytest.mark.asyncio
    async def test_number_and_pluralize(self) -> None:
        source = "{{ n | number }} {{ n | pluralize('seat') }}, {{ 1 | pluralize('seat') }}"

        assert await _render(source, {"n": 1200}) == "1,200 seats, seat"

    @pytest.mark.asyncio
    async def test_truncate_text(self) -> None:
        result = await _render("{{ text | truncate_text(12) }}", {"text": "The quick brown fox jumps"})

        assert result == "The quick…"


class TestDateHelpers:
    """past/future tests and days_between use the context's now."""

    @pytest.mark.asyncio
    async def test_past_and_future_tests(self) -> None:
        source = "{{ 'past' if due is past else 'future' if due is future else 'now' }}"

        assert await _render(source, {"due": "2026-03-01", "now": NOW}) == "past"
        assert await _render(source, {"due": "2026-04-01", "now": NOW}) == "future"

    @pytest.mark.asyncio
    async def test_days_between_defaults_to_now(self) -> None:
        context = {"due": "2026-03-05", "now": NOW}

        assert await _render("{{ days_between(due) }}", context) == "5"
        assert await _render("{{ days_between(due, '2026-03-06') }}", context) == "1"

    @pytest.mark.asyncio
    async def test_recipient_calendar(self) -> None:
        # Still March 9 in New York
        context = {"now": EARLY_UTC, "timezone": "America/New_York", "due": "2026-03-10"}

        assert await _render("{{ days_between(now, due) }}", context) == "1"
        assert await _render("{{ days_between(now, '2026-03-10T01:00:00Z') }}", context) == "0"
        assert await _render("{{ 'future' if due is future else 'today' }}", context) == "future"
        assert await _render("{{ 'past' if '2026-03-09' is past else 'today' }}", context) == "today"

    @pytest.mark.asyncio
    async def test_agrees_with_presenter(self) -> None:
        request = NotificationRequest(
            category="invoice-due-soon",
            tenant_id=7,
            payload={"invoice_number": "INV-1", "amount_due": "10.00", "due_date": "2026-03-10"},
            recipient=Recipient(timezone="America/New_York"),
        )
        context = BillingPresenter(FixedClock(EARLY_UTC)).build_context(request)

        body = await _render("{{ days_until_due }}|{{ days_between(now, invoice.due_date_iso) }}", context)

        assert body == "1|1"

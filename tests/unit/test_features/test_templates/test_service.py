"""Unit tests for NotificationRenderService."""

from __future__ import annotations

import asyncio
import json

import pytest
from prometheus_client import REGISTRY

from notify_service.core.settings import RenderSettings
from notify_service.features.templates.exceptions import (
    DraftNotFoundError,
    PayloadShapeError,
    TemplateNotFoundError,
    TemplateRenderingError,
)
from notify_service.features.templates.schemas import NotificationRequest
from notify_service.features.templates.service import create_render_service

OVERDUE_BODY = (
    "{% if is_overdue %}OVERDUE {{ days_overdue }}d ({{ urgency }}){% endif %} "
    "{{ invoice.number }}: {{ invoice.balance }}"
)


def _invoice_request(**overrides) -> NotificationRequest:
    data = {
        "category": "invoice-overdue",
        "tenant_id": 7,
        "payload": {"invoice_number": "INV-1", "amount_due": "120.00", "due_date": "2026-03-05"},
        "recipient": {"name": "Ada Lovelace", "email": "ada@example.com"},
    }
    data.update(overrides)
    return NotificationRequest.model_validate(data)


def _active_scopes() -> float:
    return REGISTRY.get_sample_value("template_render_scopes_active") or 0.0


def _render_count(**labels: str) -> float:
    return REGISTRY.get_sample_value("template_render_total", labels) or 0.0


class TestRender:
    """Published rendering through presenter, mapping and resolver."""

    @pytest.mark.asyncio
    async def test_overdue_invoice(self, store, render_service) -> None:
        store.add("invoice-overdue", OVERDUE_BODY, subject_template="Invoice {{ invoice.number }} is overdue", version=4)

        result = await render_service.render(_invoice_request())

        assert result.body == "OVERDUE 5d (high) INV-1: $120.00"
        assert result.subject == "Invoice INV-1 is overdue"
        assert result.channel == "email"
        assert result.template_slug == "invoice-overdue"
        assert result.template_version == 4
        assert result.recipient_email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_tenant_mapping_overrides_default_slug(self, store, render_service) -> None:
        store.add("invoice-overdue", "default")
        store.add("acme-dunning", "ACME reminder for {{ invoice.number }}")
        store.map_category(7, "invoice-overdue", "acme-dunning")

        result = await render_service.render(_invoice_request())

        assert result.template_slug == "acme-dunning"
        assert result.body == "ACME reminder for INV-1"

    @pytest.mark.asyncio
    async def test_mapping_of_other_tenant_is_ignored(self, store, render_service) -> None:
        store.add("invoice-overdue", "tenant seven")
        store.add("acme-dunning", "tenant eight", tenant_id=8)
        store.map_category(8, "invoice-overdue", "acme-dunning")

        result = await render_service.render(_invoice_request())

        assert result.body == "tenant seven"

    @pytest.mark.asyncio
    async def test_partials_are_rendered(self, store, render_service) -> None:
        store.add("invoice-overdue", "{% include 'greeting' %} Pay {{ invoice.balance }}.{% include 'footer' %}")
        store.add_partial("greeting", "Hi {{ recipient.first_name }},")
        store.add_partial("footer", " -- {{ metadata.brand }}")

        result = await render_service.render(_invoice_request(metadata={"brand": "ACME", "nested": {"x": 1}}))

        assert result.body == "Hi Ada, Pay $120.00. -- ACME"

    @pytest.mark.asyncio
    async def test_subject_is_single_line(self, store, render_service) -> None:
        store.add("invoice-overdue", "body", subject_template="  Invoice\n  {{ invoice.number }}  ")

        result = await render_service.render(_invoice_request())

        assert result.subject == "Invoice INV-1"

    @pytest.mark.asyncio
    async def test_missing_template(self, render_service) -> None:
        with pytest.raises(TemplateNotFoundError) as exc_info:
            await render_service.render(_invoice_request())

        assert exc_info.value.slug == "invoice-overdue"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_partial_cannot_be_sent(self, store, render_service) -> None:
        store.add_partial("invoice-overdue", "fragment")

        with pytest.raises(TemplateNotFoundError, match="cannot be sent"):
            await render_service.render(_invoice_request())

    @pytest.mark.asyncio
    async def test_payload_shape_mismatch(self, store, render_service) -> None:
        store.add("invoice-overdue", OVERDUE_BODY)

        with pytest.raises(PayloadShapeError) as exc_info:
            await render_service.render(_invoice_request(payload={"invoice_number": "INV-1"}))

        assert "amount_due" in exc_info.value.message
        assert exc_info.value.status_code == 422

    @pytest.mark.asyncio
    async def test_webhook_category_renders_envelope(self, store, render_service) -> None:
        store.add("webhook-event", "{{ envelope_json }}", channel="webhook")
        request = NotificationRequest(
            category="webhook-invoice-paid",
            tenant_id=7,
            payload={"id": "in_1", "amount_paid": 1200},
            metadata={"event_id": "evt_fixed"},
        )

        result = await render_service.render(request)
        body = json.loads(result.body)

        assert result.channel == "webhook"
        assert result.template_slug == "webhook-event"
        assert body["event"]["type"] == "invoice.paid"
        assert body["event"]["id"] == "evt_fixed"
        assert body["data"]["object"] == {"id": "in_1", "amount_paid": 1200}

    @pytest.mark.asyncio
    async def test_unknown_category_uses_fallback(self, store, render_service) -> None:
        store.add("quarterly-recap", "{{ headline }} / {{ payload.headline }} / {{ category_name }}")
        request = NotificationRequest(category="quarterly-recap", tenant_id=7, payload={"headline": "Q1"})

        result = await render_service.render(request)

        assert result.body == "Q1 / Q1 / quarterly-recap"

    @pytest.mark.asyncio
    async def test_records_metrics(self, store, render_service) -> None:
        store.add("invoice-overdue", OVERDUE_BODY)
        before = _render_count(operation="render", channel="email", status="success")

        await render_service.render(_invoice_request())

        assert _render_count(operation="render", channel="email", status="success") == before + 1


class TestScopeRelease:
    """The tenant scope is released however an operation ends."""

    @pytest.mark.asyncio
    async def test_released_after_success_and_failure(self, store, render_service) -> None:
        baseline = _active_scopes()
        store.add("invoice-overdue", OVERDUE_BODY)

        await render_service.render(_invoice_request())
        with pytest.raises(TemplateRenderingError):
            await render_service.render(_invoice_request(payload=[]))
        await render_service.validate("{% if %}")

        assert _active_scopes() == baseline

    @pytest.mark.asyncio
    async def test_released_on_cancellation(self, store, render_service) -> None:
        baseline = _active_scopes()
        store.add("invoice-overdue", OVERDUE_BODY)
        store.gate = asyncio.Event()

        task = asyncio.create_task(render_service.render(_invoice_request()))
        for _ in range(5):
            await asyncio.sleep(0)
        assert _active_scopes() == baseline + 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert _active_scopes() == baseline

    @pytest.mark.asyncio
    async def test_mapping_lookup_cancelled_with_render(self, store, render_service) -> None:
        store.add("invoice-overdue", OVERDUE_BODY)
        store.gate = asyncio.Event()

        task = asyncio.create_task(render_service.render(_invoice_request()))
        # One turn of the loop: the render has started its mapping lookup and yielded
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        pending = [
            t for t in asyncio.all_tasks() if not t.done() and "get_category_mapping" in t.get_coro().__qualname__
        ]
        assert pending == []


class TestRenderForDispatch:
    """Typed outcomes instead of exceptions."""

    @pytest.mark.asyncio
    async def test_success(self, store, render_service) -> None:
        store.add("invoice-overdue", OVERDUE_BODY)

        outcome = await render_service.render_for_dispatch(_invoice_request())

        assert outcome.ok is True
        assert outcome.result is not None
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_not_found_is_not_retryable(self, render_service) -> None:
        outcome = await render_service.render_for_dispatch(_invoice_request())

        assert outcome.ok is False
        assert outcome.error.code == "template_not_found"
        assert outcome.error.retryable is False

    @pytest.mark.asyncio
    async def test_store_unavailable_is_retryable(self, store, render_service) -> None:
        store.fail_with = OSError("connection refused")

        outcome = await render_service.render_for_dispatch(_invoice_request())

        assert outcome.error.code == "template_not_found"
        assert outcome.error.retryable is True

    @pytest.mark.asyncio
    async def test_rendering_error(self, store, render_service) -> None:
        store.add("invoice-overdue", "{{ invoice.number }")

        outcome = await render_service.render_for_dispatch(_invoice_request())

        assert outcome.error.code == "rendering_error"
        assert "Syntax error" in outcome.error.message

    @pytest.mark.asyncio
    async def test_oversized_amount_is_a_rendering_error(self, store, render_service) -> None:
        store.add("invoice-overdue", OVERDUE_BODY)
        payload = {"invoice_number": "INV-1", "amount_due": "1e30", "due_date": "2026-03-05"}

        outcome = await render_service.render_for_dispatch(_invoice_request(payload=payload))

        assert outcome.ok is False
        assert outcome.error.code == "rendering_error"
        assert "amount_due" in outcome.error.message

    @pytest.mark.asyncio
    async def test_overflowing_dates_are_a_rendering_error(self, store, render_service) -> None:
        store.add("password-changed", "Link expires {{ link_expires_at }}")
        payload = {"occurred_at": "9999-12-31T23:59:00Z", "expires_in_minutes": 60}

        outcome = await render_service.render_for_dispatch(
            _invoice_request(category="password-changed", payload=payload)
        )

        assert outcome.error.code == "rendering_error"
        assert outcome.error.retryable is False

    @pytest.mark.asyncio
    async def test_deeply_nested_template_is_a_rendering_error(self, store, render_service) -> None:
        store.add("invoice-overdue", "{{ " + "(" * 3000 + "1" + ")" * 3000 + " }}")

        outcome = await render_service.render_for_dispatch(_invoice_request())

        assert outcome.error.code == "rendering_error"
        assert "nested too deeply" in outcome.error.message


class TestRenderDraft:
    """Draft previews with sample data."""

    @pytest.mark.asyncio
    async def test_renders_version_zero(self, store, render_service) -> None:
        store.add("welcome", "published")
        store.add_draft("welcome", "Draft for {{ name }}", subject_template="Hi {{ name }}")

        preview = await render_service.render_draft(7, "welcome", {"name": "Ada"})

        assert preview.body == "Draft for Ada"
        assert preview.subject == "Hi Ada"
        assert preview.template_version == 0

    @pytest.mark.asyncio
    async def test_draft_can_use_published_partials(self, store, render_service) -> None:
        store.add_partial("footer", "-- ACME")
        store.add_draft("welcome", "Hello{% include 'footer' %}")

        preview = await render_service.render_draft(7, "welcome")

        assert preview.body == "Hello-- ACME"

    @pytest.mark.asyncio
    async def test_missing_draft(self, render_service) -> None:
        with pytest.raises(DraftNotFoundError) as exc_info:
            await render_service.render_draft(7, "welcome", {})

        assert exc_info.value.status_code == 404
        assert exc_info.value.type == "draft-not-found"

    @pytest.mark.asyncio
    async def test_published_only_template_has_no_draft(self, store, render_service) -> None:
        store.add("welcome", "Hello {{ name }}", version=3)

        with pytest.raises(DraftNotFoundError) as exc_info:
            await render_service.render_draft(7, "welcome", {"name": "Ada"})

        assert exc_info.value.slug == "welcome"
        assert store.calls["get_draft"] == 1

    @pytest.mark.asyncio
    async def test_draft_is_not_cached(self, store, render_service) -> None:
        store.add_draft("welcome", "first")
        await render_service.render_draft(7, "welcome")
        store.add_draft("welcome", "second")

        assert (await render_service.render_draft(7, "welcome")).body == "second"


class TestValidate:
    """validate() reports problems instead of raising."""

    @pytest.mark.asyncio
    async def test_valid_template(self, render_service) -> None:
        result = await render_service.validate("Hello {{ name }}", {"name": "Ada"})

        assert result.valid is True
        assert result.error_message is None

    @pytest.mark.asyncio
    async def test_syntax_error_reports_line(self, render_service) -> None:
        result = await render_service.validate("{{#if}}", {})

        assert result.valid is False
        assert result.line == 1
        assert result.column is None
        assert result.error_message

    @pytest.mark.asyncio
    async def test_deeply_nested_expression(self, render_service) -> None:
        source = "{{ " + "(" * 3000 + "1" + ")" * 3000 + " }}"

        result = await render_service.validate(source, {})

        assert result.valid is False
        assert "nested too deeply" in result.error_message

    @pytest.mark.asyncio
    async def test_include_without_tenant_is_invalid(self, render_service) -> None:
        result = await render_service.validate("{% include 'footer' %}")

        assert result.valid is False
        assert "footer" in result.error_message

    @pytest.mark.asyncio
    async def test_include_with_tenant_resolves_partials(self, store, render_service) -> None:
        store.add_partial("footer", "-- ACME")

        assert (await render_service.validate("x{% include 'footer' %}", tenant_id=7)).valid is True
        missing = await render_service.validate("x{% include 'header' %}", tenant_id=7)
        assert missing.valid is False
        assert "missing partial 'header'" in missing.error_message

    @pytest.mark.asyncio
    async def test_store_unavailable_is_reported(self, store, render_service) -> None:
        store.fail_with = OSError("down")

        result = await render_service.validate("{% include 'footer' %}", tenant_id=7)

        assert result.valid is False
        assert "unavailable" in result.error_message

    @pytest.mark.asyncio
    async def test_runtime_error_in_sample_context(self, render_service) -> None:
        result = await render_service.validate("{{ invoice.number }}", {})

        assert result.valid is False
        assert "Missing variable" in result.error_message


class TestCreateRenderService:
    def test_engine_follows_settings(self, resolver, registry) -> None:
        service = create_render_service(resolver, registry, RenderSettings(strict_undefined=True))

        assert service.engine.strict_undefined is True
        assert service.registry is registry

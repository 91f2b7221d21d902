"""Tests for template lifecycle events and cache invalidation."""

from __future__ import annotations

import pytest

from notify_service.core.events import EventRegistry, event_registry
from notify_service.features.templates.events import (
    TemplateArchivedEvent,
    TemplatePublishedEvent,
    TemplateRolledBackEvent,
    TenantTemplatesResetEvent,
    register_cache_invalidation,
)


@pytest.mark.usefixtures("isolated_events")
class TestCacheInvalidationHandlers:
    """Published, rolled-back and archived templates leave the cache immediately."""

    @pytest.mark.asyncio
    async def test_publish_makes_new_version_visible(self, store, resolver) -> None:
        register_cache_invalidation(resolver)
        store.add("invoice-overdue", "v1", version=1)
        assert (await resolver.resolve(7, "invoice-overdue")).version == 1

        store.add("invoice-overdue", "v2", version=2)
        handled = await event_registry.dispatch(
            TemplatePublishedEvent(tenant_id=7, template_id=1, slug="invoice-overdue", version=2)
        )

        assert handled == 1
        assert (await resolver.resolve(7, "invoice-overdue")).version == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event",
        [
            TemplateRolledBackEvent(tenant_id=7, template_id=1, slug="footer", version=1),
            TemplateArchivedEvent(tenant_id=7, template_id=1, slug="footer"),
        ],
    )
    async def test_rollback_and_archive_invalidate(self, store, resolver, event) -> None:
        register_cache_invalidation(resolver)
        store.add_partial("footer", "f")
        await resolver.resolve_partial(7, "footer")

        await event_registry.dispatch(event)

        assert resolver.cache.peek((7, "footer")) is None

    @pytest.mark.asyncio
    async def test_tenant_reset_clears_only_that_tenant(self, store, resolver) -> None:
        registry = EventRegistry()
        register_cache_invalidation(resolver, registry)
        store.add_partial("footer", "seven")
        store.add_partial("footer", "eight", tenant_id=8)
        await resolver.prewarm(7)
        await resolver.prewarm(8)

        await registry.dispatch(TenantTemplatesResetEvent(tenant_id=7))

        assert resolver.cache.peek((7, "footer")) is None
        assert resolver.cache.peek((8, "footer")) is not None

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_invalidation(self, store, resolver) -> None:
        async def broken(event) -> None:
            raise RuntimeError("subscriber bug")

        event_registry.subscribe(TemplatePublishedEvent, broken)
        register_cache_invalidation(resolver)
        store.add("welcome", "v1")
        await resolver.resolve(7, "welcome")

        handled = await event_registry.dispatch(
            TemplatePublishedEvent(tenant_id=7, template_id=1, slug="welcome", version=2)
        )

        assert handled == 1
        assert resolver.cache.peek((7, "welcome")) is None


class TestTemplateEvents:
    def test_event_types_are_registered(self) -> None:
        assert event_registry.get("template.published") is TemplatePublishedEvent
        assert event_registry.get("template.tenant_reset") is TenantTemplatesResetEvent

    def test_payload_round_trip(self) -> None:
        event = TemplatePublishedEvent(tenant_id=7, template_id=3, slug="welcome", version=2, published_by="ops")

        restored = event_registry.deserialize(event.to_payload())

        assert restored == event

    def test_published_version_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            TemplatePublishedEvent(tenant_id=7, template_id=3, slug="welcome", version=0)

"""Test helpers shared across the suite.

InMemoryTemplateStore implements the TemplateStore protocol over plain
dicts so resolver, service and router tests run without a database.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from notify_service.features.templates.repository import (
    CategoryMappingRecord,
    ResolvedTemplate,
    TemplateRecord,
)

_template_ids = itertools.count(1)


def make_resolved(
    slug: str,
    content: str,
    *,
    tenant_id: int = 7,
    kind: str = "renderable",
    channel: str | None = "email",
    subject_template: str | None = None,
    version: int = 1,
    template_id: int | None = None,
) -> ResolvedTemplate:
    """Build a ResolvedTemplate with sensible defaults."""
    return ResolvedTemplate(
        template_id=template_id if template_id is not None else next(_template_ids),
        tenant_id=tenant_id,
        slug=slug,
        kind=kind,
        channel=None if kind != "renderable" else channel,
        subject_template=subject_template,
        content=content,
        version=version,
        published_at=datetime(2026, 1, 1, tzinfo=UTC) if version > 0 else None,
    )


class InMemoryTemplateStore:
    """Dict-backed TemplateStore with call counting and failure injection.

    Example:
        store = InMemoryTemplateStore()
        store.add("invoice-overdue", "Pay {{ invoice.balance }}")
        store.add("footer", "-- ACME", kind="partial")
    """

    def __init__(self) -> None:
        self.published: dict[tuple[int, str], ResolvedTemplate] = {}
        self.drafts: dict[tuple[int, str], ResolvedTemplate] = {}
        self.mappings: dict[tuple[int, str], CategoryMappingRecord] = {}
        self.calls: Counter[str] = Counter()
        self.fail_with: BaseException | None = None
        self.gate: asyncio.Event | None = None

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------

    def add(self, slug: str, content: str, **kwargs: Any) -> ResolvedTemplate:
        template = make_resolved(slug, content, **kwargs)
        self.published[(template.tenant_id, slug)] = template
        return template

    def add_partial(self, slug: str, content: str, **kwargs: Any) -> ResolvedTemplate:
        return self.add(slug, content, kind="partial", **kwargs)

    def add_draft(self, slug: str, content: str, **kwargs: Any) -> ResolvedTemplate:
        template = make_resolved(slug, content, version=0, **kwargs)
        self.drafts[(template.tenant_id, slug)] = template
        return template

    def map_category(self, tenant_id: int, category: str, slug: str) -> None:
        template = self.published.get((tenant_id, slug))
        self.mappings[(tenant_id, category)] = CategoryMappingRecord(
            tenant_id=tenant_id,
            category_code=category,
            template_id=template.template_id if template else 0,
            template_slug=slug,
        )

    def remove(self, tenant_id: int, slug: str) -> None:
        self.published.pop((tenant_id, slug), None)

    # ------------------------------------------------------------------
    # TemplateStore protocol
    # ------------------------------------------------------------------

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def get_published(self, tenant_id: int, slug: str) -> ResolvedTemplate | None:
        await self._enter("get_published")
        return self.published.get((tenant_id, slug))

    async def list_published_partials(self, tenant_id: int) -> list[ResolvedTemplate]:
        await self._enter("list_published_partials")
        return sorted(
            (t for (tenant, _), t in self.published.items() if tenant == tenant_id and t.is_partial),
            key=lambda t: t.slug,
        )

    async def get_category_mapping(self, tenant_id: int, category: str) -> CategoryMappingRecord | None:
        await self._enter("get_category_mapping")
        return self.mappings.get((tenant_id, category))

    async def get_template(self, template_id: int) -> TemplateRecord | None:
        await self._enter("get_template")
        for template in self.published.values():
            if template.template_id == template_id:
                return TemplateRecord(
                    id=template.template_id,
                    tenant_id=template.tenant_id,
                    slug=template.slug,
                    kind=template.kind,
                    channel=template.channel,
                    status="active",
                    current_version=template.version,
                )
        return None

    async def get_draft(self, tenant_id: int, slug: str) -> ResolvedTemplate | None:
        await self._enter("get_draft")
        return self.drafts.get((tenant_id, slug))


class ManualClock:
    """Monotonic clock stand-in for cache TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds

"""Tests for the SQL template store and the version repositories."""

from __future__ import annotations

import pytest

from notify_service.core.database import NotFoundError
from notify_service.features.templates.catalog import seed_categories
from notify_service.features.templates.exceptions import DraftNotFoundError
from notify_service.features.templates.models import CategoryMapping, Template, TemplateKind
from notify_service.features.templates.repository import (
    SqlTemplateStore,
    TemplateRepository,
    TemplateStore,
    TemplateVersionRepository,
)
from notify_service.features.templates.resolver import TemplateResolver
from notify_service.features.templates.service import NotificationRenderService


async def _create_template(session, slug: str = "welcome", *, tenant_id: int = 7, **fields) -> Template:
    fields.setdefault("name", slug.replace("-", " ").title())
    fields.setdefault("channel", None if fields.get("kind", "renderable") != "renderable" else "email")
    return await TemplateRepository().create(session, Template(tenant_id=tenant_id, slug=slug, **fields))


async def _publish(session, template: Template, content: str) -> None:
    await TemplateVersionRepository().publish(session, template, published_by="ops@acme.test", content=content)


class TestTemplateVersionRepository:
    """Append-only version history with a mutable draft."""

    @pytest.mark.asyncio
    async def test_draft_is_version_zero_and_overwritten(self, db_session) -> None:
        versions = TemplateVersionRepository()
        template = await _create_template(db_session)

        first = await versions.save_draft(db_session, template, "first")
        second = await versions.save_draft(db_session, template, "second")

        assert first.id == second.id
        assert second.version == 0
        assert second.content == "second"
        assert second.is_draft

    @pytest.mark.asyncio
    async def test_publish_appends_max_plus_one(self, db_session) -> None:
        versions = TemplateVersionRepository()
        template = await _create_template(db_session)
        await versions.save_draft(db_session, template, "from draft")

        v1 = await versions.publish(db_session, template, published_by="ops@acme.test")
        v2 = await versions.publish(db_session, template, published_by="ops@acme.test", content="explicit")

        assert (v1.version, v1.content) == (1, "from draft")
        assert (v2.version, v2.content) == (2, "explicit")
        assert v2.published_by == "ops@acme.test"
        assert v2.published_at is not None
        assert template.current_version == 2

    @pytest.mark.asyncio
    async def test_rollback_never_reuses_numbers(self, db_session) -> None:
        versions = TemplateVersionRepository()
        template = await _create_template(db_session)
        await _publish(db_session, template, "v1")
        await _publish(db_session, template, "v2")

        target = await versions.rollback(db_session, template, 1)
        assert target.content == "v1"
        assert template.current_version == 1

        v3 = await versions.publish(db_session, template, published_by="ops@acme.test", content="v3")
        assert v3.version == 3
        assert [v.version for v in await versions.list_versions(db_session, template.id)] == [1, 2, 3]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("version", [0, 5])
    async def test_rollback_to_unknown_version(self, db_session, version) -> None:
        template = await _create_template(db_session)
        await _publish(db_session, template, "v1")

        with pytest.raises(NotFoundError):
            await TemplateVersionRepository().rollback(db_session, template, version)

    @pytest.mark.asyncio
    async def test_publish_without_draft(self, db_session) -> None:
        template = await _create_template(db_session)

        with pytest.raises(DraftNotFoundError):
            await TemplateVersionRepository().publish(db_session, template, published_by="ops@acme.test")


class TestTemplateRepository:
    @pytest.mark.asyncio
    async def test_get_by_slug_is_tenant_scoped(self, db_session) -> None:
        repo = TemplateRepository()
        await _create_template(db_session, tenant_id=7)
        await _create_template(db_session, tenant_id=8)

        found = await repo.get_by_slug(db_session, 8, "welcome")

        assert found is not None
        assert found.tenant_id == 8
        assert await repo.get_by_slug(db_session, 9, "welcome") is None

    @pytest.mark.asyncio
    async def test_archived_templates_are_hidden_by_default(self, db_session) -> None:
        repo = TemplateRepository()
        keep = await _create_template(db_session, "keep")
        gone = await _create_template(db_session, "gone")

        await repo.archive(db_session, gone)

        assert gone.is_archived
        assert [t.slug for t in await repo.list_for_tenant(db_session, 7)] == [keep.slug]
        assert len(await repo.list_for_tenant(db_session, 7, include_archived=True)) == 2


class TestSqlTemplateStore:
    """Read side used by the resolver."""

    @pytest.mark.asyncio
    async def test_implements_protocol(self, db_session_factory) -> None:
        assert isinstance(SqlTemplateStore(db_session_factory), TemplateStore)

    @pytest.mark.asyncio
    async def test_get_published_returns_current_version(self, db_session, db_session_factory) -> None:
        template = await _create_template(db_session, "invoice-overdue", subject_template="Invoice {{ n }}")
        await _publish(db_session, template, "v1")
        await _publish(db_session, template, "v2")
        await TemplateVersionRepository().rollback(db_session, template, 1)
        await db_session.commit()

        resolved = await SqlTemplateStore(db_session_factory).get_published(7, "invoice-overdue")

        assert resolved is not None
        assert (resolved.version, resolved.content) == (1, "v1")
        assert resolved.subject_template == "Invoice {{ n }}"
        assert resolved.channel == "email"

    @pytest.mark.asyncio
    async def test_unpublished_archived_and_foreign_templates_are_absent(self, db_session, db_session_factory) -> None:
        await TemplateVersionRepository().save_draft(db_session, await _create_template(db_session, "draft-only"), "d")
        archived = await _create_template(db_session, "archived")
        await _publish(db_session, archived, "a")
        await TemplateRepository().archive(db_session, archived)
        other = await _create_template(db_session, "foreign", tenant_id=8)
        await _publish(db_session, other, "f")
        await db_session.commit()
        store = SqlTemplateStore(db_session_factory)

        assert await store.get_published(7, "draft-only") is None
        assert await store.get_published(7, "archived") is None
        assert await store.get_published(7, "foreign") is None

    @pytest.mark.asyncio
    async def test_list_published_partials(self, db_session, db_session_factory) -> None:
        for slug, kind in (("header", TemplateKind.PARTIAL), ("base", TemplateKind.LAYOUT), ("welcome", None)):
            template = await _create_template(db_session, slug, kind=(kind or TemplateKind.RENDERABLE).value)
            await _publish(db_session, template, slug)
        await _create_template(db_session, "unpublished", kind=TemplateKind.PARTIAL.value)
        await db_session.commit()

        partials = await SqlTemplateStore(db_session_factory).list_published_partials(7)

        assert [p.slug for p in partials] == ["base", "header"]
        assert all(p.is_partial for p in partials)

    @pytest.mark.asyncio
    async def test_get_draft(self, db_session, db_session_factory) -> None:
        template = await _create_template(db_session)
        await _publish(db_session, template, "published")
        await TemplateVersionRepository().save_draft(db_session, template, "draft")
        await db_session.commit()

        draft = await SqlTemplateStore(db_session_factory).get_draft(7, "welcome")

        assert draft is not None
        assert (draft.version, draft.content) == (0, "draft")

    @pytest.mark.asyncio
    async def test_published_only_template_has_no_draft(self, db_session, db_session_factory, registry) -> None:
        template = await _create_template(db_session)
        await _publish(db_session, template, "v1")
        await _publish(db_session, template, "v2")
        await db_session.commit()
        store = SqlTemplateStore(db_session_factory)
        service = NotificationRenderService(TemplateResolver(store), registry)

        assert await store.get_draft(7, "welcome") is None
        assert (await store.get_published(7, "welcome")).version == 2
        with pytest.raises(DraftNotFoundError):
            await service.render_draft(7, "welcome", {})

    @pytest.mark.asyncio
    async def test_category_mapping(self, db_session, db_session_factory) -> None:
        await seed_categories(db_session)
        template = await _create_template(db_session, "acme-dunning")
        db_session.add(CategoryMapping(tenant_id=7, category_code="invoice-overdue", template_id=template.id))
        await db_session.commit()
        store = SqlTemplateStore(db_session_factory)

        mapping = await store.get_category_mapping(7, "invoice-overdue")

        assert mapping is not None
        assert mapping.template_slug == "acme-dunning"
        assert await store.get_category_mapping(8, "invoice-overdue") is None
        assert await store.get_category_mapping(7, "invoice-paid") is None

    @pytest.mark.asyncio
    async def test_get_template(self, db_session, db_session_factory) -> None:
        template = await _create_template(db_session)
        await _publish(db_session, template, "v1")
        await db_session.commit()
        store = SqlTemplateStore(db_session_factory)

        record = await store.get_template(template.id)

        assert record is not None
        assert (record.slug, record.current_version, record.status) == ("welcome", 1, "active")
        assert await store.get_template(template.id + 100) is None

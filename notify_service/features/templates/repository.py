"""Template store access.

Two layers live here:

- ``TemplateStore`` is the read interface the resolver depends on. The SQL
  implementation opens one short session per lookup and returns frozen
  snapshots, so ORM instances never outlive their session and cached
  values cannot be mutated by a later flush.
- ``TemplateRepository`` / ``TemplateVersionRepository`` are write-side
  helpers for the version lifecycle, used with an explicit session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import func, select

from notify_service.core.database import BaseRepository, NotFoundError
from notify_service.features.templates.exceptions import DraftNotFoundError
from notify_service.features.templates.models import (
    DRAFT_VERSION,
    CategoryMapping,
    Template,
    TemplateKind,
    TemplateStatus,
    TemplateVersion,
)
from notify_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

_lazy = get_lazy_logger(__name__)

PARTIAL_KINDS = (TemplateKind.PARTIAL.value, TemplateKind.LAYOUT.value)


@dataclass(frozen=True, slots=True)
class ResolvedTemplate:
    """Content of one template version, detached from the database."""

    template_id: int
    tenant_id: int
    slug: str
    kind: str
    channel: str | None
    subject_template: str | None
    content: str
    version: int
    published_at: datetime | None = None

    @property
    def is_partial(self) -> bool:
        return self.kind in PARTIAL_KINDS


@dataclass(frozen=True, slots=True)
class TemplateRecord:
    """Template metadata without content."""

    id: int
    tenant_id: int
    slug: str
    kind: str
    channel: str | None
    status: str
    current_version: int | None


@dataclass(frozen=True, slots=True)
class CategoryMappingRecord:
    """A tenant's template override for one category."""

    tenant_id: int
    category_code: str
    template_id: int
    template_slug: str


@runtime_checkable
class TemplateStore(Protocol):
    """Read access to published and draft template content."""

    async def get_published(self, tenant_id: int, slug: str) -> ResolvedTemplate | None: ...

    async def list_published_partials(self, tenant_id: int) -> list[ResolvedTemplate]: ...

    async def get_category_mapping(self, tenant_id: int, category: str) -> CategoryMappingRecord | None: ...

    async def get_template(self, template_id: int) -> TemplateRecord | None: ...

    async def get_draft(self, tenant_id: int, slug: str) -> ResolvedTemplate | None: ...


def _snapshot(template: Template, version: TemplateVersion) -> ResolvedTemplate:
    return ResolvedTemplate(
        template_id=template.id,
        tenant_id=template.tenant_id,
        slug=template.slug,
        kind=template.kind,
        channel=template.channel,
        subject_template=template.subject_template,
        content=version.content,
        version=version.version,
        published_at=version.published_at,
    )


class SqlTemplateStore:
    """TemplateStore backed by SQLAlchemy.

    Database errors propagate unchanged; the resolver decides how to
    surface them.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    def _published_stmt(self, tenant_id: int):
        return (
            select(Template, TemplateVersion)
            .join(
                TemplateVersion,
                (TemplateVersion.template_id == Template.id)
                & (TemplateVersion.version == Template.current_version),
            )
            .where(
                Template.tenant_id == tenant_id,
                Template.status == TemplateStatus.ACTIVE.value,
                Template.current_version.is_not(None),
            )
        )

    async def get_published(self, tenant_id: int, slug: str) -> ResolvedTemplate | None:
        stmt = self._published_stmt(tenant_id).where(Template.slug == slug)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
            snapshot = _snapshot(*row) if row else None
        _lazy.debug(
            lambda: f"store.get_published({tenant_id=}, {slug=}) -> "
            f"{f'v{snapshot.version}' if snapshot else 'not found'}"
        )
        return snapshot

    async def list_published_partials(self, tenant_id: int) -> list[ResolvedTemplate]:
        stmt = self._published_stmt(tenant_id).where(Template.kind.in_(PARTIAL_KINDS)).order_by(Template.slug)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
            snapshots = [_snapshot(template, version) for template, version in rows]
        _lazy.debug(lambda: f"store.list_published_partials({tenant_id=}) -> {len(snapshots)} partials")
        return snapshots

    async def get_category_mapping(self, tenant_id: int, category: str) -> CategoryMappingRecord | None:
        stmt = (
            select(CategoryMapping.template_id, Template.slug)
            .join(Template, Template.id == CategoryMapping.template_id)
            .where(
                CategoryMapping.tenant_id == tenant_id,
                CategoryMapping.category_code == category,
                # A mapping must never cross tenants
                Template.tenant_id == tenant_id,
            )
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
        if row is None:
            return None
        return CategoryMappingRecord(
            tenant_id=tenant_id,
            category_code=category,
            template_id=row.template_id,
            template_slug=row.slug,
        )

    async def get_template(self, template_id: int) -> TemplateRecord | None:
        async with self._session_factory() as session:
            template = await session.get(Template, template_id)
            if template is None:
                return None
            return TemplateRecord(
                id=template.id,
                tenant_id=template.tenant_id,
                slug=template.slug,
                kind=template.kind,
                channel=template.channel,
                status=template.status,
                current_version=template.current_version,
            )

    async def get_draft(self, tenant_id: int, slug: str) -> ResolvedTemplate | None:
        stmt = (
            select(Template, TemplateVersion)
            .join(TemplateVersion, TemplateVersion.template_id == Template.id)
            .where(
                Template.tenant_id == tenant_id,
                Template.slug == slug,
                Template.status == TemplateStatus.ACTIVE.value,
                TemplateVersion.version == DRAFT_VERSION,
            )
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()
            return _snapshot(*row) if row else None


class TemplateRepository(BaseRepository[Template]):
    """Queries and lifecycle changes on Template rows."""

    def __init__(self) -> None:
        super().__init__(Template)

    async def get_by_slug(self, session: AsyncSession, tenant_id: int, slug: str) -> Template | None:
        stmt = select(Template).where(Template.tenant_id == tenant_id, Template.slug == slug)
        return (await session.execute(stmt)).scalar_one_or_none()

    async def list_for_tenant(
        self,
        session: AsyncSession,
        tenant_id: int,
        *,
        include_archived: bool = False,
    ) -> Sequence[Template]:
        stmt = select(Template).where(Template.tenant_id == tenant_id).order_by(Template.slug)
        if not include_archived:
            stmt = stmt.where(Template.status == TemplateStatus.ACTIVE.value)
        return (await session.execute(stmt)).scalars().all()

    async def archive(self, session: AsyncSession, template: Template) -> Template:
        """Mark a template archived. Its versions stay untouched."""
        template.status = TemplateStatus.ARCHIVED.value
        await session.flush()
        self._logger.info(
            "Template archived",
            extra={"tenant_id": template.tenant_id, "slug": template.slug, "operation": "template.archive"},
        )
        return template


class TemplateVersionRepository(BaseRepository[TemplateVersion]):
    """Append-only version history.

    Version 0 is the only row ever updated in place. Publishing always
    appends ``max(version) + 1`` and never reuses a number, even if the
    latest version was rolled back by pointing ``current_version`` elsewhere.
    """

    def __init__(self) -> None:
        super().__init__(TemplateVersion)

    async def get_version(self, session: AsyncSession, template_id: int, version: int) -> TemplateVersion | None:
        stmt = select(TemplateVersion).where(
            TemplateVersion.template_id == template_id,
            TemplateVersion.version == version,
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get_draft(self, session: AsyncSession, template_id: int) -> TemplateVersion | None:
        return await self.get_version(session, template_id, DRAFT_VERSION)

    async def save_draft(self, session: AsyncSession, template: Template, content: str) -> TemplateVersion:
        """Create or overwrite the draft of ``template``."""
        draft = await self.get_draft(session, template.id)
        if draft is None:
            draft = await self.create(
                session,
                TemplateVersion(template_id=template.id, version=DRAFT_VERSION, content=content),
            )
        else:
            draft.content = content
            await session.flush()
        self._lazy.debug(lambda: f"db.save_draft: template={template.id} ({len(content)} chars)")
        return draft

    async def latest_version_number(self, session: AsyncSession, template_id: int) -> int:
        stmt = select(func.coalesce(func.max(TemplateVersion.version), DRAFT_VERSION)).where(
            TemplateVersion.template_id == template_id
        )
        return int((await session.execute(stmt)).scalar_one())

    async def publish(
        self,
        session: AsyncSession,
        template: Template,
        *,
        published_by: str,
        content: str | None = None,
        published_at: datetime | None = None,
    ) -> TemplateVersion:
        """Append a new published version and make it current.

        Args:
            session: Database session; the caller commits.
            template: Template being published.
            published_by: Identity recorded on the version.
            content: Content to publish. Defaults to the current draft.
            published_at: Publication timestamp, defaults to now.

        Raises:
            DraftNotFoundError: If no content is given and no draft exists.
        """
        if content is None:
            draft = await self.get_draft(session, template.id)
            if draft is None:
                raise DraftNotFoundError(template.tenant_id, template.slug)
            content = draft.content

        next_version = await self.latest_version_number(session, template.id) + 1
        version = await self.create(
            session,
            TemplateVersion(
                template_id=template.id,
                version=next_version,
                content=content,
                published_at=published_at or datetime.now(UTC),
                published_by=published_by,
            ),
        )
        template.current_version = next_version
        await session.flush()

        self._logger.info(
            "Template version published",
            extra={
                "tenant_id": template.tenant_id,
                "slug": template.slug,
                "version": next_version,
                "operation": "template.publish",
            },
        )
        return version

    async def rollback(self, session: AsyncSession, template: Template, version: int) -> TemplateVersion:
        """Point ``current_version`` back at an existing published version.

        No row is written or renumbered; the next publish still appends
        after the highest version ever created.

        Raises:
            NotFoundError: If ``version`` is not a published version of the template.
        """
        target = await self.get_version(session, template.id, version) if version > DRAFT_VERSION else None
        if target is None:
            raise NotFoundError("TemplateVersion", {"template_id": template.id, "version": version})
        template.current_version = version
        await session.flush()
        self._logger.info(
            "Template rolled back",
            extra={"tenant_id": template.tenant_id, "slug": template.slug, "version": version},
        )
        return target

    async def list_versions(self, session: AsyncSession, template_id: int) -> Sequence[TemplateVersion]:
        stmt = (
            select(TemplateVersion)
            .where(TemplateVersion.template_id == template_id)
            .order_by(TemplateVersion.version)
        )
        return (await session.execute(stmt)).scalars().all()


__all__ = [
    "PARTIAL_KINDS",
    "CategoryMappingRecord",
    "ResolvedTemplate",
    "SqlTemplateStore",
    "TemplateRecord",
    "TemplateRepository",
    "TemplateStore",
    "TemplateVersionRepository",
]

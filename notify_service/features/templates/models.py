"""SQLAlchemy models for versioned, tenant-scoped notification templates."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from notify_service.core.database import Base, TenantMixin, TimestampedBase

DRAFT_VERSION = 0


class TemplateKind(str, Enum):
    """What a template is used for."""

    RENDERABLE = "renderable"
    PARTIAL = "partial"
    LAYOUT = "layout"


class TemplateStatus(str, Enum):
    """Lifecycle status; archived templates never render."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class Channel(str, Enum):
    """Delivery channel a rendered notification is destined for."""

    EMAIL = "email"
    WEBHOOK = "webhook"
    SMS = "sms"


class Template(TimestampedBase, TenantMixin):
    """A tenant-owned template identified by slug.

    The content lives in TemplateVersion rows. ``current_version`` points at
    the published version used for rendering; a template without one cannot
    be rendered. Rows are archived, never deleted.

    Indexes:
        - (tenant_id, slug) unique
        - (tenant_id, kind) for partial pre-warming
    """

    __tablename__ = "notification_templates"

    slug: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Tenant-unique identifier (e.g., 'invoice-overdue')",
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
        comment="Human-readable name",
    )
    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TemplateKind.RENDERABLE.value,
        comment="renderable, partial or layout",
    )
    channel: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="email, webhook or sms; null for partials and layouts",
    )
    subject_template: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
        comment="Inline Jinja2 subject line",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TemplateStatus.ACTIVE.value,
        comment="active or archived",
    )
    current_version: Mapped[int | None] = mapped_column(
        Integer(),
        nullable=True,
        comment="Published version number used for rendering",
    )

    versions: Mapped[list[TemplateVersion]] = relationship(
        "TemplateVersion",
        back_populates="template",
        order_by="TemplateVersion.version",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_notification_templates_tenant_slug"),
        Index("ix_notification_templates_tenant_kind", "tenant_id", "kind"),
    )

    @property
    def is_archived(self) -> bool:
        return self.status == TemplateStatus.ARCHIVED.value

    def __repr__(self) -> str:
        return f"<Template(id={self.id}, tenant_id={self.tenant_id}, slug={self.slug!r}, v={self.current_version})>"


class TemplateVersion(Base):
    """Immutable content snapshot of a template.

    Version 0 is the single mutable draft. Versions >= 1 are published,
    append-only and never rewritten.
    """

    __tablename__ = "notification_template_versions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("notification_templates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(
        Integer(),
        nullable=False,
        comment="0 = draft, >= 1 published",
    )
    content: Mapped[str] = mapped_column(Text(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    published_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Identity of the publisher; null for drafts",
    )

    template: Mapped[Template] = relationship("Template", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("template_id", "version", name="uq_notification_template_versions_template_version"),
    )

    @property
    def is_draft(self) -> bool:
        return self.version == DRAFT_VERSION


class NotificationCategory(Base):
    """Catalog row for one notification category (seeded from the catalog module)."""

    __tablename__ = "notification_categories"

    code: Mapped[str] = mapped_column(String(120), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    group: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Presenter routing group (billing, account, ...)",
    )


class CategoryMapping(TimestampedBase, TenantMixin):
    """Per-tenant override of the template used for a category."""

    __tablename__ = "notification_category_mappings"

    category_code: Mapped[str] = mapped_column(
        ForeignKey("notification_categories.code", ondelete="RESTRICT"),
        nullable=False,
    )
    template_id: Mapped[int] = mapped_column(
        ForeignKey("notification_templates.id", ondelete="RESTRICT"),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "category_code", name="uq_notification_category_mappings_tenant_category"),
    )


class TemplateVariable(Base):
    """Authoring-time documentation of a variable a template expects.

    Informational only; rendering never consults it.
    """

    __tablename__ = "notification_template_variables"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(
        ForeignKey("notification_templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    path: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Dotted path in the render context (e.g., 'invoice.amount')",
    )
    declared_type: Mapped[str] = mapped_column(String(50), nullable=False, default="string")
    required: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)


__all__ = [
    "DRAFT_VERSION",
    "CategoryMapping",
    "Channel",
    "NotificationCategory",
    "Template",
    "TemplateKind",
    "TemplateStatus",
    "TemplateVariable",
    "TemplateVersion",
]

"""Declarative base and composable mixins for SQLAlchemy models.

Examples:
    class Template(TimestampedBase, TenantMixin):
        __tablename__ = "notification_templates"
        slug: Mapped[str] = mapped_column(String(120))
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

# Consistent naming convention for database constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base with constraint naming and automatic table names."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Auto-derive table name from class name (lowercase).

        Override __tablename__ explicitly for anything but trivial names.
        """
        return cls.__name__.lower()


class IntegerPKMixin:
    """Integer auto-increment primary key."""

    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing integer primary key",
    )


class TimestampMixin:
    """created_at / updated_at tracking.

    Python-side defaults keep SQLite test databases consistent with the
    server defaults used in PostgreSQL.
    """

    __allow_unmapped__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp of record creation",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
        comment="Timestamp of last update",
    )


class TenantMixin:
    """Tenant ownership for tenant-scoped rows.

    Tenants are managed by an external identity service; only the integer
    identifier is stored here. Every query on a tenant-owned model must
    filter on tenant_id.
    """

    __allow_unmapped__ = True

    tenant_id: Mapped[int] = mapped_column(
        Integer(),
        nullable=False,
        index=True,
        comment="Owning tenant identifier",
    )


class TimestampedBase(Base, IntegerPKMixin, TimestampMixin):
    """Convenience base with integer PK and timestamps."""

    __abstract__ = True


__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "IntegerPKMixin",
    "TenantMixin",
    "TimestampMixin",
    "TimestampedBase",
]

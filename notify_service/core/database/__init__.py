"""Database foundation: declarative base, mixins and a thin repository.

Base Classes and Mixins:
    - Base: declarative base with naming convention and auto table naming
    - IntegerPKMixin, TimestampMixin, TenantMixin
    - TimestampedBase: Integer PK + timestamps

Repository:
    - BaseRepository[T]: generic CRUD with explicit session passing

Exceptions:
    - RepositoryError, NotFoundError
"""

from notify_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    IntegerPKMixin,
    TenantMixin,
    TimestampedBase,
    TimestampMixin,
)
from notify_service.core.database.exceptions import NotFoundError, RepositoryError
from notify_service.core.database.repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "IntegerPKMixin",
    "NotFoundError",
    "RepositoryError",
    "TenantMixin",
    "TimestampMixin",
    "TimestampedBase",
]

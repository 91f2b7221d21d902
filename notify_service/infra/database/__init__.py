"""Database session infrastructure."""

from notify_service.infra.database.session import (
    AsyncSessionLocal,
    check_database_connection,
    close_database,
    engine,
    get_async_session,
)

__all__ = [
    "AsyncSessionLocal",
    "check_database_connection",
    "close_database",
    "engine",
    "get_async_session",
]

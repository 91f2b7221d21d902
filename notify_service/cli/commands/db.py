"""Database commands."""

from __future__ import annotations

import sys

import click
from sqlalchemy.exc import SQLAlchemyError

from notify_service.cli.utils import coro, error, info, success


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def check() -> None:
    """Verify the template store database answers."""
    from notify_service.infra.database.session import check_database_connection, close_database

    ok = await check_database_connection()
    await close_database()
    if not ok:
        error("Database is not reachable")
        sys.exit(1)
    success("Database connected")


@db.command(name="seed-categories")
@coro
async def seed_categories_cmd() -> None:
    """Insert catalog categories missing from notification_categories."""
    from notify_service.features.templates.catalog import CATEGORIES, seed_categories
    from notify_service.infra.database.session import close_database, get_async_session

    try:
        async with get_async_session() as session:
            inserted = await seed_categories(session)
            await session.commit()
    except SQLAlchemyError as exc:
        error(f"Seeding failed: {exc}")
        sys.exit(1)
    finally:
        await close_database()

    info(f"{len(CATEGORIES)} categories in catalog")
    success(f"Inserted {inserted} new categories")

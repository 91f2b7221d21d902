"""Pytest configuration and shared fixtures.

Organization:
    - Rendering Fixtures: in-memory store, clock, presenters, resolver, service
    - Application Fixtures: FastAPI app and HTTP client
    - Database Fixtures: SQLAlchemy engine and session on in-memory SQLite
    - Event Fixtures: isolation of the global event registry

The application fixture never runs the lifespan; it wires the render
service singletons to the in-memory store directly.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_DEBUG", "false")
os.environ.setdefault("TEMPLATE_CACHE_TTL_SECONDS", "300")

from notify_service.core.events import event_registry  # noqa: E402
from notify_service.features.presenters import FixedClock, PresenterRegistry, build_default_registry  # noqa: E402
from notify_service.features.templates.engine import RenderingEngine  # noqa: E402
from notify_service.features.templates.resolver import (  # noqa: E402
    TemplateResolver,
    get_template_resolver,
)
from notify_service.features.templates.service import (  # noqa: E402
    NotificationRenderService,
    initialize_render_service,
    reset_render_service,
)
from tests.utils import InMemoryTemplateStore  # noqa: E402

if TYPE_CHECKING:
    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine

FROZEN_NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


# ============================================================================
# Rendering Fixtures
# ============================================================================


@pytest.fixture
def store() -> InMemoryTemplateStore:
    """Empty in-memory template store.

    Example:
        async def test_resolve(store, resolver):
            store.add("welcome", "Hi {{ recipient.first_name }}")
            template = await resolver.resolve(7, "welcome")
    """
    return InMemoryTemplateStore()


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at 2026-03-10 12:00 UTC."""
    return FixedClock(FROZEN_NOW)


@pytest.fixture
def registry(clock: FixedClock) -> PresenterRegistry:
    return build_default_registry(clock=clock)


@pytest.fixture
def resolver(store: InMemoryTemplateStore) -> TemplateResolver:
    return TemplateResolver(store, cache_ttl=300.0, max_partial_depth=8)


@pytest.fixture
def engine() -> RenderingEngine:
    return RenderingEngine()


@pytest.fixture
def render_service(
    resolver: TemplateResolver,
    registry: PresenterRegistry,
    engine: RenderingEngine,
) -> NotificationRenderService:
    """Render service over the in-memory store with a frozen clock."""
    return NotificationRenderService(resolver, registry, engine)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(
    resolver: TemplateResolver,
    render_service: NotificationRenderService,
) -> Generator[FastAPI]:
    """FastAPI application wired to the in-memory render service.

    Example:
        async def test_categories(client):
            response = await client.get("/api/v1/templates/categories")
            assert response.status_code == 200
    """
    from notify_service.app.main import create_app

    application = create_app()
    application.dependency_overrides[get_template_resolver] = lambda: resolver
    initialize_render_service(render_service)
    try:
        yield application
    finally:
        application.dependency_overrides.clear()
        reset_render_service()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for the test application."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Async SQLAlchemy engine on a fresh in-memory SQLite database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    db_engine: AsyncEngine,
    db_session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session with every table created; rolled back and dropped afterwards.

    Example:
        async def test_seed(db_session):
            inserted = await seed_categories(db_session)
            assert inserted > 0
    """
    from notify_service.core.database import Base
    from notify_service.features.templates import models  # noqa: F401

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with db_session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============================================================================
# Event Fixtures
# ============================================================================


@pytest.fixture
def isolated_events() -> Generator[None]:
    """Drop every handler subscribed during the test."""
    event_registry.clear_handlers()
    try:
        yield
    finally:
        event_registry.clear_handlers()

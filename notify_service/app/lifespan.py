"""Application lifespan management.

Startup Order:
1. Logging
2. Presenter registry (fails fast on overlapping presenters)
3. Template resolver over the SQL template store
4. Render service
5. Cache invalidation subscriptions and optional prewarm

Shutdown Order: reverse of startup
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from notify_service.core.events import event_registry
from notify_service.core.settings import get_app_settings, get_logging_settings, get_render_settings
from notify_service.features.presenters import build_default_registry
from notify_service.features.templates.events import register_cache_invalidation
from notify_service.features.templates.exceptions import TemplateNotFoundError
from notify_service.features.templates.resolver import initialize_template_resolver, reset_template_resolver
from notify_service.features.templates.service import (
    create_render_service,
    initialize_render_service,
    reset_render_service,
)
from notify_service.infra.logging import setup_logging, shutdown

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def _startup_rendering() -> None:
    """Build the presenter registry, resolver and render service singletons."""
    from notify_service.features.templates.repository import SqlTemplateStore
    from notify_service.infra.database.session import AsyncSessionLocal

    settings = get_render_settings()

    registry = build_default_registry(settings=settings)
    resolver = initialize_template_resolver(SqlTemplateStore(AsyncSessionLocal), settings)
    initialize_render_service(create_render_service(resolver, registry, settings))
    register_cache_invalidation(resolver)

    logger.info(
        "Rendering initialized",
        extra={
            "presenters": [presenter.name for presenter in registry.presenters],
            "routed_categories": len(registry),
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "max_partial_depth": settings.max_partial_depth,
        },
    )

    for tenant_id in settings.prewarm_tenants:
        try:
            loaded = await resolver.prewarm(tenant_id)
        except TemplateNotFoundError:
            # Store not reachable yet; renders will load lazily
            logger.warning("Template prewarm skipped", extra={"tenant_id": tenant_id})
            continue
        logger.info("Template partials prewarmed", extra={"tenant_id": tenant_id, "partials": loaded})


async def _shutdown_rendering() -> None:
    event_registry.clear_handlers()
    reset_render_service()
    reset_template_resolver()


async def _shutdown_database() -> None:
    from notify_service.infra.database.session import close_database

    await close_database()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    _ = app
    app_settings = get_app_settings()

    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={"service": app_settings.service_name, "version": app_settings.version},
    )

    await _startup_rendering()
    logger.info("Application startup complete", extra={"service": app_settings.service_name})

    try:
        yield
    finally:
        logger.info("Application shutting down", extra={"service": app_settings.service_name})
        await _shutdown_rendering()
        await _shutdown_database()
        shutdown()

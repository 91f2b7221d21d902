"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notify_service.core.settings import get_app_settings
from notify_service.features.health.router import router as health_router
from notify_service.features.metrics.router import router as metrics_router
from notify_service.features.templates.router import router as templates_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from notify_service.core.settings import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional application settings override for the API prefix.
    """
    settings = app_settings or get_app_settings()

    # Probes and metrics stay unversioned
    app.include_router(metrics_router)
    app.include_router(health_router)

    app.include_router(templates_router, prefix=settings.api_prefix)

    logger.info("Routers configured", extra={"api_prefix": settings.api_prefix})

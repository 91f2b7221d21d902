"""Modular Pydantic Settings v2 configuration.

One settings class per domain, each with its own env prefix:
    APP_       service identity and HTTP surface
    DB_        database connection
    LOG_       logging
    TEMPLATE_  resolver cache, partial depth, formatting defaults

Import settings via cached loaders:
    from notify_service.core.settings import get_render_settings
"""

from __future__ import annotations

from .app import AppSettings
from .database import DatabaseSettings
from .loader import (
    clear_settings_cache,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_render_settings,
)
from .logs import LoggingSettings
from .rendering import RenderSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "RenderSettings",
    "clear_settings_cache",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_render_settings",
]

"""LRU-cached settings loaders.

Settings are validated once and cached for the lifetime of the process.

Testing:
    get_render_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .rendering import RenderSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_render_settings() -> RenderSettings:
    """Get cached template rendering settings."""
    return RenderSettings()


def clear_settings_cache() -> None:
    """Drop every cached settings instance (tests and reloads)."""
    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_render_settings.cache_clear()

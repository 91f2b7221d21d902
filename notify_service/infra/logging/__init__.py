"""Logging infrastructure.

Structured logging built on the standard library:
- JSONL formatter for Loki/Elasticsearch ingestion
- Automatic context injection (request_id, tenant_id) via contextvars
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug messages

Basic usage:
    import logging

    from notify_service.infra.logging import get_lazy_logger, set_log_context

    logger = logging.getLogger(__name__)
    lazy_logger = get_lazy_logger(__name__)

    set_log_context(request_id="abc-123", tenant_id=7)
    logger.info("Rendering notification")
    lazy_logger.debug(lambda: f"Context keys: {sorted(context)}")
"""

from notify_service.infra.logging.config import configure_logging, setup_logging, shutdown
from notify_service.infra.logging.context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    get_logger,
    remove_from_log_context,
    set_log_context,
)
from notify_service.infra.logging.formatters import JSONFormatter
from notify_service.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "get_logger",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]

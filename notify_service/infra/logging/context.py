"""Context management for structured logging.

Fields set here (request_id, tenant_id, ...) are injected into every log
record emitted from the current asyncio task. This is a logging concern
only: template resolution never reads it and always receives its tenant
through an explicit RenderScope.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

# Each async task gets its own copy automatically
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        set_log_context(request_id="abc-123", tenant_id=7)
        logger.info("Rendering notification")  # includes request_id and tenant_id
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current task."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Copy the contextvars log context onto each LogRecord.

    Attached to the root logger, so formatters (JSONFormatter in particular)
    see the fields without any change to logging call sites.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter with permanently bound fields.

    Example:
        logger = get_logger(__name__, component="resolver")
        tenant_logger = logger.bind(tenant_id=7)
        tenant_logger.info("Cache miss", extra={"slug": "invoice-notice"})
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        """Return a new logger with additional bound fields."""
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Get a logger with bound context.

    Example:
        logger = get_logger(__name__, component="orchestrator")
        logger.info("Rendered", extra={"template_slug": "invoice-notice"})
    """
    return ContextBoundLogger(logging.getLogger(name), **context)

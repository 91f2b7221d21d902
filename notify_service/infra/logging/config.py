"""Logging configuration setup.

All handlers hang off a QueueListener; the root logger only owns a
QueueHandler so request coroutines never block on log I/O. Configuration is
applied through logging.config.dictConfig.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from notify_service.infra.logging.context import ContextInjectingFilter
from notify_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from notify_service.core.settings.logs import LoggingSettings

_log_queue: Queue[logging.LogRecord] | None = None
_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False
logger = logging.getLogger(__name__)

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def shutdown() -> None:
    """Stop the QueueListener, flushing pending records."""
    global _log_queue, _listener

    if _listener is not None:
        _listener.stop()
        _listener = None
    _log_queue = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Configure logging once across entrypoints.

    Args:
        log_settings: Optional logging settings; loaded from env when omitted.
        force: Reconfigure even if logging was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from notify_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**{**log_settings.to_logging_kwargs(), **configure_kwargs})
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    *,
    service_name: str = "notify-service",
    json_logs: bool = True,
    console_enabled: bool = True,
    file_path: str | Path | None = None,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    include_context: bool = True,
    include_uvicorn: bool = True,
) -> None:
    """Configure root logging with dictConfig and the QueueHandler pattern.

    Example:
        from notify_service.core.settings import get_logging_settings
        configure_logging(**get_logging_settings().to_logging_kwargs())
    """
    global _log_queue, _listener

    shutdown()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "context": {"()": ContextInjectingFilter},
            },
            "root": {
                "level": log_level.upper(),
                "handlers": [],
                "filters": ["context"] if include_context else [],
            },
        }
    )

    formatter: logging.Formatter = (
        JSONFormatter(static={"service": service_name}) if json_logs else logging.Formatter(_TEXT_FORMAT)
    )

    handlers: list[logging.Handler] = []
    if console_enabled:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    _log_queue = Queue(-1)
    queue_handler = QueueHandler(_log_queue)
    if include_context:
        # Context must be captured on the emitting task, before the queue hop
        queue_handler.addFilter(ContextInjectingFilter())

    root = logging.getLogger()
    root.addHandler(queue_handler)

    _listener = QueueListener(_log_queue, *handlers, respect_handler_level=True)
    _listener.start()

    if include_uvicorn:
        for name in _UVICORN_LOGGERS:
            uvicorn_logger = logging.getLogger(name)
            uvicorn_logger.handlers.clear()
            uvicorn_logger.propagate = True

    logger.debug("Logging configured", extra={"json_logs": json_logs, "level": log_level})


atexit.register(shutdown)

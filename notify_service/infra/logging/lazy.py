"""Lazy evaluation support for debug logging.

Lambdas passed as the message (or as format args) are only called when the
level is enabled, so expensive debug strings cost nothing in production.
"""

from __future__ import annotations

import logging
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that evaluates callables only when the level is enabled.

    Example:
        logger = get_lazy_logger(__name__)
        logger.debug(lambda: f"Resolved partials: {sorted(scope.partials)}")
    """

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()

        if args:
            args = tuple(arg() if callable(arg) else arg for arg in args)

        super().log(level, msg, *args, **kwargs)

    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        return msg, kwargs


def get_lazy_logger(name: str) -> LazyLoggerAdapter:
    """Get a logger that supports lambda-deferred messages."""
    return LazyLoggerAdapter(logging.getLogger(name), {})

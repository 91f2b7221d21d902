"""Middleware configuration for FastAPI application."""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from notify_service.core.settings import get_app_settings
from notify_service.infra.logging import clear_log_context, set_log_context

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add a request ID to every request and bind it to the log context."""

    async def dispatch(self, request: Request, call_next):
        """Process request and add request ID.

        Args:
            request: Incoming request.
            call_next: Next middleware/handler.

        Returns:
            Response with X-Request-ID and X-Process-Time headers.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_log_context(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            clear_log_context()
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{time.perf_counter() - start_time:.6f}"
        return response


def configure_middleware(app: FastAPI) -> None:
    """Configure middleware for the application.

    Args:
        app: FastAPI application instance.
    """
    app_settings = get_app_settings()

    if app_settings.cors_origins:
        logger.info("Configuring CORS", extra={"origins": app_settings.cors_origins})
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors_origins,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
            max_age=3600,
        )

    app.add_middleware(RequestIDMiddleware)

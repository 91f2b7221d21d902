"""Health checks over the render service and its template store."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Depends

from notify_service.features.templates.service import get_render_service

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable[bool]]


async def render_service_ready() -> bool:
    try:
        get_render_service()
    except RuntimeError:
        return False
    return True


async def database_ready() -> bool:
    from notify_service.infra.database.session import check_database_connection

    return await check_database_connection()


class HealthService:
    """Runs named readiness checks.

    A check that raises counts as failed; the error is logged.
    """

    def __init__(self, checks: dict[str, HealthCheck] | None = None) -> None:
        self.checks = checks if checks is not None else {
            "render_service": render_service_ready,
            "database": database_ready,
        }

    async def readiness(self) -> dict[str, Any]:
        results: dict[str, bool] = {}
        for name, check in self.checks.items():
            try:
                results[name] = await check()
            except Exception:
                logger.exception("Health check failed", extra={"check": name})
                results[name] = False
        return {"ready": all(results.values()), "timestamp": datetime.now(UTC), "checks": results}


_health_service: HealthService | None = None


def get_health_service() -> HealthService:
    global _health_service
    if _health_service is None:
        _health_service = HealthService()
    return _health_service


HealthServiceDep = Annotated[HealthService, Depends(get_health_service)]

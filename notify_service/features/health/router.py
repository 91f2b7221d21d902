"""Health check API endpoints.

- Liveness probe: /health/live - Is the process alive?
- Readiness probe: /health/ready - Can the service render notifications?
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Response, status

from notify_service.core.settings import get_app_settings
from notify_service.features.health.schemas import LivenessResponse, ReadinessResponse

# Runtime import so FastAPI resolves the Annotated[..., Depends(...)] metadata
from notify_service.features.health.service import HealthServiceDep  # noqa: TC001

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe (Kubernetes)",
)
async def liveness_check() -> LivenessResponse:
    """Answer as long as the event loop is responsive."""
    return LivenessResponse(timestamp=datetime.now(UTC), service=get_app_settings().service_name)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Service not ready to accept traffic"}},
    summary="Readiness probe (Kubernetes)",
)
async def readiness_check(response: Response, service: HealthServiceDep) -> ReadinessResponse:
    """Return 200 when the render service is initialized and the store answers, else 503."""
    result = await service.readiness()
    if not result["ready"]:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(**result)

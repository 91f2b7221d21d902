"""Health check response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LivenessResponse(BaseModel):
    """The process is up and answering."""

    alive: bool = True
    timestamp: datetime = Field(description="Check timestamp")
    service: str = Field(min_length=1, max_length=100, description="Service name")


class ReadinessResponse(BaseModel):
    """Whether the service can render notifications right now.

    Example:
        ```json
        {
            "ready": true,
            "timestamp": "2026-01-01T00:00:00Z",
            "checks": {"render_service": true, "database": true}
        }
        ```
    """

    ready: bool = Field(description="True when every check passed")
    timestamp: datetime = Field(description="Check timestamp")
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual dependency checks")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ready": True,
                "timestamp": "2026-01-01T00:00:00Z",
                "checks": {"render_service": True, "database": True},
            }
        },
    )

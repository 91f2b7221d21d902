"""Shared API schemas."""

from notify_service.core.schemas.problem_details import (
    ProblemDetails,
    ValidationErrorDetail,
    ValidationProblemDetails,
)

__all__ = ["ProblemDetails", "ValidationErrorDetail", "ValidationProblemDetails"]

"""Global exception handlers for FastAPI application.

Every error leaves the service as an RFC 7807 Problem Details document
with the ``application/problem+json`` media type.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notify_service.core.exceptions import AppException
from notify_service.core.schemas import ProblemDetails, ValidationErrorDetail, ValidationProblemDetails

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _problem_response(
    request: Request,
    problem: ProblemDetails,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Serialize a problem with its extension members and the request ID."""
    content = problem.model_dump(exclude_none=True)
    if extra:
        # Extension members never override the standard ones
        content.update({key: value for key, value in extra.items() if key not in content})
    request_id = _get_request_id(request)
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(
        status_code=problem.status,
        content=jsonable_encoder(content),
        media_type=PROBLEM_JSON,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert AppException instances into problem details responses.

    Args:
        request: The FastAPI request object.
        exc: The application exception that was raised.

    Returns:
        JSONResponse with RFC 7807 Problem Details format.
    """
    logger.warning(
        "Application exception occurred",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )

    problem = ProblemDetails(
        type=exc.type,
        title=exc.title,
        status=exc.status_code,
        detail=exc.detail[:2000],
        instance=exc.instance or request.url.path,
    )
    return _problem_response(request, problem, exc.extra)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert request validation errors into problem details with field errors.

    Args:
        request: The FastAPI request object.
        exc: The validation error that was raised.

    Returns:
        JSONResponse with RFC 7807 Problem Details format.
    """
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
        )
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
        },
    )

    problem = ValidationProblemDetails(
        type="validation-error",
        title="Validation Error",
        status=422,
        detail=f"Request validation failed for {len(errors)} field(s)",
        instance=request.url.path,
        errors=errors,
    )
    return _problem_response(request, problem)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic 500 response.

    The traceback is logged; the client only sees a generic message.
    """
    logger.error(
        "Unexpected exception occurred",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
        exc_info=exc,
    )

    problem = ProblemDetails(
        type="internal-error",
        title="Internal Server Error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing your request",
        instance=request.url.path,
    )
    return _problem_response(request, problem)


def configure_exception_handlers(app: FastAPI) -> None:
    """Register the problem details handlers on the application.

    Example:
        app = FastAPI()
        configure_exception_handlers(app)
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

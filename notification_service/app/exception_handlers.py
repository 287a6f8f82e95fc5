"""Exception handlers rendering every error as RFC 7807 Problem Details.

Request-shape errors (unparsable body, wrong field types) map to 400 so the
synchronous ingress reports them before anything is dispatched or audited.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notification_service.core.exceptions import AppException
from notification_service.core.schemas import FieldError, ProblemDetail, ValidationProblemDetail

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _problem_response(problem: ProblemDetail, extra: dict[str, Any] | None = None) -> JSONResponse:
    body = problem.model_dump(mode="json", exclude_none=True)
    if extra:
        # Extension members never replace the standard ones
        body.update({key: value for key, value in extra.items() if key not in body})
    return JSONResponse(status_code=problem.status, content=body, media_type=PROBLEM_JSON)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.type}: {exc.detail}",
        extra={"path": request.url.path, "method": request.method, "status_code": exc.status_code, **exc.extra},
    )
    problem = ProblemDetail(
        type=exc.type,
        title=exc.title,
        status=exc.status_code,
        detail=exc.detail,
        instance=exc.instance or request.url.path,
    )
    return _problem_response(problem, exc.extra)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """400 with one ``FieldError`` per pydantic error."""
    errors = [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"] if loc != "body") or "body",
            message=error["msg"],
            type=error["type"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "method": request.method, "error_count": len(errors)},
    )
    problem = ValidationProblemDetail(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_400_BAD_REQUEST,
        detail=f"Request validation failed for {len(errors)} field(s)",
        instance=request.url.path,
        errors=errors,
    )
    return _problem_response(problem)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the response body never exposes internals."""
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method, "exception_type": type(exc).__name__},
        exc_info=exc,
    )
    problem = ProblemDetail(
        type="internal-error",
        title="Internal Server Error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing your request",
        instance=request.url.path,
    )
    return _problem_response(problem)


def configure_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

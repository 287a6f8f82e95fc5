"""Middleware configuration for FastAPI application."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING
import uuid

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from notification_service.infra.logging import log_context

if TYPE_CHECKING:
    from fastapi import FastAPI

    from notification_service.core.settings import AppSettings

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, timing header and one access log line per request.

    The request id (taken from ``X-Request-ID`` or generated) is put into the
    log context, so dispatcher and store log lines of the request carry it.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()
        with log_context(request_id=request_id):
            response = await call_next(request)
            elapsed = time.perf_counter() - start_time
            logger.info(
                f"{request.method} {request.url.path} {response.status_code}",
                extra={"status_code": response.status_code, "duration_ms": round(elapsed * 1000, 2)},
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.6f}"
        return response


def configure_middleware(app: FastAPI, app_settings: AppSettings) -> None:
    cors_origins = app_settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        max_age=3600,
    )
    app.add_middleware(RequestContextMiddleware)
    logger.debug("Middleware configured", extra={"cors_origins": cors_origins})


__all__ = ["RequestContextMiddleware", "configure_middleware"]

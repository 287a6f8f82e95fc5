"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from notification_service.features.notifications.router import router as notifications_router
from notification_service.infra.metrics import render_latest

if TYPE_CHECKING:
    from fastapi import FastAPI

    from notification_service.core.settings import AppSettings

logger = logging.getLogger(__name__)

metrics_router = APIRouter()


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus exposition endpoint."""
    payload, content_type = render_latest()
    return Response(content=payload, media_type=content_type)


def setup_routers(app: FastAPI, app_settings: AppSettings) -> None:
    """Register all routers with the application."""
    # Metrics endpoint (no prefix - accessible at /metrics)
    app.include_router(metrics_router, tags=["observability"])
    app.include_router(notifications_router, prefix=app_settings.api_prefix)
    logger.debug("Routers registered", extra={"api_prefix": app_settings.api_prefix})


__all__ = ["metrics_router", "setup_routers"]

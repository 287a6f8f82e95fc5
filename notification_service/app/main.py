"""FastAPI application factory.

``uvicorn`` imports ``create_app`` with ``factory=True``; the lifespan then
opens the delivery pipeline and the broker connections.
"""

from __future__ import annotations

from fastapi import FastAPI

from notification_service.app.exception_handlers import configure_exception_handlers
from notification_service.app.lifespan import lifespan
from notification_service.app.middleware import configure_middleware
from notification_service.app.router import setup_routers
from notification_service.core.settings import get_settings


def create_app() -> FastAPI:
    app_settings = get_settings().app

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        docs_url=app_settings.get_docs_url(),
        redoc_url=app_settings.get_redoc_url(),
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    configure_exception_handlers(app)
    configure_middleware(app, app_settings)
    setup_routers(app, app_settings)
    return app

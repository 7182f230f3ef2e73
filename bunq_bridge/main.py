"""
FastAPI application entrypoint for the Bunq bridge.
"""

from __future__ import annotations

from fastapi import FastAPI

from bunq_bridge import __version__
from bunq_bridge.api.errors import register_error_handlers
from bunq_bridge.api.routes import router as api_router
from bunq_bridge.core.config import get_settings
from bunq_bridge.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Bunq Bridge",
        version=__version__,
        description="REST surface for Bunq sessions, accounts, payments and webhooks.",
    )
    register_error_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]

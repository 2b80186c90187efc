"""FastAPI application factory."""

from typing import Optional

import structlog
from fastapi import FastAPI

from .. import __version__
from ..service import TraderService
from .errors import register_exception_handlers
from .routes import analysis_router, health_router, market_router, strategies_router

logger = structlog.get_logger(__name__)


def create_app(service: Optional[TraderService] = None) -> FastAPI:
    """
    Build the REST application around a service instance.

    Args:
        service: Service to expose; built from settings when omitted

    Returns:
        Configured FastAPI application
    """
    if service is None:
        service = TraderService.create()

    app = FastAPI(
        title="CT App",
        description="Strategy registry and analysis records API",
        version=__version__,
    )
    app.state.service = service

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(strategies_router)
    app.include_router(analysis_router)
    app.include_router(market_router)

    logger.info("API application created", routes=len(app.routes))
    return app

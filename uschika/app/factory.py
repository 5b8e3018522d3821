"""
FastAPI application factory for the USChika server.

Handles app creation, CORS configuration and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.auth import auth_router
from ..api.health import health_router
from ..api.real_time import realtime_router
from ..config import get_config
from ..structured_logging.enhanced_logging_config import get_logger
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application; services are built by the lifespan
    """
    app = FastAPI(
        title="USChika API",
        description="Anonymous one-on-one chat matchmaking for USC students",
        version="0.1.0",
        lifespan=lifespan,
    )

    cors = get_config().cors
    allow_methods = [str(m).upper() for m in cors.allow_methods]
    logger.info(
        "CORS configuration",
        allow_origins=cors.allow_origins,
        allow_methods=allow_methods,
        allow_headers=cors.allow_headers,
        max_age=cors.max_age,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=True,
        allow_methods=allow_methods,
        allow_headers=cors.allow_headers,
        max_age=cors.max_age,
    )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(realtime_router)

    return app

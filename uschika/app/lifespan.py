"""Application lifecycle management for the USChika server."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import get_config
from ..container import ApplicationContainer
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the application container on startup and stop it on shutdown.

    A container already placed on app.state (tests do this to inject fakes)
    is used as-is.
    """
    container = getattr(app.state, "container", None)
    if container is None:
        container = ApplicationContainer(get_config())
        app.state.container = container

    logger.info("Starting USChika server")
    await container.initialize()
    try:
        yield
    finally:
        logger.info("Shutting down USChika server", **container.coordinator.stats())
        await container.shutdown()

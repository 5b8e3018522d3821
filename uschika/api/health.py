"""
Health check endpoint.

Read-only: counts come straight from the coordinator and nothing is mutated.
"""

from fastapi import APIRouter, HTTPException, Request

from ..error_types import ErrorMessages
from ..models.health import HealthResponse
from ..realtime.envelope import utc_now_z

health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail=ErrorMessages.SERVICE_UNAVAILABLE)
    return HealthResponse(status="ok", timestamp=utc_now_z(), **container.coordinator.stats())

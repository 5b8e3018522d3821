"""
Real-time chat endpoints.

The same handler is mounted at /ws and /api/ws.
"""

from fastapi import APIRouter, WebSocket, status

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..realtime.envelope import build_event, encode_event
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


@realtime_router.websocket("/ws")
@realtime_router.websocket("/api/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for matchmaking and chat."""
    container = getattr(websocket.app.state, "container", None)
    if container is None:
        # Must accept before closing so the client sees the reason
        await websocket.accept()
        error = create_websocket_error_response(
            ErrorType.SERVICE_UNAVAILABLE, "Application container not initialized", ErrorMessages.SERVICE_UNAVAILABLE
        )
        await websocket.send_text(encode_event(build_event("error", error)))
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        logger.warning("WebSocket rejected, application container not initialized")
        return

    await handle_websocket_connection(
        websocket,
        container.coordinator,
        container.notifier,
        container.message_validator,
        container.rate_limiter,
    )

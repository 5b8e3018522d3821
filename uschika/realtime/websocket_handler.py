"""
WebSocket handler for USChika chats.

Reads frames from one socket, validates them and dispatches them to the
lifecycle coordinator. Outbound events are written by the notifier's writer
task for this connection, never by this loop.
"""

from fastapi import WebSocket, WebSocketDisconnect

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..structured_logging.enhanced_logging_config import (
    bind_connection_context,
    clear_connection_context,
    get_logger,
)
from .envelope import build_event
from .lifecycle_coordinator import LifecycleCoordinator
from .message_validator import (
    EndChatFrame,
    InboundFrame,
    LoginFrame,
    MessageValidationError,
    SearchFrame,
    SendMessageFrame,
    StopSearchFrame,
    WebSocketMessageValidator,
)
from .outbound import WebSocketNotifier
from .rate_limiter import RateLimiter

logger = get_logger(__name__)

USER_FRIENDLY_ERRORS = {
    ErrorType.INVALID_FORMAT: ErrorMessages.INVALID_FORMAT,
    ErrorType.INVALID_EVENT_TYPE: ErrorMessages.INVALID_EVENT_TYPE,
    ErrorType.MESSAGE_TOO_LARGE: ErrorMessages.MESSAGE_TOO_LARGE,
    ErrorType.INVALID_CONTENT: ErrorMessages.INVALID_CONTENT,
}


def dispatch_frame(
    coordinator: LifecycleCoordinator,
    connection_id: str,
    frame: InboundFrame,
) -> None:
    """Route one validated frame to the matching coordinator operation."""
    if isinstance(frame, LoginFrame):
        coordinator.login(connection_id, frame.token)
    elif isinstance(frame, SearchFrame):
        coordinator.search(connection_id)
    elif isinstance(frame, StopSearchFrame):
        coordinator.stop_search(connection_id)
    elif isinstance(frame, SendMessageFrame):
        coordinator.send_message(connection_id, frame.content)
    elif isinstance(frame, EndChatFrame):
        coordinator.end_chat(connection_id)
    else:
        logger.warning("No dispatch for frame type", connection_id=connection_id, frame_type=frame.type)


def handle_frame(
    raw: str,
    connection_id: str,
    coordinator: LifecycleCoordinator,
    notifier: WebSocketNotifier,
    validator: WebSocketMessageValidator,
    rate_limiter: RateLimiter,
) -> None:
    """
    Validate, rate-limit and dispatch one raw text frame.

    Invalid frames and rate-limited messages get an `error` event back; the
    connection stays open.
    """
    try:
        frame = validator.parse_frame(raw)
    except MessageValidationError as e:
        logger.info("Invalid frame rejected", connection_id=connection_id, error_type=e.error_type.value)
        notifier.send(
            connection_id,
            build_event(
                "error",
                create_websocket_error_response(e.error_type, e.message, USER_FRIENDLY_ERRORS.get(e.error_type)),
            ),
        )
        return

    if isinstance(frame, SendMessageFrame) and not rate_limiter.check_message_rate_limit(connection_id):
        info = rate_limiter.get_message_rate_limit_info(connection_id)
        notifier.send(
            connection_id,
            build_event(
                "error",
                create_websocket_error_response(
                    ErrorType.RATE_LIMIT_EXCEEDED,
                    f"Rate limit exceeded: {info['max_attempts']} messages per {info['window_seconds']} seconds",
                    ErrorMessages.TOO_MANY_MESSAGES,
                    details=info,
                ),
            ),
        )
        return

    dispatch_frame(coordinator, connection_id, frame)


async def handle_websocket_connection(
    websocket: WebSocket,
    coordinator: LifecycleCoordinator,
    notifier: WebSocketNotifier,
    validator: WebSocketMessageValidator,
    rate_limiter: RateLimiter,
) -> None:
    """
    Serve one WebSocket for its whole life.

    The connection is registered idle on accept and cleaned up exactly once
    when the read loop ends, however it ends.
    """
    await websocket.accept()
    connection = coordinator.connection_opened()
    if connection is None:
        await websocket.close(code=1011)
        return
    connection_id = connection.connection_id

    try:
        # Refused with RuntimeError while the task registry is shutting down
        notifier.register(connection_id, websocket)
        bind_connection_context(connection_id)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            handle_frame(raw, connection_id, coordinator, notifier, validator, rate_limiter)
    except WebSocketDisconnect as e:
        logger.info("WebSocket disconnected", connection_id=connection_id, code=e.code)
    except RuntimeError as e:
        # Also raised by Starlette when receiving on a socket the server already closed
        logger.debug("WebSocket receive stopped", connection_id=connection_id, error=str(e))
    finally:
        coordinator.connection_closed(connection_id)
        rate_limiter.remove_connection_message_data(connection_id)
        await notifier.unregister(connection_id)
        clear_connection_context()

"""
Inbound WebSocket frame validation for USChika.

Every text frame is checked for size, parsed as JSON, checked for nesting
depth and validated against the pydantic model for its "type". Failures raise
MessageValidationError, which the WebSocket handler turns into an `error`
event; a bad frame never closes the connection.
"""

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from ..error_types import ErrorType
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class MessageValidationError(Exception):
    """Raised when frame validation fails."""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.INVALID_FORMAT):
        self.message = message
        self.error_type = error_type
        super().__init__(self.message)


class InboundFrame(BaseModel):
    """Base for all client frames; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str


class LoginFrame(InboundFrame):
    type: Literal["login"]
    token: StrictStr


class SearchFrame(InboundFrame):
    type: Literal["search"]


class StopSearchFrame(InboundFrame):
    type: Literal["stopSearch"]


class SendMessageFrame(InboundFrame):
    type: Literal["sendMessage"]
    content: StrictStr


class EndChatFrame(InboundFrame):
    type: Literal["endChat"]


FRAME_MODELS: dict[str, type[InboundFrame]] = {
    "login": LoginFrame,
    "search": SearchFrame,
    "stopSearch": StopSearchFrame,
    "sendMessage": SendMessageFrame,
    "endChat": EndChatFrame,
}


class WebSocketMessageValidator:
    """
    Validates WebSocket frames for security and correctness.

    Implements:
    - Frame size limits (DoS protection)
    - JSON depth limits
    - Per-type schema validation
    - Chat content trimming and length limits
    """

    MAX_FRAME_BYTES = 8 * 1024
    MAX_JSON_DEPTH = 5
    MAX_MESSAGE_LENGTH = 1000

    def __init__(
        self,
        max_frame_bytes: int | None = None,
        max_json_depth: int | None = None,
        max_message_length: int | None = None,
    ):
        self.max_frame_bytes = max_frame_bytes or self.MAX_FRAME_BYTES
        self.max_json_depth = max_json_depth or self.MAX_JSON_DEPTH
        self.max_message_length = max_message_length or self.MAX_MESSAGE_LENGTH

    def validate_size(self, data: str) -> None:
        """
        Validate frame size.

        Raises:
            MessageValidationError: If the frame exceeds the size limit
        """
        size = len(data.encode("utf-8"))
        if size > self.max_frame_bytes:
            logger.warning("Frame size exceeds limit", size=size, max_size=self.max_frame_bytes)
            raise MessageValidationError(
                f"Frame size {size} bytes exceeds maximum {self.max_frame_bytes} bytes",
                error_type=ErrorType.MESSAGE_TOO_LARGE,
            )

    def _calculate_depth(self, obj: Any, current_depth: int = 0) -> int:
        """Maximum nesting depth of a parsed JSON value, capped just past the limit."""
        if current_depth > self.max_json_depth:
            return current_depth
        if isinstance(obj, dict) and obj:
            return max(self._calculate_depth(v, current_depth + 1) for v in obj.values())
        if isinstance(obj, list) and obj:
            return max(self._calculate_depth(item, current_depth + 1) for item in obj)
        return current_depth

    def validate_content(self, content: str) -> str:
        """
        Trim chat content and enforce the length limit.

        Returns:
            The trimmed content (possibly empty; the relay ignores empty content)

        Raises:
            MessageValidationError: If the trimmed content is too long
        """
        trimmed = content.strip()
        if len(trimmed) > self.max_message_length:
            raise MessageValidationError(
                f"Message length {len(trimmed)} exceeds maximum {self.max_message_length}",
                error_type=ErrorType.INVALID_CONTENT,
            )
        return trimmed

    def parse_frame(self, data: str) -> InboundFrame:
        """
        Validate a raw text frame and return its typed model.

        Args:
            data: Raw WebSocket text frame

        Returns:
            The validated frame; SendMessageFrame content is already trimmed

        Raises:
            MessageValidationError: If any check fails
        """
        self.validate_size(data)

        try:
            message = json.loads(data)
        except json.JSONDecodeError as e:
            raise MessageValidationError(f"Invalid JSON: {e.msg}", error_type=ErrorType.INVALID_FORMAT) from e

        if not isinstance(message, dict):
            raise MessageValidationError("Frame must be a JSON object", error_type=ErrorType.INVALID_FORMAT)

        depth = self._calculate_depth(message)
        if depth > self.max_json_depth:
            logger.warning("JSON depth exceeds limit", depth=depth, max_depth=self.max_json_depth)
            raise MessageValidationError(
                f"JSON depth exceeds maximum {self.max_json_depth}", error_type=ErrorType.INVALID_FORMAT
            )

        frame_type = message.get("type")
        model = FRAME_MODELS.get(frame_type) if isinstance(frame_type, str) else None
        if model is None:
            raise MessageValidationError(
                f"Unknown event type: {frame_type!r}", error_type=ErrorType.INVALID_EVENT_TYPE
            )

        try:
            frame = model.model_validate(message)
        except ValidationError as e:
            logger.debug("Frame schema validation failed", frame_type=frame_type, errors=e.error_count())
            error_type = ErrorType.INVALID_CONTENT if model is SendMessageFrame else ErrorType.INVALID_FORMAT
            raise MessageValidationError(f"Invalid {frame_type} frame", error_type=error_type) from e

        if isinstance(frame, SendMessageFrame):
            frame = frame.model_copy(update={"content": self.validate_content(frame.content)})
        return frame

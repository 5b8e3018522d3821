"""
Error types and user-facing error payloads for USChika.

Every `error` event sent over the WebSocket and every HTTP error detail is
built from these so the client sees one consistent vocabulary.
"""

from enum import Enum
from typing import Any


class ErrorType(Enum):
    """Standardized error types for consistent categorization."""

    # Authentication
    AUTHENTICATION_FAILED = "authentication_failed"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"

    # Inbound frame validation
    INVALID_FORMAT = "invalid_format"
    INVALID_EVENT_TYPE = "invalid_event_type"
    MESSAGE_TOO_LARGE = "message_too_large"
    INVALID_CONTENT = "invalid_content"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"

    # System
    SERVICE_UNAVAILABLE = "service_unavailable"


class ErrorMessages:
    """Common error messages for consistent user experience."""

    AUTHENTICATION_REQUIRED = "Please log in to start chatting."
    INVALID_TOKEN = "Invalid token"
    TOKEN_EXPIRED = "Token has expired"

    INVALID_FORMAT = "Message could not be understood"
    INVALID_EVENT_TYPE = "Unknown event type"
    MESSAGE_TOO_LARGE = "Message is too large"
    INVALID_CONTENT = "Message content is empty or too long"

    TOO_MANY_MESSAGES = "You are sending messages too quickly. Please slow down."

    SERVICE_UNAVAILABLE = "Service temporarily unavailable"


def create_standard_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized HTTP error body.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        Standardized error response dictionary
    """
    return {
        "error": {
            "type": error_type.value,
            "message": message,
            "user_friendly": user_friendly or message,
            "details": details or {},
        }
    }


def create_websocket_error_response(
    error_type: ErrorType,
    message: str,
    user_friendly: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create the data payload of an `error` WebSocket event.

    Args:
        error_type: The type of error
        message: Technical error message
        user_friendly: User-friendly error message (optional)
        details: Additional error details (optional)

    Returns:
        Payload dictionary, wrapped by build_event("error", ...)
    """
    return {
        "error_type": error_type.value,
        "message": message,
        "user_friendly": user_friendly or message,
        "details": details or {},
    }

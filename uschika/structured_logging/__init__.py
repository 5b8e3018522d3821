"""Structured logging for the USChika server."""

from .enhanced_logging_config import (
    bind_connection_context,
    clear_connection_context,
    configure_enhanced_structlog,
    get_logger,
    setup_enhanced_logging,
)

__all__ = [
    "bind_connection_context",
    "clear_connection_context",
    "configure_enhanced_structlog",
    "get_logger",
    "setup_enhanced_logging",
]

"""
Rate limiting for chat messages.

Sliding-window limit on sendMessage frames per connection, so one client
cannot flood its partner.
"""

import time
from collections.abc import Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Per-connection message rate limiter.

    Keeps a list of recent send timestamps per connection id and rejects a
    send once the list holds max_messages entries inside the window.
    """

    def __init__(
        self,
        max_messages: int = 30,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            max_messages: Maximum messages per window per connection (default: 30)
            window_seconds: Window length in seconds (default: 60)
            clock: Time source, injectable for tests
        """
        self.message_attempts: dict[str, list[float]] = {}
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._clock = clock

    def check_message_rate_limit(self, connection_id: str) -> bool:
        """
        Check and record one message for a connection.

        Args:
            connection_id: The connection ID

        Returns:
            bool: True if the message is allowed, False if the limit is exceeded
        """
        current_time = self._clock()
        recent = [
            attempt_time
            for attempt_time in self.message_attempts.get(connection_id, [])
            if current_time - attempt_time < self.window_seconds
        ]

        if len(recent) >= self.max_messages:
            self.message_attempts[connection_id] = recent
            logger.warning(
                "Message rate limit exceeded",
                connection_id=connection_id,
                message_count=len(recent),
                max_messages=self.max_messages,
            )
            return False

        recent.append(current_time)
        self.message_attempts[connection_id] = recent
        return True

    def get_message_rate_limit_info(self, connection_id: str) -> dict[str, Any]:
        """
        Get message rate limit information for a connection.

        Returns:
            dict: attempts in window, limit, remaining and reset time
        """
        current_time = self._clock()
        recent = [
            attempt_time
            for attempt_time in self.message_attempts.get(connection_id, [])
            if current_time - attempt_time < self.window_seconds
        ]
        return {
            "attempts": len(recent),
            "max_attempts": self.max_messages,
            "window_seconds": self.window_seconds,
            "attempts_remaining": max(0, self.max_messages - len(recent)),
            "reset_time": recent[0] + self.window_seconds if recent else 0,
        }

    def remove_connection_message_data(self, connection_id: str) -> None:
        """Forget a closed connection."""
        if self.message_attempts.pop(connection_id, None) is not None:
            logger.debug("Removed message rate limit data", connection_id=connection_id)

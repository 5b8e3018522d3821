"""
Message relay between session partners.

Content goes to the partner only and is never echoed to the sender. Delivery
is queued first; the persistence record is handed off afterwards and never
awaited, so storage latency or failure cannot delay or block a chat.
"""

import time
from collections.abc import Callable

from ..persistence.message_sink import PersistenceSink
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection, RelayedMessage
from .envelope import build_event
from .outbound import Notifier
from .session_table import SessionTable

logger = get_logger(__name__)


def epoch_millis() -> int:
    return int(time.time() * 1000)


class Relay:
    """Forwards chat content along the session table."""

    def __init__(
        self,
        sessions: SessionTable,
        notifier: Notifier,
        persistence: PersistenceSink,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.sessions = sessions
        self.notifier = notifier
        self.persistence = persistence
        self.clock = clock

    def relay(self, sender: Connection, content: object) -> RelayedMessage | None:
        """
        Deliver content from sender to its partner.

        Args:
            sender: The sending connection (must carry an identity)
            content: Message text

        Returns:
            The relayed message, or None if nothing was delivered
        """
        entry = self.sessions.get(sender.connection_id)
        if entry is None:
            logger.debug("Relay without session ignored", connection_id=sender.connection_id)
            return None
        if not isinstance(content, str) or not content:
            logger.debug("Relay of empty or non-text content ignored", connection_id=sender.connection_id)
            return None
        if sender.identity is None:
            return None

        message = RelayedMessage(
            room_id=entry.room_id,
            sender_ref=sender.identity.user_ref,
            content=content,
            timestamp=self.clock(),
        )
        self.notifier.send(
            entry.partner_id,
            build_event(
                "receiveMessage",
                {"sender": message.sender_ref, "content": message.content, "timestamp": message.timestamp},
                room_id=entry.room_id,
            ),
        )
        logger.debug("Message relayed", room_id=entry.room_id, length=len(content))

        self.persistence.record_message(message)
        return message

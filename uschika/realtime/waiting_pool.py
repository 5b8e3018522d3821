"""
Waiting pool for users searching for a chat partner.

The pool is insertion-ordered and never holds the same connection twice. It
only answers questions and records membership; it sends no notifications.
"""

from collections import OrderedDict
from collections.abc import Iterator

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection

logger = get_logger(__name__)


class WaitingPool:
    """FIFO of searching connections, keyed by connection id."""

    def __init__(self):
        self._entries: OrderedDict[str, Connection] = OrderedDict()

    def enter(self, connection: Connection) -> bool:
        """
        Add a connection to the back of the pool.

        Returns:
            True if added, False if it was already waiting
        """
        if connection.connection_id in self._entries:
            return False
        self._entries[connection.connection_id] = connection
        logger.debug("Entered waiting pool", connection_id=connection.connection_id, waiting=len(self._entries))
        return True

    def leave(self, connection_id: str) -> bool:
        """Remove a connection if present; returns whether it was waiting."""
        removed = self._entries.pop(connection_id, None) is not None
        if removed:
            logger.debug("Left waiting pool", connection_id=connection_id, waiting=len(self._entries))
        return removed

    def find_partner_for(self, connection: Connection) -> Connection | None:
        """
        Find the oldest waiting connection that belongs to a different user.

        Entries sharing the requester's identity (same e-mail, e.g. a second
        browser tab) are skipped, as is the requester itself. The pool is not
        modified.
        """
        identity = connection.identity
        for candidate in self._entries.values():
            if candidate.connection_id == connection.connection_id:
                continue
            if identity is not None and identity.is_same_user(candidate.identity):
                continue
            return candidate
        return None

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._entries.values()))

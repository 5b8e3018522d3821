"""
Active chat session table.

Each session is stored as two symmetric entries, one per member. Both are
written by open() and removed by close() in the same call, so a reader never
observes half a session.
"""

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import SessionEntry

logger = get_logger(__name__)


def make_room_id(requester_id: str, partner_id: str) -> str:
    """Room id for a session; unique as long as connection ids are unique."""
    return f"room-{requester_id}-{partner_id}"


class SessionTable:
    """Symmetric connection id -> SessionEntry map."""

    def __init__(self):
        self._entries: dict[str, SessionEntry] = {}

    def open(self, requester_id: str, partner_id: str) -> str:
        """
        Record a session between two connections.

        Returns:
            The new room id

        Raises:
            ValueError: If either side is already in a session or both ids are equal
        """
        if requester_id == partner_id:
            raise ValueError("A connection cannot be paired with itself")
        if requester_id in self._entries or partner_id in self._entries:
            raise ValueError("Connection is already in a session")

        room_id = make_room_id(requester_id, partner_id)
        self._entries[requester_id] = SessionEntry(partner_id=partner_id, room_id=room_id)
        self._entries[partner_id] = SessionEntry(partner_id=requester_id, room_id=room_id)
        logger.debug("Session opened", room_id=room_id, active_sessions=len(self))
        return room_id

    def close(self, connection_id: str) -> SessionEntry | None:
        """
        Remove both entries of the session the connection belongs to.

        Returns:
            The closing connection's entry (its partner and room), or None if
            it was not in a session
        """
        entry = self._entries.pop(connection_id, None)
        if entry is None:
            return None
        partner_entry = self._entries.get(entry.partner_id)
        if partner_entry is not None and partner_entry.partner_id == connection_id:
            del self._entries[entry.partner_id]
        logger.debug("Session closed", room_id=entry.room_id, active_sessions=len(self))
        return entry

    def get(self, connection_id: str) -> SessionEntry | None:
        return self._entries.get(connection_id)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries

    def __len__(self) -> int:
        """Number of active sessions (pairs, not entries)."""
        return len(self._entries) // 2

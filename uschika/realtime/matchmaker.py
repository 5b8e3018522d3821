"""
Pairing decisions for searching users.

The matchmaker reads and mutates the waiting pool and session table it was
given by the coordinator; it owns neither. A search either pairs the
requester with the oldest eligible waiter or enqueues it, and both outcomes
happen inside one synchronous call.
"""

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection
from .envelope import build_event
from .outbound import Notifier
from .session_table import SessionTable
from .waiting_pool import WaitingPool

logger = get_logger(__name__)


class Matchmaker:
    """Strict-FIFO matchmaker that never pairs a user with themselves."""

    def __init__(
        self,
        pool: WaitingPool,
        sessions: SessionTable,
        notifier: Notifier,
    ):
        self.pool = pool
        self.sessions = sessions
        self.notifier = notifier

    def search(self, connection: Connection) -> str | None:
        """
        Handle a search request from an authenticated connection.

        Returns:
            The room id if the connection is (or already was) matched, otherwise None
        """
        connection_id = connection.connection_id
        machine = connection.state_machine

        if machine.is_matched():
            entry = self.sessions.get(connection_id)
            room_id = entry.room_id if entry else machine.room_id
            logger.debug("Search while matched, re-sending match", connection_id=connection_id, room_id=room_id)
            self.notifier.send(connection_id, build_event("matched", {"room_id": room_id}, room_id=room_id))
            return room_id

        if connection_id in self.pool:
            logger.debug("Search while already waiting", connection_id=connection_id)
            self.notifier.send(connection_id, build_event("searching"))
            return None

        partner = self.pool.find_partner_for(connection)
        if partner is None:
            self.pool.enter(connection)
            machine.start_search()
            logger.info("Waiting for partner", connection_id=connection_id, waiting=len(self.pool))
            self.notifier.send(connection_id, build_event("searching"))
            return None

        return self._pair(connection, partner)

    def _pair(self, requester: Connection, partner: Connection) -> str:
        """Remove the partner from the pool and open a session for both."""
        self.pool.leave(partner.connection_id)

        room_id = self.sessions.open(requester.connection_id, partner.connection_id)
        requester.state_machine.match(room_id=room_id)
        partner.state_machine.match(room_id=room_id)

        logger.info(
            "Chat matched",
            room_id=room_id,
            requester_id=requester.connection_id,
            partner_id=partner.connection_id,
            active_sessions=len(self.sessions),
        )
        event_data = {"room_id": room_id}
        self.notifier.send(requester.connection_id, build_event("matched", event_data, room_id=room_id))
        self.notifier.send(partner.connection_id, build_event("matched", event_data, room_id=room_id))
        return room_id

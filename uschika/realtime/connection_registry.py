"""
Connection registry.

Maps connection ids to Connection records. A connection that is absent from
the registry is treated as disconnected by every coordinator operation.
"""

from collections.abc import Iterator

from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection, Identity, new_connection_id

logger = get_logger(__name__)


class ConnectionRegistry:
    """In-memory map of connection id -> Connection."""

    def __init__(self):
        self._connections: dict[str, Connection] = {}

    def open(self, connection_id: str | None = None) -> Connection:
        """
        Register a new connection in the idle state.

        Args:
            connection_id: Id to use; a fresh one is generated when omitted

        Returns:
            The new Connection record
        """
        connection_id = connection_id or new_connection_id()
        if connection_id in self._connections:
            logger.warning("Connection id already registered, reusing record", connection_id=connection_id)
            return self._connections[connection_id]
        connection = Connection(connection_id=connection_id)
        self._connections[connection_id] = connection
        logger.debug("Connection registered", connection_id=connection_id, total=len(self._connections))
        return connection

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def attach_identity(self, connection_id: str, identity: Identity) -> bool:
        """
        Attach an identity to a connection exactly once.

        Returns:
            True if attached, False if the connection is unknown or already has one
        """
        connection = self._connections.get(connection_id)
        if connection is None or connection.identity is not None:
            return False
        connection.identity = identity
        return True

    def remove(self, connection_id: str) -> Connection | None:
        """Discard a connection record; returns it if it was present."""
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            logger.debug("Connection discarded", connection_id=connection_id, total=len(self._connections))
        return connection

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))

"""
Lifecycle coordinator for anonymous one-on-one chats.

The coordinator is the only code that mutates the connection registry,
waiting pool and session table. Every entry point is a plain synchronous
method: on a single event loop each call runs to completion before the next
event is looked at, so no other event can observe a half-applied transition.

Entry points never raise. Events for unknown connections, or events that are
invalid in the connection's current state, are dropped with a debug log;
unexpected exceptions are logged with a traceback and the call becomes a
no-op.
"""

import functools
from collections.abc import Callable
from typing import Any, TypeVar

from ..auth_utils import IdentityProvider
from ..error_types import ErrorMessages
from ..persistence.message_sink import NullPersistenceSink, PersistenceSink
from ..structured_logging.enhanced_logging_config import get_logger
from .connection_models import Connection, Identity, SessionEntry
from .connection_registry import ConnectionRegistry
from .envelope import build_event
from .matchmaker import Matchmaker
from .outbound import Notifier
from .relay import Relay, epoch_millis
from .session_table import SessionTable
from .waiting_pool import WaitingPool

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def guarded(operation: F) -> F:
    """Log and swallow unexpected failures of a coordinator entry point."""

    @functools.wraps(operation)
    def wrapper(self, connection_id: str | None = None, *args, **kwargs):
        try:
            return operation(self, connection_id, *args, **kwargs)
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: entry points must not raise
            logger.error(
                "Coordinator operation failed",
                operation=operation.__name__,
                connection_id=connection_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return None

    return wrapper  # type: ignore[return-value]


class LifecycleCoordinator:
    """
    Owns chat state for one server process.

    Attributes:
        registry: connection id -> Connection
        pool: searching connections in arrival order
        sessions: symmetric connection id -> (partner id, room id)
    """

    def __init__(
        self,
        notifier: Notifier,
        identity_provider: IdentityProvider,
        persistence: PersistenceSink | None = None,
        clock: Callable[[], int] = epoch_millis,
    ):
        self.notifier = notifier
        self.identity_provider = identity_provider
        self.persistence = persistence or NullPersistenceSink()

        self.registry = ConnectionRegistry()
        self.pool = WaitingPool()
        self.sessions = SessionTable()
        self.matchmaker = Matchmaker(self.pool, self.sessions, notifier)
        self.relay = Relay(self.sessions, notifier, self.persistence, clock=clock)

    # Connection lifecycle

    @guarded
    def connection_opened(self, connection_id: str | None = None) -> Connection:
        """Register a new transport connection in the idle state."""
        connection = self.registry.open(connection_id)
        logger.info("Connection opened", connection_id=connection.connection_id, connections=len(self.registry))
        return connection

    @guarded
    def connection_closed(self, connection_id: str) -> None:
        """
        Handle a transport close.

        Removes the connection from the pool, tears down its session (the
        partner gets exactly one partnerDisconnected) and discards the record.
        Calling this again for the same id is a no-op.
        """
        connection = self.registry.get(connection_id)
        if connection is None:
            return

        self.pool.leave(connection_id)
        self._teardown(connection_id)
        connection.state_machine.disconnect()
        self.registry.remove(connection_id)
        logger.info(
            "Connection closed",
            connection_id=connection_id,
            connections=len(self.registry),
            waiting=len(self.pool),
            active_sessions=len(self.sessions),
        )

    # Inbound events

    @guarded
    def login(self, connection_id: str, token: str | None) -> Identity | None:
        """
        Attach a verified identity to the connection.

        An identity is attached at most once; a repeated login re-sends
        loginSuccess for the existing identity and ignores the new token.
        """
        connection = self.registry.get(connection_id)
        if connection is None:
            return None

        if connection.is_authenticated:
            logger.debug("Repeated login ignored", connection_id=connection_id)
            self._send_login_success(connection.connection_id, connection.identity)
            return connection.identity

        identity = self.identity_provider.verify(token)
        if identity is None:
            logger.info("Login rejected", connection_id=connection_id)
            self._reject(connection_id)
            return None

        self.registry.attach_identity(connection_id, identity)
        logger.info("User logged in", connection_id=connection_id, user_ref=identity.user_ref)
        self._send_login_success(connection_id, identity)
        self.persistence.record_login(identity)
        return identity

    @guarded
    def search(self, connection_id: str) -> str | None:
        """Start looking for a partner; returns the room id when matched."""
        connection = self._require_identity(connection_id, "search")
        if connection is None:
            return None
        return self.matchmaker.search(connection)

    @guarded
    def stop_search(self, connection_id: str) -> bool:
        """Leave the waiting pool; only meaningful while searching."""
        connection = self.registry.get(connection_id)
        if connection is None or not connection.state_machine.is_searching():
            logger.debug("stopSearch ignored", connection_id=connection_id)
            return False

        self.pool.leave(connection_id)
        connection.state_machine.stop_search()
        self.notifier.send(connection_id, build_event("searchStopped"))
        return True

    @guarded
    def send_message(self, connection_id: str, content: object) -> bool:
        """Relay content to the partner; dropped unless matched."""
        connection = self._require_identity(connection_id, "sendMessage")
        if connection is None:
            return False
        if not connection.state_machine.is_matched():
            logger.debug("sendMessage outside a session ignored", connection_id=connection_id, state=connection.state)
            return False
        return self.relay.relay(connection, content) is not None

    @guarded
    def end_chat(self, connection_id: str) -> bool:
        """End the current session; the partner is told, the requester returns to idle."""
        connection = self._require_identity(connection_id, "endChat")
        if connection is None:
            return False
        if not connection.state_machine.is_matched():
            logger.debug("endChat outside a session ignored", connection_id=connection_id, state=connection.state)
            return False

        entry = self._teardown(connection_id)
        connection.state_machine.end_chat()
        logger.info("Chat ended", connection_id=connection_id, room_id=entry.room_id if entry else None)
        return entry is not None

    # Read-only views

    def stats(self) -> dict[str, int]:
        """Counts reported by the health endpoint."""
        return {
            "waiting": len(self.pool),
            "active_sessions": len(self.sessions),
            "connections": len(self.registry),
        }

    # Internals

    def _teardown(self, connection_id: str) -> SessionEntry | None:
        """
        Close the connection's session, if any, and release the partner.

        Both table entries go in one call; the partner returns to idle (it is
        not re-enqueued) and receives partnerDisconnected.
        """
        entry = self.sessions.close(connection_id)
        if entry is None:
            return None

        partner = self.registry.get(entry.partner_id)
        if partner is not None and partner.state_machine.is_matched():
            partner.state_machine.end_chat()
        self.notifier.send(entry.partner_id, build_event("partnerDisconnected", room_id=entry.room_id))
        return entry

    def _require_identity(self, connection_id: str, event_type: str) -> Connection | None:
        """
        Return the connection if it is known and logged in.

        An unauthenticated connection receives `unauthorized` and is dropped.
        """
        connection = self.registry.get(connection_id)
        if connection is None:
            logger.debug("Event for unknown connection ignored", connection_id=connection_id, event_type=event_type)
            return None
        if not connection.is_authenticated:
            logger.info("Unauthenticated event rejected", connection_id=connection_id, event_type=event_type)
            self._reject(connection_id)
            return None
        return connection

    def _reject(self, connection_id: str) -> None:
        """Send `unauthorized`, close the transport and discard all state for the connection."""
        self.notifier.send(
            connection_id, build_event("unauthorized", {"message": ErrorMessages.AUTHENTICATION_REQUIRED})
        )
        self.notifier.drop(connection_id, "unauthorized")
        self.connection_closed(connection_id)

    def _send_login_success(self, connection_id: str, identity: Identity) -> None:
        self.notifier.send(
            connection_id,
            build_event("loginSuccess", {"user_ref": identity.user_ref, "display_name": identity.display_name}),
        )

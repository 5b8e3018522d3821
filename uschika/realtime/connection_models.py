"""
Data models for connection and session tracking.

These records are keyed by connection id everywhere; transport objects
(WebSockets) never appear in coordinator state.
"""

import time
import uuid
from dataclasses import dataclass, field

from .connection_state_machine import ChatConnectionStateMachine

# Fixed namespace so a given e-mail maps to the same user_ref across restarts
USER_REF_NAMESPACE = uuid.UUID("6f1d3c52-8a4e-5b7f-9c21-0d4e6a8b9f13")


def new_connection_id() -> str:
    """Generate a process-unique connection id."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Identity:
    """
    A verified user.

    user_ref is what partners see as the message sender; the e-mail never
    leaves the server.
    """

    user_ref: str
    email: str
    display_name: str

    @classmethod
    def from_email(cls, email: str, display_name: str | None = None) -> "Identity":
        """Build an Identity with a stable, opaque user_ref derived from the e-mail."""
        normalized = email.strip().lower()
        user_ref = str(uuid.uuid5(USER_REF_NAMESPACE, normalized))
        return cls(user_ref=user_ref, email=normalized, display_name=display_name or normalized.split("@")[0])

    def is_same_user(self, other: "Identity | None") -> bool:
        """Two identities are the same user when their e-mails match case-insensitively."""
        if other is None:
            return False
        return self.email.lower() == other.email.lower()


@dataclass
class Connection:
    """One live client connection and its chat state."""

    connection_id: str
    identity: Identity | None = None
    opened_at: float = field(default_factory=time.time)
    state_machine: ChatConnectionStateMachine = field(init=False)

    def __post_init__(self):
        self.state_machine = ChatConnectionStateMachine(self.connection_id)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def state(self) -> str:
        """Current state id (idle, searching, matched, disconnected)."""
        return self.state_machine.current_state.id


@dataclass(frozen=True)
class SessionEntry:
    """One side of an active chat session."""

    partner_id: str
    room_id: str


@dataclass(frozen=True)
class RelayedMessage:
    """A message that was delivered to a partner, handed to persistence afterwards."""

    room_id: str
    sender_ref: str
    content: str
    timestamp: int

"""
Test configuration and fixtures for the USChika test suite.

Environment variables are set before any uschika import so configuration
loads cleanly at module import time.
"""

import os
from collections.abc import Generator
from datetime import timedelta
from typing import Any

import pytest

os.environ.setdefault("USCHIKA_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("USCHIKA_ALLOWED_EMAIL_DOMAIN", "@usc.edu.ph")
os.environ.setdefault("SERVER_PORT", "5000")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")
# The unit suite never talks to a database
os.environ.pop("DATABASE_URL", None)

# Imports must come after environment variables to prevent config loading failures
from uschika.auth_utils import IdentityProvider, create_access_token  # noqa: E402
from uschika.config import reset_config  # noqa: E402
from uschika.persistence.message_sink import NullPersistenceSink  # noqa: E402
from uschika.realtime.lifecycle_coordinator import LifecycleCoordinator  # noqa: E402

TEST_SECRET = os.environ["USCHIKA_JWT_SECRET"]


class RecordingNotifier:
    """Notifier that records outbound events instead of writing to sockets."""

    def __init__(self):
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.dropped: list[tuple[str, str]] = []

    def send(self, connection_id: str, event: dict[str, Any]) -> None:
        self.sent.append((connection_id, event))

    def drop(self, connection_id: str, reason: str) -> None:
        self.dropped.append((connection_id, reason))

    def events_for(self, connection_id: str) -> list[dict[str, Any]]:
        return [event for cid, event in self.sent if cid == connection_id]

    def types_for(self, connection_id: str) -> list[str]:
        return [event["event_type"] for event in self.events_for(connection_id)]

    def clear(self) -> None:
        self.sent.clear()
        self.dropped.clear()


class RecordingSink(NullPersistenceSink):
    """Persistence sink that keeps what it was given."""

    def __init__(self):
        super().__init__()
        self.recorded_logins: list = []
        self.recorded_messages: list = []

    def record_login(self, identity) -> None:
        super().record_login(identity)
        self.recorded_logins.append(identity)

    def record_message(self, message) -> None:
        super().record_message(message)
        self.recorded_messages.append(message)


def make_token(email: str, display_name: str | None = None, expires_delta: timedelta | None = None) -> str:
    """Issue a login token signed with the test secret."""
    data: dict[str, Any] = {"email": email}
    if display_name is not None:
        data["displayName"] = display_name
    return create_access_token(data, TEST_SECRET, expires_delta=expires_delta)


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def identity_provider() -> IdentityProvider:
    return IdentityProvider(secret_key=TEST_SECRET, allowed_email_domain="@usc.edu.ph")


@pytest.fixture
def clock():
    """Deterministic millisecond clock starting at 1_700_000_000_000."""
    state = {"now": 1_700_000_000_000}

    def _clock() -> int:
        state["now"] += 1
        return state["now"]

    return _clock


@pytest.fixture
def coordinator(notifier, identity_provider, sink, clock) -> LifecycleCoordinator:
    return LifecycleCoordinator(notifier=notifier, identity_provider=identity_provider, persistence=sink, clock=clock)


@pytest.fixture
def login(coordinator):
    """Open a connection and log it in; returns the connection id."""

    def _login(email: str, connection_id: str | None = None, display_name: str | None = None) -> str:
        connection = coordinator.connection_opened(connection_id)
        coordinator.login(connection.connection_id, make_token(email, display_name))
        return connection.connection_id

    return _login


@pytest.fixture
def token_for():
    """Factory fixture for signed login tokens."""
    return make_token

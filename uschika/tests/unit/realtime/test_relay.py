"""
Tests for the message relay.
"""

from unittest.mock import Mock

import pytest

from uschika.realtime.connection_models import Connection, Identity
from uschika.realtime.relay import Relay
from uschika.realtime.session_table import SessionTable


@pytest.fixture
def relay_setup():
    sessions = SessionTable()
    notifier = Mock()
    persistence = Mock()
    relay = Relay(sessions, notifier, persistence, clock=lambda: 1_700_000_000_123)

    sender = Connection(connection_id="s")
    sender.identity = Identity.from_email("sender@usc.edu.ph")
    sessions.open("s", "p")
    return relay, sessions, notifier, persistence, sender


class TestRelay:
    def test_relay_delivers_to_partner_with_server_timestamp(self, relay_setup):
        relay, _sessions, notifier, persistence, sender = relay_setup

        message = relay.relay(sender, "hello")

        notifier.send.assert_called_once()
        target, event = notifier.send.call_args.args
        assert target == "p"
        assert event["event_type"] == "receiveMessage"
        assert event["data"] == {
            "sender": sender.identity.user_ref,
            "content": "hello",
            "timestamp": 1_700_000_000_123,
        }
        persistence.record_message.assert_called_once_with(message)
        assert message.room_id == "room-s-p"

    def test_persistence_happens_after_delivery(self, relay_setup):
        relay, _sessions, notifier, persistence, sender = relay_setup
        order = []
        notifier.send.side_effect = lambda *a, **k: order.append("send")
        persistence.record_message.side_effect = lambda *a, **k: order.append("persist")

        relay.relay(sender, "hello")

        assert order == ["send", "persist"]

    def test_relay_without_session_is_noop(self, relay_setup):
        relay, sessions, notifier, persistence, sender = relay_setup
        sessions.close("s")

        assert relay.relay(sender, "hello") is None
        notifier.send.assert_not_called()
        persistence.record_message.assert_not_called()

    @pytest.mark.parametrize("content", ["", None, 42, ["x"]])
    def test_relay_rejects_empty_or_non_text(self, relay_setup, content):
        relay, _sessions, notifier, persistence, sender = relay_setup

        assert relay.relay(sender, content) is None
        notifier.send.assert_not_called()
        persistence.record_message.assert_not_called()

"""
Tests for the per-connection chat state machine.
"""

import pytest
from statemachine.exceptions import TransitionNotAllowed

from uschika.realtime.connection_state_machine import ChatConnectionStateMachine


class TestChatConnectionStateMachine:
    """Test cases for ChatConnectionStateMachine."""

    def test_initial_state_is_idle(self):
        machine = ChatConnectionStateMachine("c1")
        assert machine.is_idle()
        assert machine.current_state.id == "idle"

    def test_search_match_end_cycle(self):
        machine = ChatConnectionStateMachine("c1")

        machine.start_search()
        assert machine.is_searching()

        machine.match(room_id="room-c1-c2")
        assert machine.is_matched()
        assert machine.room_id == "room-c1-c2"

        machine.end_chat()
        assert machine.is_idle()
        assert machine.room_id is None

    def test_match_directly_from_idle(self):
        machine = ChatConnectionStateMachine("c1")
        machine.match(room_id="room-c1-c2")
        assert machine.is_matched()

    def test_stop_search_returns_to_idle(self):
        machine = ChatConnectionStateMachine("c1")
        machine.start_search()
        machine.stop_search()
        assert machine.is_idle()

    @pytest.mark.parametrize("setup", [[], ["start_search"], ["start_search", "match"]])
    def test_disconnect_from_any_state(self, setup):
        machine = ChatConnectionStateMachine("c1")
        for event in setup:
            getattr(machine, event)()

        machine.disconnect()

        assert machine.is_disconnected()

    def test_disconnected_is_final(self):
        machine = ChatConnectionStateMachine("c1")
        machine.disconnect()

        with pytest.raises(TransitionNotAllowed):
            machine.start_search()

    def test_invalid_transitions_rejected(self):
        machine = ChatConnectionStateMachine("c1")

        with pytest.raises(TransitionNotAllowed):
            machine.end_chat()
        with pytest.raises(TransitionNotAllowed):
            machine.stop_search()

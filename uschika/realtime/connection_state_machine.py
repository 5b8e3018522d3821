"""
Per-connection chat state machine.

Every connection moves through idle -> searching -> matched -> idle, and
may drop to disconnected from any state. The coordinator fires these events
in the same synchronous call that mutates the waiting pool or session table,
so the machine and the data structures never disagree.
"""

from statemachine import State, StateMachine

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ChatConnectionStateMachine(StateMachine):
    """
    State machine for one chat connection.

    States:
    - idle: Connected, not searching, not chatting
    - searching: Waiting in the pool for a partner
    - matched: In an active session with exactly one partner
    - disconnected: Transport closed (final)

    Transitions:
    - idle -> searching: start_search
    - idle | searching -> matched: match
    - searching -> idle: stop_search
    - matched -> idle: end_chat (either side ended, or the partner disconnected)
    - any -> disconnected: disconnect
    """

    idle = State("Idle", initial=True)
    searching = State("Searching")
    matched = State("Matched")
    disconnected = State("Disconnected", final=True)

    start_search = idle.to(searching)
    match = idle.to(matched) | searching.to(matched)
    stop_search = searching.to(idle)
    end_chat = matched.to(idle)
    disconnect = idle.to(disconnected) | searching.to(disconnected) | matched.to(disconnected)

    def __init__(self, connection_id: str):
        # Set attributes BEFORE super().__init__() because on_enter_state is called during init
        self.connection_id = connection_id
        self.room_id: str | None = None

        super().__init__()

    def on_enter_state(self, state: State, event=None, **kwargs) -> None:
        """Log every transition."""
        logger.debug(
            "Chat connection state transition",
            connection_id=self.connection_id,
            trigger_event=str(event) if event else "initial",
            to_state=state.id,
        )

    def on_match(self, room_id: str | None = None) -> None:
        self.room_id = room_id

    def on_end_chat(self) -> None:
        self.room_id = None

    def on_disconnect(self) -> None:
        self.room_id = None

    def is_idle(self) -> bool:
        return self.current_state == self.idle

    def is_searching(self) -> bool:
        return self.current_state == self.searching

    def is_matched(self) -> bool:
        return self.current_state == self.matched

    def is_disconnected(self) -> bool:
        return self.current_state == self.disconnected

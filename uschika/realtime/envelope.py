"""
Event envelope for USChika outbound messages.

Every frame the server sends over the WebSocket has the same shape:
- event_type: str
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per-process)
- room_id: optional
- data: dict payload
"""

from __future__ import annotations

import itertools
import json
from datetime import UTC, datetime
from typing import Any

_sequence_counter = itertools.count(1)


def next_sequence_number() -> int:
    """Process-wide monotonic sequence number."""
    return next(_sequence_counter)


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def build_event(
    event_type: str,
    data: dict[str, Any] | None = None,
    *,
    room_id: str | None = None,
    sequence_number: int | None = None,
) -> dict[str, Any]:
    """
    Create a normalized event envelope.

    Args:
        event_type: Type of event (searching, matched, receiveMessage, ...)
        data: Event data payload
        room_id: Optional room id for session-scoped events
        sequence_number: Optional explicit sequence number
    """
    event: dict[str, Any] = {
        "event_type": event_type,
        "timestamp": utc_now_z(),
        "sequence_number": sequence_number if sequence_number is not None else next_sequence_number(),
        "data": data or {},
    }
    if room_id is not None:
        event["room_id"] = room_id
    return event


def encode_event(event: dict[str, Any]) -> str:
    """Serialize an event for a WebSocket text frame."""
    return json.dumps(event, default=str)

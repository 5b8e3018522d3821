"""
Tests for the outbound event envelope.
"""

import json
import re

from uschika.realtime.envelope import build_event, encode_event


def test_build_event_shape():
    event = build_event("matched", {"room_id": "room-a-b"}, room_id="room-a-b", sequence_number=7)

    assert event["event_type"] == "matched"
    assert event["sequence_number"] == 7
    assert event["data"] == {"room_id": "room-a-b"}
    assert event["room_id"] == "room-a-b"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", event["timestamp"])


def test_sequence_numbers_increase():
    first = build_event("searching")
    second = build_event("searching")

    assert second["sequence_number"] > first["sequence_number"]
    assert first["data"] == {}
    assert "room_id" not in first


def test_encode_event_is_json():
    event = build_event("receiveMessage", {"sender": "u", "content": "hi", "timestamp": 1})
    assert json.loads(encode_event(event)) == event

from datetime import datetime, timezone

import pytest

from mnemos.config.events import EventValidationError, MemoryEvent, MemoryEventType


def _payload(**overrides):
    payload = {
        "id": "evt-1",
        "type": "bug_fix",
        "timestamp": datetime(2026, 1, 1, tzinfo=timezone.utc).isoformat(),
        "userId": "u1",
        "sessionId": "s1",
        "data": {"file": "auth.py"},
        "metadata": {"confidence": 0.7, "source": "user_input", "priority": "high", "tags": ["auth"]},
    }
    payload.update(overrides)
    return payload


def test_parse_accepts_camel_case_payload():
    event = MemoryEvent.parse(_payload())
    assert event.user_id == "u1"
    assert event.session_id == "s1"
    assert event.metadata.priority == "high"
    assert event.metadata.tags == ["auth"]


def test_parse_returns_existing_instance():
    event = MemoryEvent.parse(_payload())
    assert MemoryEvent.parse(event) is event


def test_enum_type_is_stored_as_string():
    event = MemoryEvent.parse(_payload(type=MemoryEventType.mode_change))
    assert event.type == "mode_change"


def test_unknown_event_types_are_allowed():
    event = MemoryEvent.parse(_payload(type="deploy_finished"))
    assert event.type == "deploy_finished"


@pytest.mark.parametrize("field", ["id", "type", "timestamp", "metadata"])
def test_missing_required_field_is_rejected(field):
    payload = _payload()
    del payload[field]
    with pytest.raises(EventValidationError) as info:
        MemoryEvent.parse(payload)
    assert field in str(info.value)


def test_invalid_priority_is_rejected():
    payload = _payload(metadata={"confidence": 0.5, "source": "x", "priority": "urgent"})
    with pytest.raises(EventValidationError):
        MemoryEvent.parse(payload)


def test_non_mapping_is_rejected():
    with pytest.raises(EventValidationError):
        MemoryEvent.parse(["not", "an", "event"])


def test_events_are_immutable():
    event = MemoryEvent.parse(_payload())
    with pytest.raises(Exception):
        event.id = "other"


def test_naive_timestamps_are_normalised_to_utc():
    naive = MemoryEvent.parse(_payload(timestamp="2026-01-01T00:00:00"))
    aware = MemoryEvent.parse(_payload(timestamp="2026-01-01T00:00:00Z"))
    assert naive.timestamp.tzinfo is not None
    assert naive.timestamp == aware.timestamp
    assert (aware.timestamp - naive.timestamp).total_seconds() == 0

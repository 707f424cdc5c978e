"""Property-based tests for Pydantic models.

Feature: statesync
"""

import pytest
import structlog
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from statesync.models import PendingChange, Record, SyncState
from statesync.models.record import (
    deserialize_snapshot,
    serialize_snapshot,
    snapshot_from_dict,
    snapshot_to_dict,
)

log = structlog.stdlib.get_logger()

json_payloads = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=20),
    lambda children: st.lists(children, max_size=3)
    | st.dictionaries(st.text(max_size=5), children, max_size=3),
    max_leaves=8,
)


@st.composite
def record_strategy(draw):
    """Generate valid Record instances."""
    return Record(
        id=draw(st.text(min_size=1, max_size=20)),
        payload=draw(json_payloads),
        timestamp=draw(st.integers(min_value=0, max_value=2**53)),
        device_id=draw(st.text(min_size=1, max_size=36)),
    )


@given(record_strategy())
def test_records_are_immutable(record: Record):
    """Property: a record's version fields cannot be rewritten after creation."""
    log.info("test_records_are_immutable", record_id=record.id)

    with pytest.raises(ValidationError):
        record.timestamp = record.timestamp + 1  # type: ignore[misc]


@given(st.lists(record_strategy(), max_size=6, unique_by=lambda r: r.id))
def test_snapshot_serialization_is_canonical(records: list[Record]):
    """Property: equal snapshots serialize to identical bytes and decode back."""
    snapshot = {record.id: record for record in records}
    reversed_snapshot = {record.id: record for record in reversed(records)}

    payload = serialize_snapshot(snapshot)

    assert payload == serialize_snapshot(reversed_snapshot)
    assert deserialize_snapshot(payload) == snapshot


def test_empty_record_id_is_rejected():
    with pytest.raises(ValidationError, match="record id cannot be empty"):
        Record(id="", payload=None, timestamp=0, device_id="d")


def test_negative_timestamp_is_rejected():
    with pytest.raises(ValidationError):
        Record(id="a", payload=None, timestamp=-1, device_id="d")


def test_sort_key_orders_by_timestamp_then_device():
    early = Record(id="a", timestamp=1, device_id="Z")
    late_x = Record(id="a", timestamp=2, device_id="X")
    late_y = Record(id="a", timestamp=2, device_id="Y")

    assert sorted([late_y, early, late_x], key=Record.sort_key) == [early, late_x, late_y]


def test_pending_change_exposes_record_id():
    change = PendingChange(record=Record(id="n1", timestamp=5, device_id="d"), enqueued_at=5)

    assert change.id == "n1"


def test_sync_state_defaults_to_never_synced():
    state = SyncState()

    assert state.base == {}
    assert state.last_sync_timestamp == 0
    assert state.record_count == 0


def test_snapshot_key_must_match_record_id():
    data = snapshot_to_dict({"a": Record(id="a", timestamp=1, device_id="d")})
    data["b"] = data.pop("a")

    with pytest.raises(ValueError, match="does not match"):
        snapshot_from_dict(data)


def test_empty_payload_deserializes_to_empty_snapshot():
    assert deserialize_snapshot(b"") == {}


def test_non_object_payload_is_rejected():
    with pytest.raises(ValueError, match="JSON object"):
        deserialize_snapshot(b"[]")


@given(st.binary(max_size=64))
def test_bytes_payload_survives_snapshot_round_trip(raw: bytes):
    """Property: a bytes payload, valid UTF-8 or not, reads back identical to what was stored."""
    record = Record(id="blob", payload=raw, timestamp=1, device_id="d")

    assert isinstance(record.payload, str)
    assert deserialize_snapshot(serialize_snapshot({"blob": record})) == {"blob": record}


def test_equal_bytes_payloads_produce_equal_records():
    first = Record(id="a", payload=b"\xff\xfe", timestamp=1, device_id="d")
    second = Record(id="a", payload=b"\xff\xfe", timestamp=1, device_id="d")

    assert first == second
    assert first != Record(id="a", payload=b"\xff\xfd", timestamp=1, device_id="d")


def test_tuple_payload_is_stored_as_list():
    record = Record(id="a", payload={"tags": ("x", "y")}, timestamp=1, device_id="d")

    assert record.payload == {"tags": ["x", "y"]}


@pytest.mark.parametrize("payload", [object(), {"nested": object()}, [1, object()]])
def test_non_json_payload_is_rejected(payload):
    with pytest.raises(ValidationError, match="JSON-serializable"):
        Record(id="a", payload=payload, timestamp=1, device_id="d")

"""Property-based tests for diff computation.

Feature: statesync
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from statesync.models.record import Record, Snapshot
from statesync.sync.diff_engine import compute_diff, has_changes

record_ids = st.text(alphabet="abcdefghij0123456789", min_size=1, max_size=6)
device_ids = st.sampled_from(["device-a", "device-b", "device-c"])


@st.composite
def record_strategy(draw: st.DrawFn, record_id: str | None = None) -> Record:
    """Generate a random Record."""
    return Record(
        id=record_id if record_id is not None else draw(record_ids),
        payload=draw(st.one_of(st.none(), st.integers(), st.text(max_size=20))),
        timestamp=draw(st.integers(min_value=0, max_value=10_000)),
        device_id=draw(device_ids),
    )


@st.composite
def snapshot_strategy(draw: st.DrawFn, max_size: int = 8) -> Snapshot:
    """Generate a snapshot keyed by record id."""
    ids = draw(st.lists(record_ids, max_size=max_size, unique=True))
    return {record_id: draw(record_strategy(record_id=record_id)) for record_id in ids}


@given(snapshot=snapshot_strategy())
@settings(max_examples=100)
def test_diff_of_snapshot_with_itself_is_empty(snapshot: Snapshot) -> None:
    """Property: Diff minimality.

    For any snapshot S, compute_diff(S, S) is empty.
    """
    assert compute_diff(snapshot, snapshot) == {}
    assert has_changes(snapshot, snapshot) is False


@given(new_state=snapshot_strategy(), old_state=snapshot_strategy())
@settings(max_examples=100)
def test_diff_contains_exactly_new_or_retimestamped_records(
    new_state: Snapshot, old_state: Snapshot
) -> None:
    """Property: every diff entry is absent from old_state or carries a different timestamp,
    and every such record of new_state is in the diff."""
    diff = compute_diff(new_state, old_state)

    for record_id, record in new_state.items():
        old_record = old_state.get(record_id)
        expected = old_record is None or old_record.timestamp != record.timestamp
        assert (record_id in diff) == expected
        if expected:
            assert diff[record_id] is record

    assert set(diff) <= set(new_state)
    assert has_changes(new_state, old_state) == bool(diff)


@given(new_state=snapshot_strategy(), old_state=snapshot_strategy())
@settings(max_examples=50)
def test_diff_does_not_modify_inputs(new_state: Snapshot, old_state: Snapshot) -> None:
    """compute_diff is pure."""
    new_copy = dict(new_state)
    old_copy = dict(old_state)

    compute_diff(new_state, old_state)

    assert new_state == new_copy
    assert old_state == old_copy


def test_ids_only_in_old_state_are_not_reported() -> None:
    old_state = {"gone": Record(id="gone", payload=1, timestamp=5, device_id="device-a")}

    assert compute_diff({}, old_state) == {}


def test_payload_change_with_same_timestamp_is_not_a_diff() -> None:
    """Timestamps are the version marker; payload is opaque."""
    old = Record(id="a", payload="old", timestamp=10, device_id="device-a")
    new = Record(id="a", payload="new", timestamp=10, device_id="device-a")

    assert compute_diff({"a": new}, {"a": old}) == {}

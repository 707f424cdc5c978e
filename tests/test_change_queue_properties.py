"""Property-based tests for the change queue.

Feature: statesync
"""

import threading

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from statesync.sync.change_queue import ChangeQueue


class FakeClock:
    """Returns increasing millisecond timestamps."""

    def __init__(self, start: int = 1000, step: int = 1) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


def make_queue(device_id: str = "device-a", clock: FakeClock | None = None) -> ChangeQueue:
    return ChangeQueue(device_id_provider=lambda: device_id, clock=clock or FakeClock())


def test_enqueue_stamps_time_and_device() -> None:
    queue = make_queue(device_id="device-z", clock=FakeClock(start=5000))

    change = queue.enqueue("a", {"v": 1})

    assert change.record.id == "a"
    assert change.record.payload == {"v": 1}
    assert change.record.timestamp == 5000
    assert change.enqueued_at == 5000
    assert change.record.device_id == "device-z"
    assert len(queue) == 1


def test_drain_empties_queue_in_arrival_order() -> None:
    queue = make_queue()
    for record_id in ["a", "b", "a", "c"]:
        queue.enqueue(record_id, None)

    drained = queue.drain()

    assert [c.id for c in drained] == ["a", "b", "a", "c"]
    assert len(queue) == 0
    assert queue.drain() == []


def test_duplicate_ids_are_kept_at_enqueue_time() -> None:
    queue = make_queue()
    queue.enqueue("a", 1)
    queue.enqueue("a", 2)

    assert [c.record.payload for c in queue.pending()] == [1, 2]


def test_pending_does_not_drain() -> None:
    queue = make_queue()
    queue.enqueue("a", 1)

    assert len(queue.pending()) == 1
    assert len(queue) == 1


@given(
    before=st.lists(st.text(alphabet="abc", min_size=1, max_size=2), max_size=10),
    during=st.lists(st.text(alphabet="xyz", min_size=1, max_size=2), max_size=10),
)
@settings(max_examples=100)
def test_requeue_puts_drained_changes_ahead_of_new_arrivals(
    before: list[str], during: list[str]
) -> None:
    """Property: queue durability under failure.

    After drain, new arrivals, and requeue, the queue holds every drained
    change followed by every new arrival, each exactly once and in order.
    """
    queue = make_queue()
    for record_id in before:
        queue.enqueue(record_id, None)

    drained = queue.drain()
    arrivals = [queue.enqueue(record_id, None) for record_id in during]
    queue.requeue(drained)

    assert queue.pending() == drained + arrivals


def test_requeue_of_nothing_is_a_noop() -> None:
    queue = make_queue()
    queue.enqueue("a", 1)

    queue.requeue([])

    assert len(queue) == 1


def test_concurrent_enqueue_loses_nothing() -> None:
    queue = make_queue(clock=FakeClock(step=0))
    per_thread = 200

    def producer(prefix: str) -> None:
        for i in range(per_thread):
            queue.enqueue(f"{prefix}-{i}", i)

    threads = [threading.Thread(target=producer, args=(f"t{n}",)) for n in range(4)]
    drained = []
    for thread in threads:
        thread.start()
    while any(thread.is_alive() for thread in threads):
        drained.extend(queue.drain())
    for thread in threads:
        thread.join()
    drained.extend(queue.drain())

    assert len(drained) == 4 * per_thread
    assert len({c.id for c in drained}) == 4 * per_thread
    for n in range(4):
        own = [c.record.payload for c in drained if c.id.startswith(f"t{n}-")]
        assert own == list(range(per_thread))


def test_rejected_payload_is_not_queued() -> None:
    queue = make_queue()

    with pytest.raises(ValidationError):
        queue.enqueue("bad", object())

    assert len(queue) == 0
    queue.enqueue("good", {"v": 1})
    assert [c.id for c in queue.pending()] == ["good"]

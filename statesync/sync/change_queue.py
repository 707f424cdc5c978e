"""Append-only buffer of local changes awaiting synchronization."""

import threading
import time
from collections import deque
from collections.abc import Callable, Sequence
from typing import Any

import structlog
from pydantic import ValidationError

from statesync.models.record import PendingChange, Record

log = structlog.stdlib.get_logger()


def current_time_millis() -> int:
    """Wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


class ChangeQueue:
    """Ordered queue of pending changes.

    ``enqueue`` may be called from any thread while a sync cycle is running;
    the internal lock is only held for the duration of a list operation.
    Deduplication by id is left to the merge step.
    """

    def __init__(
        self,
        device_id_provider: Callable[[], str],
        clock: Callable[[], int] = current_time_millis,
    ) -> None:
        """
        Initialize the change queue.

        Args:
            device_id_provider: Returns the local device identifier
            clock: Returns the current wall-clock time in milliseconds
        """
        self._device_id_provider = device_id_provider
        self._clock = clock
        self._items: deque[PendingChange] = deque()
        self._lock = threading.Lock()

    def enqueue(self, record_id: str, payload: Any) -> PendingChange:
        """
        Append a change stamped with the current time and the local device id.

        Args:
            record_id: Identifier of the record being changed
            payload: New record body

        Returns:
            The queued change

        Raises:
            ValidationError: If the id is empty or the payload is not JSON-serializable;
                nothing is queued in that case
        """
        now = self._clock()
        try:
            change = PendingChange(
                record=Record(
                    id=record_id,
                    payload=payload,
                    timestamp=now,
                    device_id=self._device_id_provider(),
                ),
                enqueued_at=now,
            )
        except ValidationError as e:
            log.warning("change_rejected", record_id=record_id, error=str(e))
            raise

        with self._lock:
            self._items.append(change)
            depth = len(self._items)

        log.debug("change_enqueued", record_id=record_id, timestamp=now, queue_depth=depth)
        return change

    def drain(self) -> list[PendingChange]:
        """Remove and return every pending change in arrival order."""
        with self._lock:
            drained = list(self._items)
            self._items.clear()

        log.debug("queue_drained", count=len(drained))
        return drained

    def requeue(self, changes: Sequence[PendingChange]) -> None:
        """
        Put previously drained changes back at the front of the queue.

        Changes that arrived after the drain stay behind the requeued ones.

        Args:
            changes: Changes returned by an earlier :meth:`drain`, in their original order
        """
        if not changes:
            return

        with self._lock:
            self._items.extendleft(reversed(changes))
            depth = len(self._items)

        log.info("changes_requeued", count=len(changes), queue_depth=depth)

    def pending(self) -> list[PendingChange]:
        """Return a copy of the queue contents without draining."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

"""Diff computation between two snapshots."""

import structlog

from statesync.models.record import Diff, Snapshot

log = structlog.stdlib.get_logger()


def compute_diff(new_state: Snapshot, old_state: Snapshot) -> Diff:
    """
    Compute the records an observer of ``old_state`` needs to reach ``new_state``.

    A record is included when its id is absent from ``old_state`` or when its
    timestamp differs from the entry stored there. Ids present only in
    ``old_state`` are not reported.

    Args:
        new_state: Snapshot to bring the observer up to
        old_state: Snapshot the observer currently holds

    Returns:
        Diff keyed by record id
    """
    diff: Diff = {}

    for record_id, record in new_state.items():
        old_record = old_state.get(record_id)
        if old_record is None or old_record.timestamp != record.timestamp:
            diff[record_id] = record

    log.debug(
        "diff_computed",
        new_state_size=len(new_state),
        old_state_size=len(old_state),
        diff_size=len(diff),
    )
    return diff


def has_changes(new_state: Snapshot, old_state: Snapshot) -> bool:
    """Check whether ``new_state`` holds anything ``old_state`` does not."""
    for record_id, record in new_state.items():
        old_record = old_state.get(record_id)
        if old_record is None or old_record.timestamp != record.timestamp:
            return True
    return False

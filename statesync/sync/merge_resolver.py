"""Conflict resolution between pending local changes and the remote snapshot."""

from collections.abc import Sequence

import structlog

from statesync.errors import MergeError
from statesync.models.record import PendingChange, Record, Snapshot

log = structlog.stdlib.get_logger()


class MergeResolver:
    """Merges pending local changes over the remote snapshot.

    Each pending change is compared against the remote entry for its id:

    - no remote entry, or the remote timestamp is older: the local change wins
    - equal timestamps: the lexicographically greater device id wins
    - remote timestamp newer: the local change is superseded and dropped

    Several accepted changes for the same id within one cycle are ordered by
    the same ``(timestamp, device_id)`` key, so the outcome does not depend on
    the order in which the queue was drained. Fully equal keys keep the later
    arrival.

    ``base`` is accepted for a future causal-conflict check but does not
    currently take part in the decision.
    """

    def merge(
        self,
        base: Snapshot,
        remote: Snapshot,
        pending_changes: Sequence[PendingChange],
    ) -> Snapshot:
        """
        Produce the merged snapshot for one sync cycle.

        Args:
            base: Last successfully synced snapshot (common ancestor)
            remote: Current authoritative snapshot
            pending_changes: Drained queue contents, in arrival order

        Returns:
            New snapshot; ``remote`` is not modified

        Raises:
            MergeError: If a snapshot entry is keyed under a different id than
                its record, or a pending change is not a record
        """
        self._validate_snapshot("base", base)
        self._validate_snapshot("remote", remote)

        accepted: dict[str, Record] = {}
        superseded = 0

        for change in pending_changes:
            record = self._record_of(change)
            remote_version = remote.get(record.id)

            if not self._local_wins(record, remote_version):
                superseded += 1
                log.debug(
                    "pending_change_superseded",
                    record_id=record.id,
                    local_timestamp=record.timestamp,
                    remote_timestamp=remote_version.timestamp if remote_version else None,
                )
                continue

            current = accepted.get(record.id)
            if current is None or record.sort_key() >= current.sort_key():
                accepted[record.id] = record

        merged: Snapshot = dict(remote)
        merged.update(accepted)

        log.info(
            "merge_completed",
            remote_records=len(remote),
            pending_changes=len(pending_changes),
            accepted=len(accepted),
            superseded=superseded,
            merged_records=len(merged),
        )
        return merged

    @staticmethod
    def _local_wins(local: Record, remote_version: Record | None) -> bool:
        if remote_version is None or remote_version.timestamp < local.timestamp:
            return True
        if remote_version.timestamp == local.timestamp:
            return local.device_id > remote_version.device_id
        return False

    @staticmethod
    def _record_of(change: PendingChange) -> Record:
        record = getattr(change, "record", None)
        if not isinstance(record, Record):
            raise MergeError(f"pending change does not carry a record: {change!r}")
        return record

    @staticmethod
    def _validate_snapshot(name: str, snapshot: Snapshot) -> None:
        for record_id, record in snapshot.items():
            if not isinstance(record, Record):
                raise MergeError(f"{name} snapshot entry '{record_id}' is not a record")
            if record.id != record_id:
                raise MergeError(
                    f"{name} snapshot key '{record_id}' does not match record id '{record.id}'"
                )

"""Synchronization coordinator for orchestrating one sync cycle."""

import threading
import uuid
from collections.abc import Callable
from datetime import datetime

import structlog

from statesync.errors import MergeError, SyncError
from statesync.models.record import PendingChange, Snapshot
from statesync.storage.local_store import BaselineStore
from statesync.storage.remote_store import RemoteStore
from statesync.sync.change_queue import ChangeQueue, current_time_millis
from statesync.sync.diff_engine import compute_diff
from statesync.sync.merge_resolver import MergeResolver
from statesync.sync.models import CyclePhase, SyncReport

log = structlog.stdlib.get_logger()


class SyncCoordinator:
    """Runs sync cycles between the local change queue and the remote store."""

    def __init__(
        self,
        change_queue: ChangeQueue,
        remote_store: RemoteStore,
        baseline_store: BaselineStore,
        merge_resolver: MergeResolver | None = None,
        clock: Callable[[], int] = current_time_millis,
    ):
        """
        Initialize sync coordinator.

        Args:
            change_queue: Queue of pending local changes
            remote_store: Remote authoritative store
            baseline_store: Local store holding the last committed snapshot
            merge_resolver: Optional resolver (default MergeResolver)
            clock: Returns wall-clock millis, used for last_sync_timestamp
        """
        self._queue: ChangeQueue = change_queue
        self._remote_store: RemoteStore = remote_store
        self._baseline_store: BaselineStore = baseline_store
        self._merge_resolver: MergeResolver = merge_resolver or MergeResolver()
        self._clock = clock
        self._cycle_lock = threading.Lock()

        log.info("sync_coordinator_initialized", remote_store=type(remote_store).__name__)

    @property
    def is_syncing(self) -> bool:
        return self._cycle_lock.locked()

    @property
    def last_sync_timestamp(self) -> int:
        return self._baseline_store.get_last_sync_timestamp()

    def run_cycle(self) -> SyncReport:
        """
        Perform one sync cycle: fetch, merge, diff, upload, commit.

        Errors never escape this method. A failed cycle leaves the baseline
        untouched and returns drained changes to the queue; the failure is
        logged and listed in the report.

        Returns:
            SyncReport with cycle results
        """
        cycle_id = uuid.uuid4().hex[:12]
        start_time = datetime.now()

        if not self._cycle_lock.acquire(blocking=False):
            log.info("sync_cycle_skipped_busy", cycle_id=cycle_id)
            return SyncReport(
                cycle_id=cycle_id,
                phase=CyclePhase.SKIPPED_BUSY,
                start_time=start_time,
                end_time=datetime.now(),
            )

        try:
            with structlog.contextvars.bound_contextvars(cycle_id=cycle_id):
                return self._run_locked(cycle_id, start_time)
        finally:
            self._cycle_lock.release()

    def _run_locked(self, cycle_id: str, start_time: datetime) -> SyncReport:
        log.info("sync_cycle_started", queue_depth=len(self._queue))

        phase = CyclePhase.FETCH
        drained: list[PendingChange] = []
        report_fields: dict[str, int | bool] = {}

        try:
            remote = self._remote_store.fetch_remote_state()

            phase = CyclePhase.MERGE
            base = self._baseline_store.get_last_known_state()
            drained = self._queue.drain()
            report_fields["changes_drained"] = len(drained)
            merged = self._merge(base, remote, drained)
            report_fields["records_merged"] = len(merged)

            phase = CyclePhase.DIFF
            diff = compute_diff(merged, remote)

            if diff:
                phase = CyclePhase.UPLOAD
                report_fields["parts_uploaded"] = self._remote_store.upload_diff(diff)
                report_fields["records_uploaded"] = len(diff)
            else:
                phase = CyclePhase.SKIP
                log.info("upload_skipped_no_changes")
                report_fields["upload_skipped"] = True

            phase = CyclePhase.COMMIT
            self._commit(merged)

        except Exception as e:
            return self._fail(cycle_id, start_time, phase, drained, e, report_fields)

        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()

        report = SyncReport(
            cycle_id=cycle_id,
            phase=CyclePhase.COMMIT,
            duration_seconds=duration,
            start_time=start_time,
            end_time=end_time,
            **report_fields,
        )

        log.info(
            "sync_cycle_completed",
            changes_drained=report.changes_drained,
            records_uploaded=report.records_uploaded,
            parts_uploaded=report.parts_uploaded,
            upload_skipped=report.upload_skipped,
            duration_seconds=duration,
        )
        return report

    def _merge(self, base: Snapshot, remote: Snapshot, drained: list[PendingChange]) -> Snapshot:
        try:
            return self._merge_resolver.merge(base, remote, drained)
        except MergeError:
            raise
        except Exception as e:
            raise MergeError(f"Merge failed on malformed input: {e}") from e

    def _commit(self, merged: Snapshot) -> None:
        last_sync_timestamp = self._clock()
        self._baseline_store.save_last_known_state(merged, last_sync_timestamp)
        log.info(
            "baseline_committed",
            record_count=len(merged),
            last_sync_timestamp=last_sync_timestamp,
        )

    def _fail(
        self,
        cycle_id: str,
        start_time: datetime,
        phase: CyclePhase,
        drained: list[PendingChange],
        error: Exception,
        report_fields: dict[str, int | bool],
    ) -> SyncReport:
        # Drained changes go back in front of anything enqueued meanwhile.
        self._queue.requeue(drained)

        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()

        if isinstance(error, SyncError):
            error_msg = f"Sync failed in {phase.value}: {error}"
        else:
            error_msg = f"Sync failed in {phase.value}: {type(error).__name__}: {error}"

        log.error(
            "sync_cycle_failed",
            phase=phase.value,
            error=str(error),
            error_type=type(error).__name__,
            changes_requeued=len(drained),
            duration_seconds=duration,
        )

        return SyncReport(
            cycle_id=cycle_id,
            phase=CyclePhase.FAILED,
            failed_phase=phase,
            changes_drained=int(report_fields.get("changes_drained", 0)),
            changes_requeued=len(drained),
            start_time=start_time,
            end_time=end_time,
            duration_seconds=duration,
            errors=[error_msg],
        )

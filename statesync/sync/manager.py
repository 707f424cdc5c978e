"""Owner of one device's sync engine: queue, scheduler, and coordinator."""

from typing import Any

import structlog

from statesync.models.config import AppConfig, SyncConfig
from statesync.models.record import PendingChange
from statesync.providers import get_baseline_store, get_identity_store, get_remote_store
from statesync.storage.local_store import BaselineStore, IdentityStore
from statesync.storage.remote_store import RemoteStore
from statesync.sync.change_queue import ChangeQueue
from statesync.sync.models import SyncReport
from statesync.sync.scheduler import SyncScheduler, TimerFactory, thread_timer
from statesync.sync.sync_coordinator import SyncCoordinator

log = structlog.stdlib.get_logger()


class SyncManager:
    """Entry point for callers producing local changes.

    ``queue_change`` records a change and arms the debounce timer; the cycle
    itself runs on the timer thread. Construct one instance per device and
    pass it to the code that needs it.
    """

    def __init__(
        self,
        remote_store: RemoteStore,
        identity_store: IdentityStore,
        baseline_store: BaselineStore,
        sync_config: SyncConfig | None = None,
        timer_factory: TimerFactory = thread_timer,
    ):
        """
        Initialize the manager.

        Args:
            remote_store: Remote authoritative store
            identity_store: Supplies the local device id
            baseline_store: Holds the last committed snapshot
            sync_config: Debounce and part-size settings
            timer_factory: Timer used by the scheduler
        """
        self.sync_config: SyncConfig = sync_config or SyncConfig()
        self.identity_store = identity_store
        self.queue = ChangeQueue(device_id_provider=identity_store.get_device_id)
        self.coordinator = SyncCoordinator(
            change_queue=self.queue,
            remote_store=remote_store,
            baseline_store=baseline_store,
        )
        self.scheduler = SyncScheduler(
            run_cycle=self.coordinator.run_cycle,
            debounce_ms=self.sync_config.debounce_ms,
            timer_factory=timer_factory,
        )
        log.info(
            "sync_manager_initialized",
            debounce_ms=self.sync_config.debounce_ms,
            part_size_bytes=self.sync_config.part_size_bytes,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "SyncManager":
        """Build a manager with stores selected by the provider module."""
        return cls(
            remote_store=get_remote_store(config.remote_store, config.sync),
            identity_store=get_identity_store(config.local_store),
            baseline_store=get_baseline_store(config.local_store),
            sync_config=config.sync,
        )

    @property
    def device_id(self) -> str:
        return self.identity_store.get_device_id()

    @property
    def last_sync_timestamp(self) -> int:
        return self.coordinator.last_sync_timestamp

    def queue_change(self, record_id: str, payload: Any) -> PendingChange:
        """Record a local change and schedule a sync.

        Raises:
            ValidationError: If the payload is not JSON-serializable. The change
                is not queued and no sync is scheduled.
        """
        change = self.queue.enqueue(record_id, payload)
        self.scheduler.notify()
        return change

    def sync_now(self) -> SyncReport | None:
        """Run a cycle immediately; returns None if one is already running."""
        return self.scheduler.run_now()

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        return self.scheduler.wait_until_idle(timeout)

    def shutdown(self) -> None:
        """Stop scheduling; pending changes stay queued."""
        self.scheduler.shutdown()
        log.info("sync_manager_shutdown", pending_changes=len(self.queue))

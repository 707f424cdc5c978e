"""Synchronization components: queueing, scheduling, merging, and cycle orchestration."""

from statesync.sync.change_queue import ChangeQueue
from statesync.sync.diff_engine import compute_diff, has_changes
from statesync.sync.manager import SyncManager
from statesync.sync.merge_resolver import MergeResolver
from statesync.sync.models import CyclePhase, SyncReport
from statesync.sync.scheduler import SchedulerState, SyncScheduler
from statesync.sync.sync_coordinator import SyncCoordinator

__all__ = [
    "ChangeQueue",
    "CyclePhase",
    "MergeResolver",
    "SchedulerState",
    "SyncCoordinator",
    "SyncManager",
    "SyncReport",
    "SyncScheduler",
    "compute_diff",
    "has_changes",
]

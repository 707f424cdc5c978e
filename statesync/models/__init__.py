"""Data models for the statesync engine."""

from statesync.models.config import (
    AppConfig,
    LocalStoreConfig,
    LoggingConfig,
    RemoteStoreConfig,
    SyncConfig,
)
from statesync.models.record import (
    Diff,
    PendingChange,
    Record,
    Snapshot,
    SyncState,
    deserialize_snapshot,
    serialize_snapshot,
    snapshot_from_dict,
    snapshot_to_dict,
)

__all__ = [
    "Record",
    "PendingChange",
    "Snapshot",
    "Diff",
    "SyncState",
    "AppConfig",
    "SyncConfig",
    "RemoteStoreConfig",
    "LocalStoreConfig",
    "LoggingConfig",
    "snapshot_to_dict",
    "snapshot_from_dict",
    "serialize_snapshot",
    "deserialize_snapshot",
]

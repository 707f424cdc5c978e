"""Remote and local stores the sync engine talks to."""

from statesync.storage.http_store import HttpRemoteStore
from statesync.storage.local_store import (
    BaselineStore,
    FileBaselineStore,
    FileIdentityStore,
    IdentityStore,
    MemoryBaselineStore,
    MemoryIdentityStore,
)
from statesync.storage.remote_store import FileSystemRemoteStore, InMemoryRemoteStore, RemoteStore

__all__ = [
    "BaselineStore",
    "FileBaselineStore",
    "FileIdentityStore",
    "FileSystemRemoteStore",
    "HttpRemoteStore",
    "IdentityStore",
    "InMemoryRemoteStore",
    "MemoryBaselineStore",
    "MemoryIdentityStore",
    "RemoteStore",
]

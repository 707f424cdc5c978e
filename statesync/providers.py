"""Centralized provider module for remote and local store implementations.

This module provides factory functions that build stores from configuration.
Developers can modify these functions to swap implementations without changing
other code.

Default implementations:
- Remote store: InMemoryRemoteStore (no external services required)
- Local stores: in-memory unless a state directory is configured
"""

import structlog

from statesync.models.config import LocalStoreConfig, RemoteStoreConfig, SyncConfig
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
from statesync.transfer.chunker import TransferChunker

log = structlog.stdlib.get_logger()


def get_remote_store(config: RemoteStoreConfig, sync_config: SyncConfig | None = None) -> RemoteStore:
    """Get the configured remote store implementation.

    Developers: Add a branch here to support another blob store, e.g. an
    S3 bucket via boto3, returning a RemoteStore subclass.

    Args:
        config: Remote store configuration
        sync_config: Sync configuration supplying the transfer part size

    Returns:
        RemoteStore instance

    Raises:
        ValueError: If required settings for the chosen type are missing
        RuntimeError: If the store cannot be initialized
    """
    part_size = (sync_config or SyncConfig()).part_size_bytes
    chunker = TransferChunker(part_size=part_size)

    if config.type == "filesystem" and not config.root_directory:
        error_msg = "remote_store.root_directory is required for the filesystem store"
        log.error("get_remote_store_failed", error=error_msg)
        raise ValueError(error_msg)

    if config.type == "http" and config.base_url is None:
        error_msg = "remote_store.base_url is required for the http store"
        log.error("get_remote_store_failed", error=error_msg)
        raise ValueError(error_msg)

    try:
        log.info("initializing_remote_store", store_type=config.type, part_size=part_size)

        if config.type == "filesystem":
            store: RemoteStore = FileSystemRemoteStore(config.root_directory, chunker=chunker)
        elif config.type == "http":
            store = HttpRemoteStore(
                str(config.base_url),
                timeout_seconds=config.timeout_seconds,
                chunker=chunker,
            )
        else:
            store = InMemoryRemoteStore(chunker=chunker)

        log.info("remote_store_initialized_successfully", store_type=config.type)
        return store

    except Exception as e:
        error_msg = f"Failed to initialize remote store of type '{config.type}': {e}"
        log.error(
            "get_remote_store_failed",
            store_type=config.type,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise RuntimeError(error_msg) from e


def get_identity_store(config: LocalStoreConfig) -> IdentityStore:
    """Get the device identity store; file-backed when a state directory is set."""
    if config.state_directory:
        return FileIdentityStore(config.state_directory)
    log.warning("identity_store_in_memory", reason="no state_directory configured")
    return MemoryIdentityStore()


def get_baseline_store(config: LocalStoreConfig) -> BaselineStore:
    """Get the baseline store; file-backed when a state directory is set."""
    if config.state_directory:
        return FileBaselineStore(config.state_directory)
    log.warning("baseline_store_in_memory", reason="no state_directory configured")
    return MemoryBaselineStore()

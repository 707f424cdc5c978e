"""Local persistence of device identity and the last synced baseline."""

import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Protocol

import structlog

from statesync.models.record import Snapshot, SyncState

log = structlog.stdlib.get_logger()


class IdentityStore(Protocol):
    def get_device_id(self) -> str: ...


class BaselineStore(Protocol):
    def get_last_known_state(self) -> Snapshot: ...

    def get_last_sync_timestamp(self) -> int: ...

    def save_last_known_state(self, snapshot: Snapshot, last_sync_timestamp: int) -> None: ...


def _write_text_atomic(path: Path, text: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileIdentityStore:
    """Device identifier generated once and kept in a file."""

    DEVICE_ID_FILE: str = "device_id"

    def __init__(self, state_directory: str | Path):
        self._path = Path(state_directory) / self.DEVICE_ID_FILE
        self._device_id: str | None = None
        self._lock = threading.Lock()

    def get_device_id(self) -> str:
        """
        Return the device identifier, creating and persisting it on first use.

        Raises:
            RuntimeError: If the identifier cannot be read or written
        """
        with self._lock:
            if self._device_id is not None:
                return self._device_id

            try:
                if self._path.exists():
                    stored = self._path.read_text(encoding="utf-8").strip()
                    if stored:
                        self._device_id = stored
                        log.info("device_id_loaded", device_id=stored)
                        return stored

                device_id = str(uuid.uuid4())
                self._path.parent.mkdir(parents=True, exist_ok=True)
                _write_text_atomic(self._path, device_id)
            except OSError as e:
                log.error("device_id_unavailable", path=str(self._path), error=str(e))
                raise RuntimeError(f"Failed to load device id: {e}") from e

            self._device_id = device_id
            log.info("device_id_generated", device_id=device_id)
            return device_id


class MemoryIdentityStore:
    """Device identifier that lives for the lifetime of the process."""

    def __init__(self, device_id: str | None = None):
        self._device_id = device_id or str(uuid.uuid4())

    def get_device_id(self) -> str:
        return self._device_id


class MemoryBaselineStore:
    """Baseline kept in process memory."""

    def __init__(self, initial_state: SyncState | None = None):
        self._state = initial_state or SyncState()
        self._lock = threading.Lock()

    def get_last_known_state(self) -> Snapshot:
        with self._lock:
            return dict(self._state.base)

    def get_last_sync_timestamp(self) -> int:
        with self._lock:
            return self._state.last_sync_timestamp

    def save_last_known_state(self, snapshot: Snapshot, last_sync_timestamp: int) -> None:
        with self._lock:
            self._state = SyncState(base=dict(snapshot), last_sync_timestamp=last_sync_timestamp)


class FileBaselineStore:
    """Baseline persisted as a JSON file.

    The file holds a serialized :class:`SyncState`. A missing file means the
    device has never completed a sync.
    """

    BASELINE_FILE: str = "baseline.json"

    def __init__(self, state_directory: str | Path):
        """
        Initialize the baseline store.

        Args:
            state_directory: Directory in which the baseline file is kept
        """
        self._path = Path(state_directory) / self.BASELINE_FILE
        self._lock = threading.Lock()
        log.info("baseline_store_initialized", path=str(self._path))

    def load_sync_state(self) -> SyncState:
        """
        Load the committed sync state.

        Returns:
            Stored SyncState, or an empty one if nothing was saved yet

        Raises:
            RuntimeError: If the file exists but cannot be read or parsed
        """
        with self._lock:
            if not self._path.exists():
                log.info("no_baseline_found", path=str(self._path))
                return SyncState()

            try:
                sync_state = SyncState.model_validate_json(self._path.read_text(encoding="utf-8"))
            except Exception as e:
                log.error("failed_to_load_baseline", path=str(self._path), error=str(e))
                raise RuntimeError(f"Failed to load baseline: {e}") from e

        log.debug(
            "baseline_loaded",
            record_count=sync_state.record_count,
            last_sync_timestamp=sync_state.last_sync_timestamp,
        )
        return sync_state

    def get_last_known_state(self) -> Snapshot:
        return self.load_sync_state().base

    def get_last_sync_timestamp(self) -> int:
        return self.load_sync_state().last_sync_timestamp

    def save_last_known_state(self, snapshot: Snapshot, last_sync_timestamp: int) -> None:
        """
        Persist a new baseline.

        Args:
            snapshot: Snapshot committed by a successful cycle
            last_sync_timestamp: Wall-clock millis of that cycle

        Raises:
            RuntimeError: If the file cannot be written
        """
        sync_state = SyncState(base=dict(snapshot), last_sync_timestamp=last_sync_timestamp)

        log.info(
            "saving_baseline",
            record_count=sync_state.record_count,
            last_sync_timestamp=last_sync_timestamp,
        )

        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                _write_text_atomic(self._path, sync_state.model_dump_json())
            except OSError as e:
                log.error("failed_to_save_baseline", path=str(self._path), error=str(e))
                raise RuntimeError(f"Failed to save baseline: {e}") from e

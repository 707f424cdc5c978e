"""Remote authoritative store implementations.

A remote store exposes two operations to the sync coordinator:

- ``fetch_remote_state()`` returns the current snapshot
- ``upload_diff(diff)`` delivers a diff, split into parts by the
  :class:`~statesync.transfer.chunker.TransferChunker` when the serialized
  payload exceeds the part size

Subclasses implement the raw blob operations (``_fetch``, ``_put_single``,
``_put_part``, ``_complete_multipart``). Uploads must be idempotent: applying
the same diff twice leaves the store unchanged.
"""

import os
import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from statesync.errors import FetchError, UploadError
from statesync.models.record import Diff, Snapshot, deserialize_snapshot, serialize_snapshot
from statesync.transfer.chunker import TransferChunker, TransferPart, reassemble

log = structlog.stdlib.get_logger()


class RemoteStore(ABC):
    """Base class handling error wrapping and single/multipart dispatch."""

    def __init__(self, chunker: TransferChunker | None = None) -> None:
        self._chunker: TransferChunker = chunker or TransferChunker()

    @property
    def chunker(self) -> TransferChunker:
        return self._chunker

    def fetch_remote_state(self) -> Snapshot:
        """
        Retrieve the current remote snapshot.

        Returns:
            Snapshot keyed by record id

        Raises:
            FetchError: If the store is unreachable or returns malformed data
        """
        log.info("fetching_remote_state", store=type(self).__name__)

        try:
            snapshot = self._fetch()
        except FetchError:
            raise
        except Exception as e:
            log.error("fetch_remote_state_failed", error=str(e), error_type=type(e).__name__)
            raise FetchError(f"Failed to fetch remote state: {e}") from e

        log.info("remote_state_fetched", record_count=len(snapshot))
        return snapshot

    def upload_diff(self, diff: Diff) -> int:
        """
        Upload a diff, in parts when it exceeds the chunker's part size.

        Args:
            diff: Records to apply on the remote side

        Returns:
            Number of parts sent (0 for an empty diff)

        Raises:
            UploadError: If any part of the transfer fails
        """
        if not diff:
            log.debug("upload_skipped_empty_diff")
            return 0

        parts: list[TransferPart] = []
        try:
            payload = self._chunker.serialize(diff)
            parts = self._chunker.chunk(payload)

            log.info(
                "uploading_diff",
                record_count=len(diff),
                payload_size=len(payload),
                part_count=len(parts),
            )

            if len(parts) == 1:
                self._put_single(payload)
            else:
                self._put_multipart(parts)
        except UploadError:
            raise
        except Exception as e:
            log.error(
                "upload_diff_failed",
                record_count=len(diff),
                part_count=len(parts),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise UploadError(f"Failed to upload diff: {e}") from e

        log.info("diff_uploaded", record_count=len(diff), part_count=len(parts))
        return len(parts)

    def _put_multipart(self, parts: list[TransferPart]) -> None:
        upload_id = parts[0].upload_id
        try:
            for part in parts:
                self._put_part(part)
            self._complete_multipart(upload_id, len(parts))
        except Exception:
            self._abort_multipart(upload_id)
            raise

    @abstractmethod
    def _fetch(self) -> Snapshot:
        pass

    @abstractmethod
    def _put_single(self, payload: bytes) -> None:
        pass

    @abstractmethod
    def _put_part(self, part: TransferPart) -> None:
        pass

    @abstractmethod
    def _complete_multipart(self, upload_id: str, total: int) -> None:
        pass

    def _abort_multipart(self, upload_id: str) -> None:
        """Discard staged parts. Default is a no-op."""
        log.warning("multipart_upload_aborted", upload_id=upload_id)


class InMemoryRemoteStore(RemoteStore):
    """Remote store held in process memory."""

    def __init__(
        self,
        initial_state: Snapshot | None = None,
        chunker: TransferChunker | None = None,
    ) -> None:
        super().__init__(chunker)
        self._state: Snapshot = dict(initial_state or {})
        self._staged: dict[str, list[TransferPart]] = {}
        self._lock = threading.Lock()
        self.upload_count: int = 0

    def snapshot(self) -> Snapshot:
        """Return a copy of the stored state."""
        with self._lock:
            return dict(self._state)

    def apply(self, diff: Diff) -> None:
        """Write records directly, as another device's completed sync would."""
        with self._lock:
            self._state.update(diff)

    def _fetch(self) -> Snapshot:
        with self._lock:
            return dict(self._state)

    def _put_single(self, payload: bytes) -> None:
        diff = deserialize_snapshot(payload)
        with self._lock:
            self._state.update(diff)
            self.upload_count += 1

    def _put_part(self, part: TransferPart) -> None:
        with self._lock:
            self._staged.setdefault(part.upload_id, []).append(part)

    def _complete_multipart(self, upload_id: str, total: int) -> None:
        with self._lock:
            parts = sorted(self._staged.pop(upload_id, []), key=lambda p: p.index)
        if len(parts) != total:
            raise UploadError(f"upload {upload_id} completed with {len(parts)} of {total} parts")
        self._put_single(reassemble(parts))

    def _abort_multipart(self, upload_id: str) -> None:
        with self._lock:
            self._staged.pop(upload_id, None)
        super()._abort_multipart(upload_id)


class FileSystemRemoteStore(RemoteStore):
    """Remote store backed by a directory of blobs.

    Layout::

        <root>/state.json                  current snapshot
        <root>/uploads/<upload_id>/part-N  staged multipart parts
    """

    STATE_BLOB: str = "state.json"
    UPLOADS_DIR: str = "uploads"

    def __init__(self, root_directory: str | Path, chunker: TransferChunker | None = None) -> None:
        super().__init__(chunker)
        self._root = Path(root_directory)
        self._root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        log.info("filesystem_remote_store_initialized", root_directory=str(self._root))

    @property
    def state_path(self) -> Path:
        return self._root / self.STATE_BLOB

    def _upload_dir(self, upload_id: str) -> Path:
        return self._root / self.UPLOADS_DIR / upload_id

    def _fetch(self) -> Snapshot:
        if not self.state_path.exists():
            return {}
        return deserialize_snapshot(self.state_path.read_bytes())

    def _put_single(self, payload: bytes) -> None:
        diff = deserialize_snapshot(payload)
        with self._lock:
            state = self._fetch()
            state.update(diff)
            self._write_atomic(self.state_path, serialize_snapshot(state))

    def _put_part(self, part: TransferPart) -> None:
        upload_dir = self._upload_dir(part.upload_id)
        upload_dir.mkdir(parents=True, exist_ok=True)
        self._write_atomic(upload_dir / f"part-{part.index:05d}", part.model_dump_json().encode("utf-8"))

    def _complete_multipart(self, upload_id: str, total: int) -> None:
        upload_dir = self._upload_dir(upload_id)
        part_files = sorted(upload_dir.glob("part-*"))
        if len(part_files) != total:
            raise UploadError(f"upload {upload_id} completed with {len(part_files)} of {total} parts")

        parts = [TransferPart.model_validate_json(path.read_bytes()) for path in part_files]
        self._put_single(reassemble(parts))
        shutil.rmtree(upload_dir, ignore_errors=True)

    def _abort_multipart(self, upload_id: str) -> None:
        shutil.rmtree(self._upload_dir(upload_id), ignore_errors=True)
        super()._abort_multipart(upload_id)

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

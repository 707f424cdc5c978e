"""Remote store reachable over HTTP.

Endpoints, relative to ``base_url``:

- ``GET  /state``                          current snapshot as JSON
- ``PUT  /diff``                           single-part diff upload
- ``POST /uploads``                        start a multipart upload, returns ``{"upload_id": ...}``
- ``PUT  /uploads/{id}/parts/{index}``     upload one part (raw bytes)
- ``POST /uploads/{id}/complete``          finish, body ``{"total": n}``
- ``DELETE /uploads/{id}``                 abort
"""

import requests
import structlog
from requests.exceptions import ConnectionError, HTTPError, RequestException, Timeout

from statesync.models.record import Snapshot, snapshot_from_dict
from statesync.storage.remote_store import RemoteStore
from statesync.transfer.chunker import TransferChunker, TransferPart
from statesync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()

JSON_CONTENT_TYPE = "application/json"
OCTET_CONTENT_TYPE = "application/octet-stream"
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_retryable(error: Exception) -> bool:
    """Whether a failed request is worth another attempt."""
    if isinstance(error, HTTPError):
        return error.response is not None and error.response.status_code in RETRYABLE_STATUS_CODES
    return True


class HttpRemoteStore(RemoteStore):
    """Blob store client built on a ``requests.Session``."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        chunker: TransferChunker | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """
        Initialize the HTTP remote store.

        Args:
            base_url: Root URL of the blob store API
            timeout_seconds: Per-request timeout passed to requests
            chunker: Chunker used for large diffs
            session: Optional preconfigured session
        """
        super().__init__(chunker)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        # Multipart ids are assigned by the server; map local upload ids onto them.
        self._server_upload_ids: dict[str, str] = {}
        log.info("http_remote_store_initialized", base_url=self._base_url, timeout=timeout_seconds)

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    @exponential_backoff_retry(
        max_retries=3,
        base_delay=1.0,
        max_delay=30.0,
        exceptions=(ConnectionError, Timeout, HTTPError),
        retry_if=is_retryable,
    )
    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        response = self._session.request(method, self._url(path), timeout=self._timeout, **kwargs)
        response.raise_for_status()
        return response

    def _fetch(self) -> Snapshot:
        response = self._request("GET", "state")
        if not response.content:
            return {}
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"remote state must be a JSON object, got {type(data).__name__}")
        return snapshot_from_dict(data)

    def _put_single(self, payload: bytes) -> None:
        self._request("PUT", "diff", data=payload, headers={"Content-Type": JSON_CONTENT_TYPE})

    def _put_part(self, part: TransferPart) -> None:
        server_id = self._server_upload_ids.get(part.upload_id)
        if server_id is None:
            response = self._request("POST", "uploads", json={"total": part.total})
            server_id = str(response.json()["upload_id"])
            self._server_upload_ids[part.upload_id] = server_id
            log.debug("multipart_upload_started", upload_id=part.upload_id, server_upload_id=server_id)

        self._request(
            "PUT",
            f"uploads/{server_id}/parts/{part.index}",
            data=part.data,
            headers={
                "Content-Type": OCTET_CONTENT_TYPE,
                "X-Part-Total": str(part.total),
                "X-Part-Checksum": part.checksum,
            },
        )

    def _complete_multipart(self, upload_id: str, total: int) -> None:
        server_id = self._server_upload_ids.pop(upload_id)
        self._request("POST", f"uploads/{server_id}/complete", json={"total": total})

    def _abort_multipart(self, upload_id: str) -> None:
        server_id = self._server_upload_ids.pop(upload_id, None)
        if server_id is not None:
            try:
                self._request("DELETE", f"uploads/{server_id}")
            except RequestException as e:
                log.warning("multipart_abort_failed", upload_id=upload_id, error=str(e))
        super()._abort_multipart(upload_id)

"""Pydantic models for versioned records, pending changes, and sync state."""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic_core import PydanticSerializationError, to_jsonable_python


class Record(BaseModel):
    """A versioned record identified by ``id``.

    Records are immutable: the timestamp is assigned when the change is queued
    and never rewritten afterwards.

    The payload is stored as a JSON value. Anything pydantic can encode is
    converted on construction (bytes become base64 text, tuples become
    lists), so a record reads back from the remote exactly as it was
    committed locally. Values JSON cannot represent are rejected.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "note-42",
                "payload": {"title": "Groceries", "body": "eggs, milk"},
                "timestamp": 1718000000000,
                "device_id": "0b8e6f1c-4a1e-4d4b-9f5e-2d7c1a9e8b10",
            }
        },
    )

    id: str = Field(default=..., description="Unique record identifier")
    payload: JsonValue = Field(default=None, description="Opaque record body as a JSON value")
    timestamp: int = Field(default=..., ge=0, description="Wall-clock millis when the change was queued")
    device_id: str = Field(default=..., description="Identifier of the device that produced the record")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Reject empty record identifiers."""
        if not v:
            raise ValueError("record id cannot be empty")
        return v

    @field_validator("payload", mode="before")
    @classmethod
    def validate_payload(cls, v: Any) -> Any:
        """Convert the payload to its JSON form, base64-encoding bytes."""
        try:
            return to_jsonable_python(v, bytes_mode="base64")
        except PydanticSerializationError as e:
            raise ValueError(f"payload is not JSON-serializable: {e}") from e

    def sort_key(self) -> tuple[int, str]:
        """Ordering used for last-writer-wins: timestamp first, device id as tiebreak."""
        return (self.timestamp, self.device_id)


Snapshot = dict[str, Record]
Diff = dict[str, Record]


class PendingChange(BaseModel):
    """A locally produced record waiting in the change queue."""

    model_config = ConfigDict(frozen=True)

    record: Record = Field(default=..., description="The record to be synchronized")
    enqueued_at: int = Field(default=..., ge=0, description="Wall-clock millis when the change was queued")

    @property
    def id(self) -> str:
        return self.record.id


class SyncState(BaseModel):
    """Last successfully committed baseline."""

    base: dict[str, Record] = Field(
        default_factory=dict, description="Snapshot committed by the last successful cycle"
    )
    last_sync_timestamp: int = Field(
        default=0, ge=0, description="Wall-clock millis of the last successful cycle (0 if never)"
    )

    @property
    def record_count(self) -> int:
        return len(self.base)


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, dict[str, Any]]:
    """Convert a snapshot into plain JSON-compatible dictionaries."""
    return {record_id: record.model_dump(mode="json") for record_id, record in snapshot.items()}


def snapshot_from_dict(data: dict[str, Any]) -> Snapshot:
    """Build a snapshot from plain dictionaries.

    Args:
        data: Mapping of record id to record fields

    Returns:
        Snapshot keyed by record id

    Raises:
        ValueError: If an entry's key does not match the record's id
        pydantic.ValidationError: If an entry is not a valid record
    """
    snapshot: Snapshot = {}
    for record_id, fields in data.items():
        record = Record.model_validate(fields)
        if record.id != record_id:
            raise ValueError(f"snapshot key '{record_id}' does not match record id '{record.id}'")
        snapshot[record_id] = record
    return snapshot


def serialize_snapshot(snapshot: Snapshot) -> bytes:
    """Serialize a snapshot (or diff) to canonical UTF-8 JSON bytes.

    Keys are sorted and separators compact so that equal snapshots always
    produce identical payloads.
    """
    return json.dumps(
        snapshot_to_dict(snapshot), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def deserialize_snapshot(payload: bytes) -> Snapshot:
    """Parse bytes produced by :func:`serialize_snapshot`."""
    if not payload:
        return {}
    data = json.loads(payload.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"snapshot payload must be a JSON object, got {type(data).__name__}")
    return snapshot_from_dict(data)

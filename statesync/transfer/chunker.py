"""Splitting serialized diffs into bounded-size transfer parts."""

import hashlib
import math
import uuid
from collections.abc import Sequence

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from statesync.models.config import DEFAULT_PART_SIZE_BYTES
from statesync.models.record import Diff, serialize_snapshot

log = structlog.stdlib.get_logger()


class IncompleteTransferError(ValueError):
    """Raised when a part set is missing, out of order, or corrupt."""

    pass


class TransferPart(BaseModel):
    """One ordered slice of an upload payload."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    upload_id: str = Field(default=..., description="Identifier shared by all parts of one upload")
    index: int = Field(default=..., ge=0, description="Zero-based position of this part")
    total: int = Field(default=..., ge=1, description="Number of parts in the upload")
    data: bytes = Field(default=..., description="Raw payload slice")
    checksum: str = Field(default=..., description="SHA-256 hex digest of data")

    @model_validator(mode="after")
    def validate_index(self) -> "TransferPart":
        if self.index >= self.total:
            raise ValueError(f"part index {self.index} out of range for total {self.total}")
        return self

    @property
    def size(self) -> int:
        return len(self.data)

    def verify(self) -> bool:
        """Check the data against the recorded checksum."""
        return hashlib.sha256(self.data).hexdigest() == self.checksum


class TransferChunker:
    """Splits payloads into parts no larger than ``part_size`` bytes.

    A payload that fits in one part is returned as a single unit; larger
    payloads yield ``ceil(size / part_size)`` parts.
    """

    def __init__(self, part_size: int = DEFAULT_PART_SIZE_BYTES) -> None:
        """
        Initialize the chunker.

        Args:
            part_size: Maximum part size in bytes
        """
        if part_size < 1:
            raise ValueError(f"part_size must be positive, got {part_size}")
        self.part_size: int = part_size

    def serialize(self, diff: Diff) -> bytes:
        """Serialize a diff to the byte payload that gets chunked."""
        return serialize_snapshot(diff)

    def chunk(self, payload: bytes, max_part_size: int | None = None) -> list[TransferPart]:
        """
        Split a payload into ordered parts.

        Args:
            payload: Serialized diff
            max_part_size: Overrides the configured part size for this call

        Returns:
            Parts tagged with index and total count

        Raises:
            ValueError: If max_part_size is not positive
        """
        limit = self.part_size if max_part_size is None else max_part_size
        if limit < 1:
            raise ValueError(f"max_part_size must be positive, got {limit}")

        upload_id = uuid.uuid4().hex
        total = max(1, math.ceil(len(payload) / limit))

        parts = []
        for index in range(total):
            data = payload[index * limit : (index + 1) * limit]
            parts.append(
                TransferPart(
                    upload_id=upload_id,
                    index=index,
                    total=total,
                    data=data,
                    checksum=hashlib.sha256(data).hexdigest(),
                )
            )

        log.debug(
            "payload_chunked",
            upload_id=upload_id,
            payload_size=len(payload),
            part_size=limit,
            part_count=total,
        )
        return parts


def reassemble(parts: Sequence[TransferPart]) -> bytes:
    """
    Join a complete part set back into the original payload.

    Parts must belong to one upload and be supplied in index order.

    Args:
        parts: Every part of one upload

    Returns:
        The original payload

    Raises:
        IncompleteTransferError: If parts are missing, duplicated, out of
            order, from different uploads, or fail checksum verification
    """
    if not parts:
        raise IncompleteTransferError("no parts to reassemble")

    upload_id = parts[0].upload_id
    total = parts[0].total

    if len(parts) != total:
        raise IncompleteTransferError(
            f"upload {upload_id} has {len(parts)} of {total} parts"
        )

    for expected_index, part in enumerate(parts):
        if part.upload_id != upload_id or part.total != total:
            raise IncompleteTransferError(f"part {part.index} does not belong to upload {upload_id}")
        if part.index != expected_index:
            raise IncompleteTransferError(
                f"upload {upload_id}: expected part {expected_index}, got {part.index}"
            )
        if not part.verify():
            raise IncompleteTransferError(
                f"upload {upload_id}: checksum mismatch on part {part.index}"
            )

    return b"".join(part.data for part in parts)

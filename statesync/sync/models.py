"""Data models for synchronization cycles."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class CyclePhase(str, Enum):
    """Step a sync cycle reached before it ended."""

    FETCH = "FETCH"
    MERGE = "MERGE"
    DIFF = "DIFF"
    SKIP = "SKIP"
    UPLOAD = "UPLOAD"
    COMMIT = "COMMIT"
    FAILED = "FAILED"
    SKIPPED_BUSY = "SKIPPED_BUSY"


class SyncReport(BaseModel):
    """Report of one synchronization cycle."""

    cycle_id: str = Field(..., description="Identifier of the cycle")
    phase: CyclePhase = Field(..., description="Final phase: COMMIT on success")
    failed_phase: CyclePhase | None = Field(
        default=None, description="Phase in which the cycle failed, if it did"
    )
    changes_drained: int = Field(default=0, ge=0, description="Pending changes taken from the queue")
    changes_requeued: int = Field(
        default=0, ge=0, description="Pending changes put back after a failure"
    )
    records_merged: int = Field(default=0, ge=0, description="Records in the merged snapshot")
    records_uploaded: int = Field(default=0, ge=0, description="Records in the uploaded diff")
    parts_uploaded: int = Field(default=0, ge=0, description="Transfer parts sent")
    upload_skipped: bool = Field(default=False, description="True when the diff was empty")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Cycle duration in seconds")
    start_time: datetime = Field(..., description="Cycle start timestamp")
    end_time: datetime = Field(..., description="Cycle end timestamp")
    errors: list[str] = Field(
        default_factory=list, description="List of errors encountered during the cycle"
    )

    @property
    def success(self) -> bool:
        """Check if the cycle committed without errors."""
        return self.phase is CyclePhase.COMMIT and len(self.errors) == 0

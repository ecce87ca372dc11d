from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from packages.core.errors import JobTransitionError
from packages.core.schemas.attendance import AttendanceAction


class JobStatus(StrEnum):
    """Lifecycle states for a forwarding job."""

    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class JobRecord(BaseModel):
    """Tracked state of one attendance submission."""

    status: JobStatus = JobStatus.PROCESSING
    action: AttendanceAction
    name: str
    timestamp: str
    error: str | None = None
    downstream_response: Any | None = None

    model_config = dict(extra="forbid")

    def mark_success(self, downstream_response: Any) -> None:
        """Move processing -> success, keeping the webhook body."""

        self._ensure_processing(JobStatus.SUCCESS)
        self.status = JobStatus.SUCCESS
        self.downstream_response = downstream_response

    def mark_failed(self, error: str) -> None:
        """Move processing -> failed with a failure description."""

        self._ensure_processing(JobStatus.FAILED)
        self.status = JobStatus.FAILED
        self.error = error

    def _ensure_processing(self, target: JobStatus) -> None:
        if self.status is not JobStatus.PROCESSING:
            raise JobTransitionError(f"cannot move job from {self.status} to {target}")


class JobSnapshot(BaseModel):
    """Status lookup response."""

    status: JobStatus
    action: AttendanceAction
    name: str
    timestamp: str
    error: str | None = None
    downstream_response: Any | None = Field(default=None, alias="downstreamResponse")

    model_config = dict(extra="forbid", populate_by_name=True)

    @classmethod
    def from_record(cls, record: JobRecord) -> JobSnapshot:
        return cls(
            status=record.status,
            action=record.action,
            name=record.name,
            timestamp=record.timestamp,
            error=record.error,
            downstream_response=record.downstream_response,
        )


class RecentActivity(BaseModel):
    """Dashboard entry for a successfully delivered job."""

    job_id: str = Field(alias="jobId")
    name: str
    action: AttendanceAction
    timestamp: str

    model_config = dict(extra="forbid", populate_by_name=True)

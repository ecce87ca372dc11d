from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class AttendanceAction(StrEnum):
    """Attendance event kinds, one n8n webhook each."""

    LOGIN = "login"
    LOGOUT = "logout"


class AttendanceEvent(BaseModel):
    """Inbound check-in/check-out event."""

    name: str = Field(min_length=1)
    department: str = Field(min_length=1)
    date: str = Field(min_length=1)
    time: str = Field(min_length=1)
    action: AttendanceAction

    model_config = dict(extra="ignore")


class AttendanceAccepted(BaseModel):
    """Synchronous acknowledgement returned before delivery completes."""

    success: bool = True
    job_id: str = Field(alias="jobId")
    message: str
    action: AttendanceAction

    model_config = dict(extra="forbid", populate_by_name=True)


class WebhookPayload(BaseModel):
    """Body posted to the n8n webhook."""

    name: str
    department: str
    date: str
    time: str
    action: str
    job_id: str = Field(alias="jobId")
    timestamp: str

    model_config = dict(extra="forbid", populate_by_name=True)

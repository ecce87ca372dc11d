from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from apps.api.dependencies import get_job_store
from packages.core.config import settings
from packages.core.job_store import JobStore
from packages.core.schemas.job import JobSnapshot, JobStatus, RecentActivity

router = APIRouter()


@router.get(
    "/status/{job_id}",
    response_model=JobSnapshot,
    responses={status.HTTP_404_NOT_FOUND: {"description": "Unknown job ID"}},
)
async def get_job_status(job_id: str, store: JobStore = Depends(get_job_store)) -> JobSnapshot | JSONResponse:
    """Poll the delivery state of a submitted attendance event."""

    record = store.get(job_id)
    if record is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"status": "not_found"})

    return JobSnapshot.from_record(record)


@router.get("/recent-activities", response_model=list[RecentActivity])
async def recent_activities(store: JobStore = Depends(get_job_store)) -> list[RecentActivity]:
    """Most recent successful deliveries, newest first."""

    delivered = [(job_id, record) for job_id, record in store.items() if record.status is JobStatus.SUCCESS]
    latest = delivered[-settings.recent_activities_limit :]

    return [
        RecentActivity(job_id=job_id, name=record.name, action=record.action, timestamp=record.timestamp)
        for job_id, record in reversed(latest)
    ]

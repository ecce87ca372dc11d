from __future__ import annotations

from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from packages.core.timestamps import utc_now_iso

router = APIRouter()


class HealthStatus(BaseModel):
    """Liveness probe response."""

    status: Literal["healthy"] = "healthy"
    timestamp: str


@router.get("/health", response_model=HealthStatus)
async def health() -> HealthStatus:
    return HealthStatus(timestamp=utc_now_iso())

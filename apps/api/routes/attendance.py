from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from apps.api.dependencies import get_dispatcher
from packages.core.dispatcher import Dispatcher
from packages.core.errors import InvalidRequest
from packages.core.schemas.attendance import AttendanceAccepted, AttendanceAction

router = APIRouter()


async def _read_body(request: Request) -> dict[str, Any]:
    """Parse the JSON body; empty or non-object bodies count as no fields."""

    raw = await request.body()
    if not raw.strip():
        return {}

    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise InvalidRequest("Invalid JSON body") from exc

    return body if isinstance(body, dict) else {}


@router.post("/attendance", response_model=AttendanceAccepted)
async def submit_attendance(
    request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)
) -> AttendanceAccepted:
    """Record a check-in or check-out and forward it to n8n in the background."""

    return dispatcher.submit(await _read_body(request))


@router.post("/login", response_model=AttendanceAccepted)
async def submit_login(request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)) -> AttendanceAccepted:
    """Legacy alias for /attendance with action=login."""

    body = await _read_body(request)
    return dispatcher.submit({**body, "action": AttendanceAction.LOGIN.value})


@router.post("/logout", response_model=AttendanceAccepted)
async def submit_logout(request: Request, dispatcher: Dispatcher = Depends(get_dispatcher)) -> AttendanceAccepted:
    """Legacy alias for /attendance with action=logout."""

    body = await _read_body(request)
    return dispatcher.submit({**body, "action": AttendanceAction.LOGOUT.value})

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from packages.core.errors import InvalidRequest
from packages.core.forwarder import Forwarder
from packages.core.job_store import JobStore
from packages.core.logging import get_logger
from packages.core.schemas.attendance import AttendanceAccepted, AttendanceEvent
from packages.core.schemas.job import JobRecord, JobStatus
from packages.core.timestamps import utc_now_iso

logger = get_logger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields: name, department, date, time, action"
INVALID_ACTION_MESSAGE = "Action must be either 'login' or 'logout'"


def _is_invalid_action(error: Mapping[str, Any]) -> bool:
    """True for a present, non-empty action that is not login/logout."""

    return error["loc"] == ("action",) and error["type"] == "enum" and error.get("input") not in (None, "")


def validate_event(payload: Mapping[str, Any]) -> AttendanceEvent:
    """Validate an inbound body; missing fields win over a bad action."""

    try:
        return AttendanceEvent.model_validate(dict(payload))
    except ValidationError as exc:
        errors = exc.errors()
        if all(_is_invalid_action(error) for error in errors):
            raise InvalidRequest(INVALID_ACTION_MESSAGE) from exc
        raise InvalidRequest(MISSING_FIELDS_MESSAGE) from exc


class Dispatcher:
    """Creates job records and hands delivery to background tasks."""

    def __init__(self, store: JobStore, forwarder: Forwarder) -> None:
        self._store = store
        self._forwarder = forwarder
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, payload: Mapping[str, Any]) -> AttendanceAccepted:
        """Accept an attendance event and return before delivery happens.

        Must be called from a running event loop; the forwarding task is
        scheduled on it and never awaited here.
        """

        event = validate_event(payload)

        job_id = str(uuid.uuid4())
        self._store.put(
            job_id,
            JobRecord(
                status=JobStatus.PROCESSING,
                action=event.action,
                name=event.name,
                timestamp=utc_now_iso(),
            ),
        )

        logger.info(
            "attendance submitted",
            extra={
                "job_id": job_id,
                "action": str(event.action),
                "employee": event.name,
                "department": event.department,
                "date": event.date,
                "time": event.time,
                "status": JobStatus.PROCESSING,
            },
        )

        task = asyncio.create_task(self._forwarder.deliver(job_id, event), name=f"deliver-{job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        return AttendanceAccepted(
            job_id=job_id,
            message=f"{str(event.action).capitalize()} request submitted successfully",
            action=event.action,
        )

    async def drain(self) -> None:
        """Wait for in-flight deliveries; each is bounded by the webhook timeout."""

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

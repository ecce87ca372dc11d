from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime, timedelta

from packages.core.job_store import JobStore
from packages.core.logging import get_logger
from packages.core.schemas.job import JobRecord
from packages.core.timestamps import parse_timestamp, utc_now

logger = get_logger(__name__)


class Reaper:
    """Periodically drops job records older than the retention window."""

    def __init__(self, store: JobStore, *, retention_seconds: float = 3600, interval_seconds: float = 1800) -> None:
        self._store = store
        self.retention = timedelta(seconds=retention_seconds)
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    def sweep(self, now: datetime | None = None) -> None:
        """Evict every record created before now - retention, whatever its status."""

        cutoff = (now or utc_now()) - self.retention

        def expired(job_id: str, record: JobRecord) -> bool:
            try:
                created_at = parse_timestamp(record.timestamp)
            except ValueError:
                logger.warning("unparseable job timestamp, keeping record", extra={"job_id": job_id})
                return False
            return created_at < cutoff

        evicted = self._store.scan_and_evict(expired)
        logger.info("job cleanup completed", extra={"evicted": evicted, "active_jobs": len(self._store)})

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.sweep()
            except Exception:
                logger.exception("job cleanup failed")

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="job-reaper")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

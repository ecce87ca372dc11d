from __future__ import annotations

import threading
from collections.abc import Callable

from packages.core.errors import DuplicateJobError
from packages.core.schemas.job import JobRecord


class JobStore:
    """In-memory job records keyed by job ID.

    Every operation holds a single lock, so inserts from the dispatcher,
    updates from forwarding tasks and evictions from the reaper never
    interleave. Callers only ever see copies; mutation goes through update().
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, JobRecord] = {}

    def put(self, job_id: str, record: JobRecord) -> None:
        """Insert a new record; raises DuplicateJobError if the ID is taken."""

        with self._lock:
            if job_id in self._jobs:
                raise DuplicateJobError(job_id)
            self._jobs[job_id] = record.model_copy(deep=True)

    def get(self, job_id: str) -> JobRecord | None:
        """Return a copy of the record, or None when unknown."""

        with self._lock:
            record = self._jobs.get(job_id)
            return record.model_copy(deep=True) if record is not None else None

    def update(self, job_id: str, mutator: Callable[[JobRecord], None]) -> bool:
        """Apply mutator to the stored record in place; no-op if absent."""

        with self._lock:
            record = self._jobs.get(job_id)
            if record is None:
                return False
            mutator(record)
            return True

    def scan_and_evict(self, predicate: Callable[[str, JobRecord], bool]) -> int:
        """Remove every record matching predicate and return how many went."""

        with self._lock:
            doomed = [job_id for job_id, record in self._jobs.items() if predicate(job_id, record)]
            for job_id in doomed:
                del self._jobs[job_id]
            return len(doomed)

    def items(self) -> list[tuple[str, JobRecord]]:
        """Insertion-ordered snapshot of (job_id, record copy) pairs."""

        with self._lock:
            return [(job_id, record.model_copy(deep=True)) for job_id, record in self._jobs.items()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

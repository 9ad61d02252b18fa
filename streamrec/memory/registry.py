"""JobRegistry — in-memory owner of recording job records.

Trigger fires, capture completions and deadline timers all mutate jobs from
independent callbacks, so every write is an atomic read-modify-write under
one lock, and each mutation is written through to the schedule store.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Iterable

from loguru import logger

from streamrec.core.cron.types import JobSpec, JobStatus, RecordingJob
from streamrec.memory.store import ScheduleStore

# Runtime attributes update_status/transition may touch.
_RUNTIME_FIELDS = frozenset({"last_recording", "current_recording", "error"})


class JobRegistry:
    """Job records keyed by id. Returned jobs are copies; mutate via methods."""

    def __init__(self, store: ScheduleStore | None = None):
        self.store = store
        self._jobs: dict[str, RecordingJob] = {}
        self._lock = threading.RLock()
        self._last_id = 0

    # ── Queries ─────────────────────────────────────────────

    def get(self, job_id: str) -> RecordingJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def list(self) -> list[RecordingJob]:
        with self._lock:
            return [job.model_copy() for job in self._jobs.values()]

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    # ── Mutations ───────────────────────────────────────────

    def create(self, spec: JobSpec) -> RecordingJob:
        """Add a new job in ``scheduled`` status."""
        with self._lock:
            job = RecordingJob(
                job_id=self._next_id(),
                name=spec.name,
                url=spec.url,
                schedule=spec.schedule,
                duration=spec.duration,
            )
            self._jobs[job.job_id] = job
            self._persist()
            return job.model_copy()

    def delete(self, job_id: str) -> bool:
        with self._lock:
            if self._jobs.pop(job_id, None) is None:
                return False
            self._persist()
            return True

    def update_status(
        self, job_id: str, status: JobStatus, **fields: Any
    ) -> RecordingJob | None:
        """Set status plus runtime fields. No-op (logged) for an unknown id."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.info(f"Status update for removed job {job_id} ignored")
                return None
            self._apply(job, status, fields)
            self._persist()
            return job.model_copy()

    def transition(
        self,
        job_id: str,
        status: JobStatus,
        *,
        expected: JobStatus,
        artifact: str | None = None,
        **fields: Any,
    ) -> bool:
        """Compare-and-transition.

        Applies only if the job exists, is in ``expected`` status and, when
        ``artifact`` is given, its pending recording is that artifact.
        Returns whether the transition was applied.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.info(f"Transition to {status.value} for removed job {job_id} ignored")
                return False
            if job.status != expected:
                return False
            if artifact is not None and job.current_recording != artifact:
                return False
            self._apply(job, status, fields)
            self._persist()
            return True

    def load(self, jobs: Iterable[RecordingJob]) -> int:
        """Replace the registry contents with restored jobs.

        Every job comes back ``scheduled``: a persisted ``recording`` status
        belongs to a process that no longer exists.
        """
        with self._lock:
            self._jobs.clear()
            for job in jobs:
                if job.status == JobStatus.RECORDING and job.current_recording:
                    logger.warning(
                        f"Job {job.job_id} was recording at shutdown; "
                        f"partial output may remain: {job.current_recording}"
                    )
                job = job.model_copy()
                self._apply(job, JobStatus.SCHEDULED, {})
                self._jobs[job.job_id] = job
                self._bump_last_id(job.job_id)
            self._persist()
            return len(self._jobs)

    def persist(self) -> bool:
        """Write the current contents through to the store."""
        with self._lock:
            return self._persist()

    # ── Internals ───────────────────────────────────────────

    def _apply(self, job: RecordingJob, status: JobStatus, fields: dict[str, Any]) -> None:
        unknown = set(fields) - _RUNTIME_FIELDS
        if unknown:
            raise ValueError(f"Not a runtime field: {', '.join(sorted(unknown))}")
        for key, value in fields.items():
            setattr(job, key, value)
        job.status = status
        # current_recording iff recording, error iff error
        if status != JobStatus.RECORDING:
            job.current_recording = None
        if status != JobStatus.ERROR:
            job.error = None

    def _persist(self) -> bool:
        if self.store is None:
            return True
        return self.store.snapshot(self._jobs.values())

    def _next_id(self) -> str:
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return str(candidate)

    def _bump_last_id(self, job_id: str) -> None:
        if job_id.isdigit():
            self._last_id = max(self._last_id, int(job_id))

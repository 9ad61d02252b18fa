"""RecordingScheduler — APScheduler + job registry bridge."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from streamrec.core.cron import trigger
from streamrec.core.cron.trigger import TriggerHandle
from streamrec.core.cron.types import JobSpec, RecordingJob
from streamrec.core.errors import NotFoundError, ValidationError
from streamrec.memory.registry import JobRegistry

if TYPE_CHECKING:
    from streamrec.core.capture.executor import CaptureExecutor
    from streamrec.core.config.settings import SettingsStore


class RecordingScheduler:
    """Bridge between the job registry and APScheduler.

    The registry (written through to schedules.json) is the source of truth.
    This class only holds the live trigger bindings, keyed by job id. On
    trigger, calls ``executor.start()``.
    """

    def __init__(
        self,
        registry: JobRegistry,
        executor: CaptureExecutor,
        settings: SettingsStore,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.registry = registry
        self.executor = executor
        self.settings = settings
        self._scheduler = scheduler or AsyncIOScheduler(
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60}
        )
        self._bindings: dict[str, TriggerHandle] = {}

    async def start(self) -> None:
        """Restore persisted jobs, install their triggers and start the scheduler."""
        restored = self.registry.store.restore() if self.registry.store else {}
        self.registry.load(restored.values())

        installed = 0
        for job in self.registry.list():
            if self.install(job):
                installed += 1
                logger.info(f"Restored scheduled recording: {job.name} with schedule: {job.schedule}")

        self._scheduler.start()
        logger.info(
            f"RecordingScheduler started with {len(self.registry)} jobs "
            f"({installed} active, {len(self.registry) - installed} inert)"
        )

    async def stop(self) -> None:
        """Shutdown the scheduler and any running captures."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        await self.executor.shutdown()
        logger.info("RecordingScheduler stopped")

    # ── Trigger bindings ────────────────────────────────────

    def install(self, job: RecordingJob) -> bool:
        """Bind the job's cron expression in the current settings time zone.

        An invalid expression leaves the job inert: still listed, never fired.
        """
        self.uninstall(job.job_id)
        time_zone = self._time_zone()
        if not trigger.validate(job.schedule, time_zone):
            logger.error(f"Invalid cron expression for job {job.job_id}: {job.schedule!r}; job left inert")
            return False
        try:
            self._bindings[job.job_id] = trigger.schedule(
                self._scheduler,
                job.schedule,
                time_zone,
                self._fire,
                job.job_id,
                args=[job.job_id, job.name, job.url, job.duration],
            )
        except Exception as e:
            logger.error(f"Failed to install trigger for job {job.job_id}: {e}")
            return False
        return True

    def uninstall(self, job_id: str) -> None:
        """Cancel the job's trigger. No-op when none is bound."""
        handle = self._bindings.pop(job_id, None)
        if handle is not None:
            handle.cancel()

    def reinstall_all(self) -> int:
        """Rebind every job, e.g. after the time zone setting changed."""
        count = sum(1 for job in self.registry.list() if self.install(job))
        logger.info(f"Reinstalled {count} recording triggers")
        return count

    def is_installed(self, job_id: str) -> bool:
        return job_id in self._bindings

    def next_run(self, job_id: str) -> datetime | None:
        handle = self._bindings.get(job_id)
        return handle.next_fire_time if handle else None

    # ── Jobs ────────────────────────────────────────────────

    def add_job(self, name: str, url: str, schedule: str, duration: int) -> RecordingJob:
        """Create a recording job and install its trigger.

        Raises ValidationError (nothing created) on missing fields, a
        non-positive duration or an invalid cron expression.
        """
        try:
            spec = JobSpec(name=name, url=url, schedule=schedule, duration=duration)
        except PydanticValidationError as e:
            raise ValidationError(f"Missing or invalid fields: {_field_errors(e)}") from e

        if not trigger.validate(spec.schedule):
            raise ValidationError("Invalid cron schedule expression")

        job = self.registry.create(spec)
        self.install(job)
        logger.info(f"Scheduled recording: {job.name} with schedule: {job.schedule}")
        return job

    def remove_job(self, job_id: str) -> None:
        """Uninstall and delete a job. Raises NotFoundError for an unknown id."""
        if job_id not in self.registry:
            raise NotFoundError(job_id)
        self.uninstall(job_id)
        self.registry.delete(job_id)
        logger.info(f"Removed scheduled recording with ID: {job_id}")

    def list_jobs(self) -> list[RecordingJob]:
        """All jobs, oldest first."""
        return sorted(self.registry.list(), key=lambda j: (len(j.job_id), j.job_id))

    # ── Execution ───────────────────────────────────────────

    async def _fire(self, job_id: str, name: str, url: str, duration: int) -> None:
        """Trigger callback. Returns once the capture is spawned."""
        logger.info(f"Cron trigger: {job_id} ({name})")
        try:
            await self.executor.start(job_id, name, url, duration)
        except Exception as e:
            logger.error(f"Trigger for job {job_id} failed: {e}")

    def _time_zone(self) -> str:
        """Settings time zone, re-read on every install. UTC if unknown."""
        name = self.settings.read().time_zone
        try:
            trigger.resolve_time_zone(name)
        except ValueError as e:
            logger.error(f"Error reading settings for time zone: {e}; using UTC")
            return "UTC"
        return name


def _field_errors(error: PydanticValidationError) -> str:
    return ", ".join(
        ".".join(str(p) for p in err["loc"]) or "input" for err in error.errors()
    )

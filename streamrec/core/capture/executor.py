"""CaptureExecutor — starts, bounds and observes recording processes.

Every capture has two producers of its outcome: the process exiting on its
own, and a deadline at ``duration + grace`` that kills a process that never
closed the stream. Both go through ``JobRegistry.transition`` gated on the
job still recording this capture's artifact, so whichever arrives second is
a no-op, as is any outcome for a job deleted mid-capture.
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from loguru import logger

from streamrec.core.capture.ffmpeg import CaptureProcess, FfmpegRunner
from streamrec.core.cron.trigger import resolve_time_zone
from streamrec.core.cron.types import JobStatus
from streamrec.core.errors import CaptureError
from streamrec.memory.registry import JobRegistry

if TYPE_CHECKING:
    from streamrec.core.config.settings import SettingsStore

AUDIO_BITRATES: dict[str, str] = {
    "low": "96k",
    "medium": "192k",
    "high": "320k",
}
DEFAULT_BITRATE = AUDIO_BITRATES["medium"]

FORMATS = ("mp3", "ogg")
DEFAULT_FORMAT = "mp3"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*]')


def resolve_bitrate(quality: str | None) -> str:
    """Quality tier → ffmpeg bitrate; unknown or unset tiers get medium."""
    return AUDIO_BITRATES.get((quality or "").lower(), DEFAULT_BITRATE)


def safe_show_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("-", name)


def artifact_name(name: str, when: datetime, fmt: str = DEFAULT_FORMAT) -> str:
    """``ShowName_YYYY-MM-DD_HH-mm.<ext>``"""
    return f"{safe_show_name(name)}_{when.strftime('%Y-%m-%d_%H-%M')}.{fmt}"


def local_now(time_zone: str) -> datetime:
    """Current time in ``time_zone``; UTC if the zone is unknown."""
    try:
        tz = resolve_time_zone(time_zone)
    except ValueError as e:
        logger.warning(f"{e}; using UTC for file names")
        return datetime.now(timezone.utc)
    return datetime.now(tz)


class CaptureExecutor:
    """Runs one bounded capture per trigger fire. ``start`` never blocks on a recording."""

    def __init__(
        self,
        registry: JobRegistry,
        settings: SettingsStore,
        runner: FfmpegRunner | None = None,
        grace_seconds: float = 5.0,
        clock: Callable[[str], datetime] = local_now,
    ):
        self.registry = registry
        self.settings = settings
        self.runner = runner or FfmpegRunner()
        self.grace_seconds = grace_seconds
        self.clock = clock
        self._captures: dict[str, CaptureProcess] = {}
        self._tasks: set[asyncio.Task] = set()

    async def start(
        self, job_id: str, name: str, url: str, duration: int
    ) -> CaptureProcess | None:
        """Start recording ``url`` for ``duration`` minutes on behalf of ``job_id``.

        Returns the live handle, or None when nothing was started.
        """
        if self.registry.get(job_id) is None:
            logger.error(f"Cannot find scheduled job with ID: {job_id}")
            return None

        try:
            settings = self.settings.read()
            fmt = settings.recording_format.lower()
            if fmt not in FORMATS:
                logger.warning(f"Unsupported recording format {fmt!r}, using {DEFAULT_FORMAT}")
                fmt = DEFAULT_FORMAT
            artifact = artifact_name(name, self.clock(settings.time_zone), fmt)

            logger.info(f"Starting recording of {name} (ID: {job_id}) for {duration} minutes")
            if not self._begin(job_id, artifact):
                return None

            bitrate = resolve_bitrate(settings.audio_quality)
            logger.info(f"Using audio bitrate: {bitrate} for recording {name}")

            storage = Path(settings.storage_path).expanduser()
            storage.mkdir(parents=True, exist_ok=True)
            handle = await self.runner.run(
                job_id, url, storage / artifact, duration * 60, bitrate
            )
        except Exception as e:
            logger.error(f"Unexpected error starting recording for {job_id}: {e}")
            self.registry.update_status(job_id, JobStatus.ERROR, error=f"Internal error: {e}")
            return None

        self._captures[job_id] = handle
        self._spawn(self._watch(job_id, name, handle, artifact))
        self._spawn(self._expire(job_id, handle, artifact, duration))
        return handle

    def _begin(self, job_id: str, artifact: str) -> bool:
        for current in (JobStatus.SCHEDULED, JobStatus.ERROR):
            if self.registry.transition(
                job_id, JobStatus.RECORDING, expected=current, current_recording=artifact
            ):
                return True
        job = self.registry.get(job_id)
        if job is None:
            logger.error(f"Job {job_id} removed before recording could start")
        else:
            logger.warning(
                f"Job {job_id} is still recording {job.current_recording}; skipping this trigger"
            )
        return False

    # ── Outcome producers ───────────────────────────────────

    async def _watch(self, job_id: str, name: str, handle: CaptureProcess, artifact: str) -> None:
        """Natural exit: success → scheduled, failure → error."""
        try:
            await handle.wait()
        except CaptureError as e:
            if handle.killed:
                logger.debug(f"Recording {artifact} ended by forced stop")
            else:
                logger.error(f"Recording error for {name} (ID: {job_id}): {e.reason}")
            self.registry.transition(
                job_id, JobStatus.ERROR,
                expected=JobStatus.RECORDING, artifact=artifact, error=e.reason,
            )
        except Exception as e:
            logger.error(f"Lost track of recording {artifact}: {e}")
            self.registry.transition(
                job_id, JobStatus.ERROR,
                expected=JobStatus.RECORDING, artifact=artifact, error=f"Internal error: {e}",
            )
        else:
            if self.registry.transition(
                job_id, JobStatus.SCHEDULED,
                expected=JobStatus.RECORDING, artifact=artifact, last_recording=artifact,
            ):
                logger.info(f"Recording completed successfully: {artifact}")
        finally:
            if self._captures.get(job_id) is handle:
                del self._captures[job_id]

    async def _expire(self, job_id: str, handle: CaptureProcess, artifact: str, duration: int) -> None:
        await asyncio.sleep(self._deadline_seconds(duration))
        self._force_stop(job_id, handle, artifact, duration)

    def _force_stop(self, job_id: str, handle: CaptureProcess, artifact: str, duration: int) -> None:
        """Deadline: kill a capture still running and keep its partial file."""
        if handle.done:
            return
        try:
            handle.kill()
        except OSError as e:
            logger.error(f"Error terminating recording process: {e}")
        logger.info(f"Terminated recording after {duration} minutes: {artifact}")
        self.registry.transition(
            job_id, JobStatus.SCHEDULED,
            expected=JobStatus.RECORDING, artifact=artifact, last_recording=artifact,
        )

    def _deadline_seconds(self, duration: int) -> float:
        return duration * 60 + self.grace_seconds

    # ── Lifecycle ───────────────────────────────────────────

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def running(self) -> dict[str, CaptureProcess]:
        """Live captures keyed by job id."""
        return dict(self._captures)

    async def shutdown(self) -> None:
        """Kill running captures and cancel their timers."""
        if self._captures:
            logger.info(f"Stopping {len(self._captures)} running recordings")
        for handle in list(self._captures.values()):
            handle.kill()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self._captures.clear()

"""Core API routes — scheduled shows, settings, health."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from loguru import logger

from streamrec import __version__
from streamrec.api.deps import get_scheduler, get_settings
from streamrec.core.config.settings import Settings, SettingsStore
from streamrec.core.cron.scheduler import RecordingScheduler
from streamrec.core.errors import NotFoundError, PersistenceError, ValidationError
from streamrec.memory.models import (
    HealthResponse,
    MessageResponse,
    ScheduleRequest,
    ScheduleResponse,
)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(scheduler: RecordingScheduler = Depends(get_scheduler)):
    """Health check."""
    return HealthResponse(
        status="ok",
        version=__version__,
        jobs=len(scheduler.registry),
        recording=sorted(scheduler.executor.running()),
    )


# ── Scheduled shows ──────────────────────────────────────────


@router.get("/api/scheduled-shows")
async def scheduled_shows(
    scheduler: RecordingScheduler = Depends(get_scheduler),
) -> list[dict[str, Any]]:
    """All recording jobs with their runtime status."""
    return [job.to_view() for job in scheduler.list_jobs()]


@router.post("/api/schedule", response_model=ScheduleResponse)
async def schedule_recording(
    body: ScheduleRequest,
    scheduler: RecordingScheduler = Depends(get_scheduler),
):
    """Create a recurring recording."""
    try:
        job = scheduler.add_job(body.name, body.url, body.schedule, body.duration)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ScheduleResponse(id=job.job_id, message="Recording scheduled successfully")


@router.delete("/api/schedule/{job_id}", response_model=MessageResponse)
async def delete_schedule(
    job_id: str,
    scheduler: RecordingScheduler = Depends(get_scheduler),
):
    """Remove a recurring recording. A capture in progress runs to its deadline."""
    try:
        scheduler.remove_job(job_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return MessageResponse(message="Schedule removed successfully")


# ── Settings ─────────────────────────────────────────────────


@router.get("/api/settings")
async def read_settings(settings: SettingsStore = Depends(get_settings)) -> dict[str, Any]:
    return settings.read().to_dict()


@router.post("/api/settings", response_model=MessageResponse)
async def save_settings(
    payload: dict[str, Any] = Body(...),
    settings: SettingsStore = Depends(get_settings),
    scheduler: RecordingScheduler = Depends(get_scheduler),
):
    """Overwrite settings. A time zone change rebinds every trigger."""
    try:
        new = Settings.from_update(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    previous = settings.read()
    try:
        settings.write(new)
    except PersistenceError as e:
        logger.error(f"Error saving settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to save settings")

    if new.time_zone != previous.time_zone:
        logger.info(f"Time zone changed {previous.time_zone} -> {new.time_zone}")
        scheduler.reinstall_all()
    return MessageResponse(message="Settings saved successfully")

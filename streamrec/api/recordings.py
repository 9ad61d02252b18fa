"""Recordings library and system info routes."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from loguru import logger

from streamrec import __version__
from streamrec.api.deps import get_config, get_library, get_scheduler
from streamrec.core.config.schema import Config
from streamrec.core.cron.scheduler import RecordingScheduler
from streamrec.core.library import RecordingLibrary, disk_space, ffmpeg_version
from streamrec.memory.models import MessageResponse, RecordingInfo, SystemInfo

router = APIRouter(prefix="/api")


@router.get("/recordings", response_model=list[RecordingInfo])
async def list_recordings(library: RecordingLibrary = Depends(get_library)):
    """Recorded files, newest first."""
    try:
        return library.list()
    except OSError as e:
        logger.error(f"Error fetching recordings: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch recordings")


@router.get("/recordings/{filename}")
async def download_recording(
    filename: str,
    library: RecordingLibrary = Depends(get_library),
):
    path = library.resolve(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Recording not found")
    return FileResponse(path, filename=path.name)


@router.delete("/recordings/{filename}", response_model=MessageResponse)
async def delete_recording(
    filename: str,
    library: RecordingLibrary = Depends(get_library),
):
    try:
        deleted = library.delete(filename)
    except OSError as e:
        logger.error(f"Error deleting recording {filename}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete recording")
    if not deleted:
        raise HTTPException(status_code=404, detail="Recording not found")
    return MessageResponse(message="Recording deleted successfully")


@router.get("/system-info", response_model=SystemInfo)
async def system_info(
    config: Config = Depends(get_config),
    library: RecordingLibrary = Depends(get_library),
    scheduler: RecordingScheduler = Depends(get_scheduler),
):
    """Version, ffmpeg version, disk usage of the storage path."""
    try:
        disk = disk_space(library.directory)
    except OSError as e:
        logger.error(f"Error getting disk space: {e}")
        disk = None
    return SystemInfo(
        version=__version__,
        ffmpeg_version=await ffmpeg_version(config.capture.ffmpeg_binary),
        disk_space=disk,
        server_time=datetime.now(timezone.utc),
        active_recordings=len(scheduler.executor.running()),
    )

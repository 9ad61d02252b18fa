"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from streamrec import __version__
from streamrec.api.recordings import router as recordings_router
from streamrec.api.routes import router as core_router
from streamrec.core.capture.executor import CaptureExecutor
from streamrec.core.capture.ffmpeg import FfmpegRunner
from streamrec.core.config.loader import load_config
from streamrec.core.config.schema import Config
from streamrec.core.config.settings import SettingsStore
from streamrec.core.cron.scheduler import RecordingScheduler
from streamrec.core.library import RecordingLibrary
from streamrec.core.log import setup_logging
from streamrec.memory.registry import JobRegistry
from streamrec.memory.store import ScheduleStore


def build_services(config: Config) -> dict:
    """Wire SettingsStore → ScheduleStore → JobRegistry → CaptureExecutor → RecordingScheduler."""
    config.recordings_path.mkdir(parents=True, exist_ok=True)
    settings = SettingsStore(config.settings_path, default_storage_path=config.recordings_path)
    settings.ensure()

    registry = JobRegistry(ScheduleStore(config.schedules_path))
    executor = CaptureExecutor(
        registry,
        settings,
        runner=FfmpegRunner(config.capture.ffmpeg_binary),
        grace_seconds=config.capture.grace_seconds,
    )
    scheduler = RecordingScheduler(registry, executor, settings)
    return {
        "settings": settings,
        "registry": registry,
        "scheduler": scheduler,
        "library": RecordingLibrary(settings),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: services → restore schedules → start triggers. Shutdown: stop captures."""
    config: Config = app.state.config
    setup_logging(config)

    services = build_services(config)
    for name, service in services.items():
        setattr(app.state, name, service)

    scheduler: RecordingScheduler = services["scheduler"]
    await scheduler.start()

    logger.info(f"streamrec API started — {len(services['registry'])} schedules loaded")
    yield

    await scheduler.stop()
    logger.info("streamrec API shutting down")


def create_app(config: Config | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or load_config()
    app = FastAPI(
        title="streamrec API",
        description="Scheduled recorder for network audio streams",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(core_router)
    app.include_router(recordings_router)

    # Pre-built web UI, if present
    dist = Path(config.web.dist_dir)
    if dist.is_dir():
        app.mount("/", StaticFiles(directory=dist, html=True), name="web")

    return app

"""FastAPI dependency injection — pull singletons from app.state."""

from __future__ import annotations

from fastapi import Request

from streamrec.core.config.schema import Config
from streamrec.core.config.settings import SettingsStore
from streamrec.core.cron.scheduler import RecordingScheduler
from streamrec.core.library import RecordingLibrary


def get_config(request: Request) -> Config:
    """Get Config singleton from app state."""
    return request.app.state.config


def get_settings(request: Request) -> SettingsStore:
    """Get SettingsStore singleton from app state."""
    return request.app.state.settings


def get_scheduler(request: Request) -> RecordingScheduler:
    """Get RecordingScheduler singleton from app state."""
    return request.app.state.scheduler


def get_library(request: Request) -> RecordingLibrary:
    """Get RecordingLibrary singleton from app state."""
    return request.app.state.library

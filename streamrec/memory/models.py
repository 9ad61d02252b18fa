"""Pydantic API models — request / response bodies."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ════════════════════════════════════════════════════════════
# SCHEDULES
# ════════════════════════════════════════════════════════════


class ScheduleRequest(BaseModel):
    """POST /api/schedule body. Presence is checked by the scheduler."""

    name: str | None = None
    url: str | None = None
    schedule: str | None = None
    duration: Any = None


class ScheduleResponse(BaseModel):
    id: str
    message: str


class MessageResponse(BaseModel):
    message: str


# ════════════════════════════════════════════════════════════
# RECORDINGS / SYSTEM
# ════════════════════════════════════════════════════════════


class RecordingInfo(_CamelModel):
    name: str
    size: int
    created_at: datetime


class DiskSpace(_CamelModel):
    path: str
    size: str
    used: str
    available: str
    used_percentage: str


class SystemInfo(_CamelModel):
    version: str
    ffmpeg_version: str
    disk_space: DiskSpace | None = None
    server_time: datetime
    active_recordings: int = 0


class HealthResponse(BaseModel):
    status: str
    version: str = ""
    jobs: int = 0
    recording: list[str] = Field(default_factory=list)

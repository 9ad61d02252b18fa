"""Recording job types — mirrors the schedules.json record layout."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    """Runtime status of a recording job. No terminal state."""

    SCHEDULED = "scheduled"
    RECORDING = "recording"
    ERROR = "error"


_STATUS_VALUES = frozenset(s.value for s in JobStatus)
_ID_KEYS = ("job_id", "id")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JobSpec(BaseModel):
    """Input for creating a recording job."""

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    schedule: str = Field(min_length=1)
    duration: int = Field(gt=0)  # minutes

    @field_validator("name", "url", "schedule")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class RecordingJob(BaseModel):
    """A recurring recording definition plus its runtime status.

    Only plain data lives here. Trigger and process handles are held by the
    scheduler and capture executor, keyed by ``job_id``.
    """

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(exclude=True)
    name: str
    url: str
    schedule: str
    duration: int = Field(gt=0)  # minutes
    status: JobStatus = JobStatus.SCHEDULED
    created_at: str = Field(default_factory=_utc_now_iso, alias="createdAt")

    last_recording: str | None = Field(default=None, alias="lastRecording")
    current_recording: str | None = Field(default=None, alias="currentRecording")
    error: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Durable record: every field except the identifier, camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_view(self) -> dict[str, Any]:
        """API view: the durable record plus ``id``."""
        return {"id": self.job_id, **self.to_record()}

    @classmethod
    def from_record(cls, job_id: str, record: dict[str, Any]) -> RecordingJob:
        """Rebuild a job from its stored record; the mapping key is the identifier.

        Stray identifier keys in the record are ignored. An unknown status is
        read as ``scheduled``, which is what bootstrap resets to anyway.
        """
        data = {k: v for k, v in record.items() if k not in _ID_KEYS}
        status = data.get("status")
        if not isinstance(status, str) or status not in _STATUS_VALUES:
            data["status"] = JobStatus.SCHEDULED
        return cls.model_validate({**data, "job_id": job_id})

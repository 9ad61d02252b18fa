"""JSON schedule store — durable snapshot of the job registry.

Layout of ``schedules.json``::

    {
      "1718000000000": {
        "name": "Morning Show",
        "url": "http://example/stream",
        "schedule": "0 9 * * 1",
        "duration": 30,
        "status": "scheduled",
        "createdAt": "2024-06-10T06:13:20.000Z",
        "lastRecording": "Morning Show_2024-06-10_09-00.mp3"
      }
    }

The whole mapping is rewritten on every mutation. Only plain job data is
stored; trigger and process handles never reach this file.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from streamrec.core.cron.types import RecordingJob
from streamrec.core.errors import PersistenceError


class ScheduleStore:
    """schedules.json reader/writer. Neither operation raises."""

    def __init__(self, path: str | Path = "schedules.json"):
        self.path = Path(path)

    def snapshot(self, jobs: Iterable[RecordingJob]) -> bool:
        """Write every job wholesale. Returns False (logged) on failure."""
        try:
            self._write({job.job_id: job.to_record() for job in jobs})
        except PersistenceError as e:
            logger.error(f"Error saving schedules: {e}")
            return False
        return True

    def restore(self) -> dict[str, RecordingJob]:
        """Load persisted jobs keyed by id.

        A missing or corrupt file yields an empty mapping. A single malformed
        record is skipped; the rest still load.
        """
        try:
            raw = self._read()
        except PersistenceError as e:
            logger.error(f"Error loading schedules: {e}")
            return {}

        jobs: dict[str, RecordingJob] = {}
        for job_id, record in raw.items():
            if not isinstance(record, dict):
                logger.error(f"Skipping malformed schedule record {job_id}")
                continue
            try:
                jobs[str(job_id)] = RecordingJob.from_record(str(job_id), record)
            except (PydanticValidationError, TypeError) as e:
                logger.error(f"Skipping malformed schedule record {job_id}: {e}")
        return jobs

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"{self.path} does not hold a job mapping")
        return data

    def _write(self, data: dict) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
        logger.debug(f"Saved {len(data)} schedules")

"""Cron scheduling — recording job types and cron trigger helpers.

The APScheduler bridge lives in ``streamrec.core.cron.scheduler``.
"""

from streamrec.core.cron.trigger import TriggerHandle, validate
from streamrec.core.cron.types import JobSpec, JobStatus, RecordingJob

__all__ = ["RecordingJob", "JobSpec", "JobStatus", "TriggerHandle", "validate"]

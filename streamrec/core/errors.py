"""Error taxonomy.

Validation and not-found errors surface to callers. Persistence and capture
errors are recovered locally: the first at the store boundary, the second
on the job record.
"""


class StreamrecError(Exception):
    """Base exception for all streamrec failures."""


class ValidationError(StreamrecError):
    """Rejected job or settings input; nothing was changed."""


class NotFoundError(StreamrecError):
    """Operation on an unknown job identifier."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class PersistenceError(StreamrecError):
    """Durable read or write of the schedule file failed."""


class CaptureError(StreamrecError):
    """The external capture process reported a failure."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Capture failed for job {job_id}: {reason}")

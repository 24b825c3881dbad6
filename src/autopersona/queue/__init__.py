"""Work queue subsystem: durable generation jobs and the drainer."""

from autopersona.queue.models import Job, JobKind, JobSpec, JobStatus
from autopersona.queue.store import WorkQueue

__all__ = ["Job", "JobKind", "JobSpec", "JobStatus", "WorkQueue"]

"""Claims pending jobs and runs them to a terminal state."""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from autopersona.clock import Clock, SystemClock
from autopersona.config.constants import DEFAULT_DRAIN_LIMIT, DEFAULT_LEASE_SECONDS
from autopersona.errors import QueueError
from autopersona.pipeline.executor import PipelineExecutor
from autopersona.pipeline.models import PipelineOutcome
from autopersona.queue.models import Job, JobStatus
from autopersona.queue.store import WorkQueue
from autopersona.scheduling.store import ScheduleStore

logger = logging.getLogger("autopersona.queue.drainer")


class JobResult(BaseModel):
    job_id: str
    schedule_id: str | None = None
    status: JobStatus
    images_generated: int = 0
    result_ref: str | None = None
    error_message: str | None = None
    step_errors: list[str] = Field(default_factory=list)


class DrainReport(BaseModel):
    """What one drain invocation did."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    expired: int = 0
    results: list[JobResult] = Field(default_factory=list)
    error: str | None = None


class QueueDrainer:
    """The system of record for eventually processing every queued job."""

    def __init__(
        self,
        queue: WorkQueue,
        schedules: ScheduleStore,
        executor: PipelineExecutor,
        *,
        clock: Clock | None = None,
        lease_seconds: int = DEFAULT_LEASE_SECONDS,
        default_limit: int = DEFAULT_DRAIN_LIMIT,
    ) -> None:
        self.queue = queue
        self.schedules = schedules
        self.executor = executor
        self.clock = clock or SystemClock()
        self.lease_seconds = lease_seconds
        self.default_limit = default_limit

    async def drain(self, limit: int | None = None, now: datetime | None = None) -> DrainReport:
        """Claim up to ``limit`` pending jobs and process each independently."""
        now = now or self.clock.now()
        limit = self.default_limit if limit is None else limit
        report = DrainReport()

        try:
            report.expired = self.queue.expire_stale(self.lease_seconds, now)
            jobs = self.queue.claim_pending(limit, now)
        except (QueueError, SQLAlchemyError) as exc:
            logger.exception("Drain aborted before processing any job")
            report.error = str(exc)
            return report

        if not jobs:
            logger.debug("No pending jobs")
            return report

        for job in jobs:
            result = await self.process_job(job)
            report.processed += 1
            if result.status == JobStatus.COMPLETED:
                report.succeeded += 1
            else:
                report.failed += 1
            report.results.append(result)

        logger.info(
            "Drain finished: %d processed, %d succeeded, %d failed",
            report.processed,
            report.succeeded,
            report.failed,
        )
        return report

    async def process_job(self, job: Job) -> JobResult:
        """Execute a claimed job and record its terminal state."""
        try:
            outcome = await self.executor.execute(job)
        except Exception as exc:
            logger.exception("Job %s crashed", job.id)
            outcome = PipelineOutcome(job_id=job.id, ok=False, error_message=f"Unexpected error: {exc}")

        now = self.clock.now()
        status = JobStatus.COMPLETED if outcome.ok else JobStatus.FAILED
        error_message = outcome.error_message
        recorded = False
        try:
            if outcome.ok:
                recorded = self.queue.mark_completed(
                    job.id,
                    outcome.result_ref,
                    now,
                    progress_count=outcome.images_generated,
                    step_errors=outcome.step_errors,
                )
            else:
                recorded = self.queue.mark_failed(
                    job.id,
                    error_message or "Job failed",
                    now,
                    result_ref=outcome.result_ref,
                    step_errors=outcome.step_errors,
                )
        except SQLAlchemyError:
            # Left generating; the lease sweep fails it later
            logger.exception("Failed to record %s for job %s", status.value, job.id)
        else:
            if not recorded:
                stored = self.queue.get(job.id)
                if stored is not None and stored.status.is_terminal:
                    logger.warning(
                        "Job %s finished as %s but was already %s",
                        job.id,
                        status.value,
                        stored.status.value,
                    )
                    status = stored.status
                    error_message = stored.error_message

        if recorded and status == JobStatus.COMPLETED and job.schedule_id:
            self.schedules.increment_counters(job.schedule_id, 1, outcome.images_generated)

        return JobResult(
            job_id=job.id,
            schedule_id=job.schedule_id,
            status=status,
            images_generated=outcome.images_generated,
            result_ref=outcome.result_ref,
            error_message=error_message,
            step_errors=outcome.step_errors,
        )

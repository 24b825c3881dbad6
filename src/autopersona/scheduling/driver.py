"""The scheduler tick: find due schedules, claim their run, enqueue jobs.

A due schedule is advanced before its jobs are enqueued. The advance is a
compare-and-set on the observed ``next_scheduled_at``, so when two ticks see
the same due schedule only the one whose advance lands enqueues anything.
An enqueue failure after a successful advance is reported, not retried; the
schedule simply waits for its next period.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, Field

from autopersona.clock import Clock, SystemClock, ensure_utc
from autopersona.errors import QueueError, ScheduleStoreError
from autopersona.queue.drainer import QueueDrainer
from autopersona.queue.store import WorkQueue
from autopersona.scheduling.expansion import expand
from autopersona.scheduling.models import Schedule, ScheduleKind
from autopersona.scheduling.store import ScheduleStore

logger = logging.getLogger("autopersona.scheduling.driver")


class ScheduleRunResult(BaseModel):
    schedule_id: str
    kind: ScheduleKind
    ok: bool = False
    skipped: bool = False  # another tick already advanced it
    jobs_queued: int = 0
    job_ids: list[str] = Field(default_factory=list)
    kicked_off_job_id: str | None = None
    error: str | None = None


class TickReport(BaseModel):
    """Outcome of one tick. ``error`` is set only when due-discovery failed."""

    schedules_processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    jobs_queued: int = 0
    results: list[ScheduleRunResult] = Field(default_factory=list)
    error: str | None = None


class SchedulerDriver:
    def __init__(
        self,
        schedules: ScheduleStore,
        queue: WorkQueue,
        *,
        drainer: QueueDrainer | None = None,
        clock: Clock | None = None,
        kickoff: bool = True,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.schedules = schedules
        self.queue = queue
        self.drainer = drainer
        self.clock = clock or SystemClock()
        self.kickoff = kickoff and drainer is not None
        self.rng_factory = rng_factory
        self._kickoffs: set[asyncio.Task] = set()

    async def run_tick(self, now: datetime | None = None) -> TickReport:
        """Run one due-discovery-and-enqueue cycle. Never raises."""
        now = ensure_utc(now or self.clock.now())
        report = TickReport()

        try:
            due = self.schedules.find_due(now)
        except ScheduleStoreError as exc:
            logger.exception("Tick aborted: could not load due schedules")
            report.error = str(exc)
            return report

        if not due:
            logger.debug("No schedules due at %s", now.isoformat())
            return report

        for schedule in due:
            result = self._run_schedule(schedule, now)
            report.results.append(result)
            if result.skipped:
                report.skipped += 1
                continue
            report.schedules_processed += 1
            report.jobs_queued += result.jobs_queued
            if result.ok:
                report.succeeded += 1
            else:
                report.failed += 1

        logger.info(
            "Tick finished: %d processed, %d succeeded, %d failed, %d jobs queued",
            report.schedules_processed,
            report.succeeded,
            report.failed,
            report.jobs_queued,
        )
        return report

    def _run_schedule(self, schedule: Schedule, now: datetime) -> ScheduleRunResult:
        result = ScheduleRunResult(schedule_id=schedule.id, kind=schedule.kind)

        try:
            claimed = self.schedules.advance(
                schedule.id, now, expected_next=schedule.next_scheduled_at
            )
        except ScheduleStoreError as exc:
            logger.exception("Failed to advance schedule %s", schedule.id)
            result.error = f"advance failed: {exc}"
            return result
        if not claimed:
            result.skipped = True
            return result

        try:
            specs = expand(schedule, self.rng_factory())
            job_ids = self.queue.enqueue_batch(specs, now)
        except (QueueError, ValueError) as exc:
            logger.exception("Failed to enqueue jobs for schedule %s", schedule.id)
            result.error = f"enqueue failed: {exc}"
            return result

        result.ok = True
        result.jobs_queued = len(job_ids)
        result.job_ids = job_ids
        logger.info(
            "Schedule %s (%s) queued %d jobs", schedule.id, schedule.kind.value, len(job_ids)
        )

        if self.kickoff and job_ids:
            self._kick_off(job_ids[0])
            result.kicked_off_job_id = job_ids[0]
        return result

    # -- Kick-off --------------------------------------------------------------

    def _kick_off(self, job_id: str) -> None:
        """Start the first job right away; the drainer picks up the rest."""
        task = asyncio.create_task(self._process_now(job_id), name=f"kickoff-{job_id}")
        self._kickoffs.add(task)
        task.add_done_callback(self._kickoffs.discard)

    async def _process_now(self, job_id: str) -> None:
        try:
            job = self.queue.claim(job_id)
            if job is None:
                logger.debug("Job %s was claimed elsewhere before kick-off", job_id)
                return
            await self.drainer.process_job(job)
        except Exception:
            logger.exception("Kick-off of job %s failed", job_id)

    async def wait_for_kickoffs(self) -> None:
        """Wait for in-flight kick-off tasks (used by one-shot callers like the CLI)."""
        while pending := [t for t in self._kickoffs if not t.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

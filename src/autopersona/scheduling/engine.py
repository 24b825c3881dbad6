"""In-process cadence. APScheduler fires the tick and the drain on intervals.

Used when the server drives itself instead of relying on an external cron
hitting ``/cron/tick`` and ``/cron/drain``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from autopersona.config.models import QueueConfig
    from autopersona.runtime import Runtime

logger = logging.getLogger("autopersona.scheduling.engine")

TICK_JOB_ID = "__tick__"
DRAIN_JOB_ID = "__drain__"


class SchedulerEngine:
    """Runs ``run_scheduler_tick`` and ``drain_queue`` on fixed intervals."""

    def __init__(self, runtime: Runtime, config: QueueConfig) -> None:
        self._runtime = runtime
        self._config = config
        self._scheduler = AsyncIOScheduler()

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        self._scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self._config.tick_interval_seconds),
            id=TICK_JOB_ID,
            name="Scheduler tick",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self._drain,
            trigger=IntervalTrigger(seconds=self._config.drain_interval_seconds),
            id=DRAIN_JOB_ID,
            name="Queue drain",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(
            "Scheduler engine started (tick every %ds, drain every %ds)",
            self._config.tick_interval_seconds,
            self._config.drain_interval_seconds,
        )

    async def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler engine stopped")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    # -- Callbacks -------------------------------------------------------------

    async def _tick(self) -> None:
        report = await self._runtime.run_scheduler_tick()
        if report.error:
            logger.error("Scheduled tick failed: %s", report.error)

    async def _drain(self) -> None:
        report = await self._runtime.drain_queue()
        if report.error:
            logger.error("Scheduled drain failed: %s", report.error)

"""Process-level wiring: build every collaborator once and hand them out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.engine import Engine

from autopersona.clock import Clock, SystemClock
from autopersona.db.core import create_db_engine, init_db, make_session_factory
from autopersona.pipeline.executor import PipelineExecutor
from autopersona.queue.drainer import DrainReport, QueueDrainer
from autopersona.queue.store import WorkQueue
from autopersona.scheduling.driver import SchedulerDriver, TickReport
from autopersona.scheduling.store import ScheduleStore
from autopersona.services.entities import SqlEntityStore
from autopersona.services.openai_text import OpenAITextService
from autopersona.services.publishing import LatePublishingService
from autopersona.services.segmind import SegmindFaceSwapService, SegmindImageService

if TYPE_CHECKING:
    from autopersona.config.settings import Settings
    from autopersona.services.base import (
        FaceSwapService,
        ImageGenerationService,
        PublishingService,
        TextGenerationService,
    )

logger = logging.getLogger("autopersona.runtime")


@dataclass
class Runtime:
    """Everything a trigger surface needs, constructed once per process."""

    settings: Settings
    engine: Engine
    schedules: ScheduleStore
    queue: WorkQueue
    entities: SqlEntityStore
    executor: PipelineExecutor
    drainer: QueueDrainer
    driver: SchedulerDriver

    async def run_scheduler_tick(self, now: datetime | None = None) -> TickReport:
        return await self.driver.run_tick(now)

    async def drain_queue(self, limit: int | None = None) -> DrainReport:
        return await self.drainer.drain(limit)

    def close(self) -> None:
        self.engine.dispose()


def build_runtime(
    settings: Settings,
    *,
    engine: Engine | None = None,
    clock: Clock | None = None,
    text: TextGenerationService | None = None,
    images: ImageGenerationService | None = None,
    face_swap: FaceSwapService | None = None,
    publisher: PublishingService | None = None,
    create_tables: bool = True,
) -> Runtime:
    """Wire stores, collaborators, executor, drainer and driver.

    Collaborators default to the HTTP/SDK adapters configured in
    ``settings``; any of them can be swapped out.
    """
    clock = clock or SystemClock()
    engine = engine or create_db_engine(settings.database_url)
    if create_tables:
        init_db(engine)
    sessions = make_session_factory(engine)

    gen = settings.generation
    timeout = gen.step_timeout_seconds
    schedules = ScheduleStore(sessions, clock)
    queue = WorkQueue(sessions, clock)
    entities = SqlEntityStore(sessions, settings.media_path, settings.segmind.image_format)

    executor = PipelineExecutor(
        text or OpenAITextService(settings.openai),
        images or SegmindImageService(settings.segmind, timeout=timeout),
        face_swap or SegmindFaceSwapService(settings.segmind, timeout=timeout),
        entities,
        queue,
        publisher=publisher or LatePublishingService(settings.publishing),
        config=gen,
    )
    drainer = QueueDrainer(
        queue,
        schedules,
        executor,
        clock=clock,
        lease_seconds=settings.queue.lease_seconds,
        default_limit=settings.queue.drain_limit,
    )
    driver = SchedulerDriver(
        schedules,
        queue,
        drainer=drainer,
        clock=clock,
        kickoff=gen.kickoff_first_job,
    )
    logger.debug("Runtime ready (db=%s)", engine.url.render_as_string(hide_password=True))
    return Runtime(
        settings=settings,
        engine=engine,
        schedules=schedules,
        queue=queue,
        entities=entities,
        executor=executor,
        drainer=drainer,
        driver=driver,
    )

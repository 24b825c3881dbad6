"""Tests for process wiring."""

from __future__ import annotations

from datetime import timedelta

import pytest

from autopersona.runtime import build_runtime
from autopersona.scheduling.models import Frequency, FrequencyType, Schedule, ScheduleKind
from autopersona.services.openai_text import OpenAITextService
from autopersona.services.publishing import LatePublishingService
from autopersona.services.segmind import SegmindFaceSwapService, SegmindImageService


def test_default_collaborators(test_settings):
    runtime = build_runtime(test_settings)
    try:
        executor = runtime.executor
        assert isinstance(executor.text, OpenAITextService)
        assert isinstance(executor.images, SegmindImageService)
        assert isinstance(executor.face_swap, SegmindFaceSwapService)
        assert isinstance(executor.publisher, LatePublishingService)
        assert executor.images.timeout == test_settings.generation.step_timeout_seconds
        assert runtime.entities.media_dir == test_settings.media_path
        assert runtime.queue.counts()["pending"] == 0
    finally:
        runtime.close()


@pytest.mark.asyncio
async def test_tick_and_drain_through_runtime(runtime, clock):
    runtime.driver.kickoff = False
    schedule = runtime.schedules.add(
        Schedule(
            owner_id="u1",
            kind=ScheduleKind.CHARACTER,
            frequency=Frequency(type=FrequencyType.DAILY),
            next_scheduled_at=clock.now() - timedelta(days=1),
            params={"characters_per_run": 2, "images_per_character": 2},
        )
    )

    tick = await runtime.run_scheduler_tick()
    drain = await runtime.drain_queue()

    assert tick.jobs_queued == 2
    assert drain.succeeded == 2
    stored = runtime.schedules.get(schedule.id)
    assert stored.total_runs_completed == 2
    assert stored.total_images_generated == 4
    assert stored.next_scheduled_at == clock.now() + timedelta(days=1)

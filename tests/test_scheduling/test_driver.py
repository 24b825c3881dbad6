"""Tests for the scheduler tick."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from autopersona.config.models import GenerationConfig
from autopersona.db.tables import ScheduleRow
from autopersona.errors import QueueError, ScheduleStoreError
from autopersona.pipeline.executor import PipelineExecutor
from autopersona.queue.drainer import QueueDrainer
from autopersona.queue.models import JobKind, JobStatus
from autopersona.scheduling.driver import SchedulerDriver
from autopersona.scheduling.models import Frequency, FrequencyType, Schedule, ScheduleKind

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _character_schedule(**kwargs) -> Schedule:
    data = {
        "owner_id": "u1",
        "kind": ScheduleKind.CHARACTER,
        "frequency": Frequency(type=FrequencyType.DAILY, value=1),
        "next_scheduled_at": NOW - timedelta(days=1),
        "params": {"characters_per_run": 3, "images_per_character": 2},
    }
    data.update(kwargs)
    return Schedule(**data)


@pytest.fixture
def executor(fake_text, fake_images, fake_face_swap, entity_store, work_queue):
    return PipelineExecutor(
        fake_text,
        fake_images,
        fake_face_swap,
        entity_store,
        work_queue,
        config=GenerationConfig(step_timeout_seconds=2),
        rng_factory=lambda: random.Random(5),
    )


@pytest.fixture
def drainer(work_queue, schedule_store, executor, clock):
    return QueueDrainer(work_queue, schedule_store, executor, clock=clock)


@pytest.fixture
def driver(schedule_store, work_queue, drainer, clock):
    return SchedulerDriver(
        schedule_store,
        work_queue,
        drainer=drainer,
        clock=clock,
        kickoff=False,
        rng_factory=lambda: random.Random(11),
    )


@pytest.mark.asyncio
async def test_due_schedule_advances_and_enqueues(driver, schedule_store, work_queue):
    schedule = schedule_store.add(_character_schedule())

    report = await driver.run_tick()

    assert report.error is None
    assert report.schedules_processed == 1
    assert report.succeeded == 1
    assert report.jobs_queued == 3

    stored = schedule_store.get(schedule.id)
    assert stored.last_executed_at == NOW
    assert stored.next_scheduled_at == NOW + timedelta(days=1)

    jobs = work_queue.recent(schedule_id=schedule.id)
    assert len(jobs) == 3
    assert all(j.status == JobStatus.PENDING for j in jobs)
    assert all(j.kind == JobKind.CHARACTER for j in jobs)
    assert all(j.total_images == 2 for j in jobs)


@pytest.mark.asyncio
async def test_nothing_due(driver, schedule_store):
    schedule_store.add(_character_schedule(next_scheduled_at=NOW + timedelta(hours=1)))
    report = await driver.run_tick()
    assert report.schedules_processed == 0
    assert report.results == []
    assert report.error is None


@pytest.mark.asyncio
async def test_paused_schedule_is_ignored(driver, schedule_store, work_queue):
    schedule_store.add(_character_schedule(is_active=False))
    report = await driver.run_tick()
    assert report.schedules_processed == 0
    assert work_queue.counts()["pending"] == 0


@pytest.mark.asyncio
async def test_repeated_tick_does_not_enqueue_twice(driver, schedule_store, work_queue):
    schedule_store.add(_character_schedule())

    await driver.run_tick()
    second = await driver.run_tick()

    assert second.schedules_processed == 0
    assert work_queue.counts()["pending"] == 3


@pytest.mark.asyncio
async def test_lost_race_is_skipped(driver, schedule_store, work_queue):
    """A schedule advanced by another tick after discovery enqueues nothing."""
    schedule = schedule_store.add(_character_schedule())
    stale = schedule_store.find_due(NOW)

    assert schedule_store.advance(schedule.id, NOW, expected_next=schedule.next_scheduled_at)
    with patch.object(schedule_store, "find_due", return_value=stale):
        report = await driver.run_tick()

    assert report.skipped == 1
    assert report.schedules_processed == 0
    assert report.results[0].skipped is True
    assert work_queue.counts()["pending"] == 0


@pytest.mark.asyncio
async def test_find_due_failure_is_reported(driver, schedule_store):
    with patch.object(schedule_store, "find_due", side_effect=ScheduleStoreError("db down")):
        report = await driver.run_tick()
    assert report.error == "db down"
    assert report.schedules_processed == 0


@pytest.mark.asyncio
async def test_advance_failure_fails_only_that_schedule(driver, schedule_store, work_queue):
    first = schedule_store.add(_character_schedule(next_scheduled_at=NOW - timedelta(hours=2)))
    second = schedule_store.add(_character_schedule(next_scheduled_at=NOW - timedelta(hours=1)))
    real_advance = schedule_store.advance

    def flaky(schedule_id, now, expected_next=None):
        if schedule_id == first.id:
            raise ScheduleStoreError("locked")
        return real_advance(schedule_id, now, expected_next=expected_next)

    with patch.object(schedule_store, "advance", side_effect=flaky):
        report = await driver.run_tick()

    assert report.schedules_processed == 2
    assert report.failed == 1
    assert report.succeeded == 1
    assert "advance failed" in report.results[0].error
    assert work_queue.recent(schedule_id=first.id) == []
    assert len(work_queue.recent(schedule_id=second.id)) == 3
    # The failed one is still due and gets picked up next tick
    assert schedule_store.get(first.id).next_scheduled_at == NOW - timedelta(hours=2)


@pytest.mark.asyncio
async def test_enqueue_failure_still_advances(driver, schedule_store, work_queue):
    schedule = schedule_store.add(_character_schedule())

    with patch.object(work_queue, "enqueue_batch", side_effect=QueueError("disk full")):
        report = await driver.run_tick()

    assert report.failed == 1
    assert "enqueue failed" in report.results[0].error
    assert schedule_store.get(schedule.id).next_scheduled_at == NOW + timedelta(days=1)


@pytest.mark.asyncio
async def test_kickoff_processes_first_job(
    schedule_store, work_queue, drainer, clock, fake_images
):
    driver = SchedulerDriver(schedule_store, work_queue, drainer=drainer, clock=clock)
    schedule_store.add(_character_schedule())

    report = await driver.run_tick()
    await driver.wait_for_kickoffs()

    kicked = report.results[0].kicked_off_job_id
    assert kicked == report.results[0].job_ids[0]
    job = work_queue.get(kicked)
    assert job.status == JobStatus.COMPLETED
    assert job.progress_count == 2
    assert work_queue.counts() == {"pending": 2, "generating": 0, "completed": 1, "failed": 0}
    assert len(fake_images.calls) == 2


@pytest.mark.asyncio
async def test_kickoff_disabled_without_drainer(schedule_store, work_queue, clock):
    driver = SchedulerDriver(schedule_store, work_queue, clock=clock)
    schedule_store.add(_character_schedule())

    report = await driver.run_tick()

    assert report.results[0].kicked_off_job_id is None
    assert work_queue.counts()["pending"] == 3


@pytest.mark.asyncio
async def test_persistence_failure_fails_job_after_advance(
    driver, drainer, schedule_store, work_queue, entity_store
):
    schedule = schedule_store.add(
        _character_schedule(params={"characters_per_run": 1, "images_per_character": 2})
    )
    await driver.run_tick()

    with patch.object(
        entity_store, "create_character", side_effect=OperationalError("INSERT", {}, Exception("locked"))
    ):
        report = await drainer.drain()

    assert report.failed == 1
    (job,) = work_queue.recent(schedule_id=schedule.id)
    assert job.status == JobStatus.FAILED
    assert "Failed to persist" in job.error_message

    stored = schedule_store.get(schedule.id)
    assert stored.next_scheduled_at == NOW + timedelta(days=1)
    assert stored.total_runs_completed == 0


@pytest.mark.asyncio
async def test_tick_then_drain_updates_counters(driver, drainer, schedule_store):
    schedule = schedule_store.add(_character_schedule())

    await driver.run_tick()
    report = await drainer.drain(limit=10)

    assert report.succeeded == 3
    stored = schedule_store.get(schedule.id)
    assert stored.total_runs_completed == 3
    assert stored.total_images_generated == 6


@pytest.mark.asyncio
async def test_schedule_with_invalid_params_fails_alone(
    driver, schedule_store, work_queue, session_factory
):
    bad = schedule_store.add(_character_schedule(next_scheduled_at=NOW - timedelta(hours=2)))
    good = schedule_store.add(_character_schedule())
    with session_factory() as session, session.begin():
        session.execute(
            update(ScheduleRow).where(ScheduleRow.id == bad.id).values(params={"characters_per_run": 0})
        )

    report = await driver.run_tick()

    assert report.error is None
    assert report.succeeded == 1
    assert report.failed == 1
    assert report.jobs_queued == 3
    by_id = {r.schedule_id: r for r in report.results}
    assert by_id[bad.id].error.startswith("enqueue failed")
    assert by_id[good.id].ok
    assert schedule_store.get(bad.id).next_scheduled_at > NOW
    assert len(work_queue.recent(schedule_id=bad.id)) == 0

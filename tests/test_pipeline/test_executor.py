"""Tests for the generation pipeline."""

from __future__ import annotations

import asyncio
import random
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from autopersona.config.models import GenerationConfig
from autopersona.db.tables import CharacterImageRow, CharacterRow, GeneratedContentRow
from autopersona.pipeline.executor import PipelineExecutor
from autopersona.pipeline.models import PipelineStep
from autopersona.queue.models import Job, JobKind, JobSpec
from autopersona.services.base import CharacterProfile


@pytest.fixture
def executor(fake_text, fake_images, fake_face_swap, entity_store, work_queue, fake_publisher):
    return PipelineExecutor(
        fake_text,
        fake_images,
        fake_face_swap,
        entity_store,
        work_queue,
        publisher=fake_publisher,
        config=GenerationConfig(step_timeout_seconds=2),
        rng_factory=lambda: random.Random(0),
    )


def _claimed(work_queue, kind: JobKind, payload: dict, images: int, owner: str = "u1") -> Job:
    spec = JobSpec(owner_id=owner, kind=kind, payload=payload, total_images=images)
    (job_id,) = work_queue.enqueue_batch([spec])
    return work_queue.claim(job_id)


def _character_job(work_queue, images: int = 3, **payload) -> Job:
    data = {"profile_type": "chef", "gender": "female", "image_count": images}
    data.update(payload)
    return _claimed(work_queue, JobKind.CHARACTER, data, images)


@pytest.fixture
def character_id(entity_store) -> str:
    profile = CharacterProfile(
        name="Leo Park",
        description="Street photographer.",
        category="artist",
        profile_type="artist",
        gender="male",
        physical_attributes={"gender": "male", "age": "early 30s", "hair_color": "black"},
    )
    return entity_store.create_character("u1", profile, ["artist"])


def _content_job(work_queue, character_id: str, images: int = 1, owner: str = "u1", **payload) -> Job:
    data = {"character_id": character_id, "image_count": images}
    data.update(payload)
    return _claimed(work_queue, JobKind.CONTENT, data, images, owner=owner)


# -- Character jobs ------------------------------------------------------------


@pytest.mark.asyncio
async def test_character_job_creates_character_and_images(executor, work_queue, session_factory):
    job = _character_job(work_queue, images=3)

    outcome = await executor.execute(job)

    assert outcome.ok
    assert outcome.images_generated == 3
    assert outcome.step_errors == []
    with session_factory() as session:
        character = session.get(CharacterRow, outcome.result_ref)
        assert character.name == "Mara Quinn"
        assert character.owner_id == "u1"
        assert "chef" in character.tags
        assert character.main_face_image_id == outcome.image_ids[0]
    assert work_queue.get(job.id).progress_count == 3


@pytest.mark.asyncio
async def test_partial_image_failure_still_completes(executor, work_queue, fake_images):
    """Three images with the second failing: two land, one error recorded."""
    fake_images.fail_on = {2}
    job = _character_job(work_queue, images=3)

    outcome = await executor.execute(job)

    assert outcome.ok
    assert outcome.images_generated == 2
    assert outcome.step_errors == ["Image 2: render 2 failed"]
    assert work_queue.get(job.id).progress_count == 2


@pytest.mark.asyncio
async def test_step_outcomes_are_recorded_in_order(executor, work_queue, fake_images):
    fake_images.fail_on = {2}
    job = _character_job(work_queue, images=3)

    outcome = await executor.execute(job)

    assert [(s.step, s.ok) for s in outcome.steps] == [
        (PipelineStep.PROFILE_SYNTHESIS, True),
        (PipelineStep.PERSISTENCE, True),
        (PipelineStep.IMAGE_GENERATION, True),
        (PipelineStep.IMAGE_GENERATION, False),
        (PipelineStep.IMAGE_GENERATION, True),
        (PipelineStep.FACE_SWAP, True),
    ]
    assert outcome.steps[3].detail == "Image 2: render 2 failed"


@pytest.mark.asyncio
async def test_first_image_becomes_reference_face(
    executor, work_queue, fake_face_swap, session_factory
):
    job = _character_job(work_queue, images=3)

    outcome = await executor.execute(job)

    # Image 1 is the face, images 2 and 3 are swapped onto it
    assert [src for src, _ in fake_face_swap.calls] == [b"image-1", b"image-1"]
    with session_factory() as session:
        rows = session.scalars(
            select(CharacterImageRow).where(CharacterImageRow.character_id == outcome.result_ref)
        ).all()
        by_id = {r.id: r for r in rows}
    first, second, third = (by_id[i] for i in outcome.image_ids)
    assert first.is_main_face and not first.face_swapped
    assert second.face_swapped and not second.is_main_face
    assert Path(third.path).read_bytes() == b"swapped:image-3"


@pytest.mark.asyncio
async def test_face_swap_failure_keeps_original(executor, work_queue, fake_face_swap):
    fake_face_swap.fail = True
    job = _character_job(work_queue, images=2)

    outcome = await executor.execute(job)

    assert outcome.ok
    assert outcome.images_generated == 2
    assert outcome.step_errors == ["Image 2 face swap: no face detected"]


@pytest.mark.asyncio
async def test_all_images_failing_fails_the_job(executor, work_queue, fake_images):
    fake_images.fail_on = {1, 2}
    job = _character_job(work_queue, images=2)

    outcome = await executor.execute(job)

    assert not outcome.ok
    assert outcome.failed_step == PipelineStep.IMAGE_GENERATION
    assert outcome.error_message == "All 2 image generations failed"
    assert len(outcome.step_errors) == 2
    assert outcome.result_ref  # the character itself was created


@pytest.mark.asyncio
async def test_profile_failure_is_fatal(executor, work_queue, fake_text, fake_images):
    fake_text.fail = True
    job = _character_job(work_queue)

    outcome = await executor.execute(job)

    assert not outcome.ok
    assert outcome.failed_step == PipelineStep.PROFILE_SYNTHESIS
    assert fake_images.calls == []


@pytest.mark.asyncio
async def test_persistence_failure_is_fatal(executor, work_queue, entity_store, fake_images):
    job = _character_job(work_queue)
    error = OperationalError("INSERT", {}, Exception("disk I/O error"))

    with patch.object(entity_store, "create_character", side_effect=error):
        outcome = await executor.execute(job)

    assert not outcome.ok
    assert outcome.failed_step == PipelineStep.PERSISTENCE
    assert outcome.error_message.startswith("Failed to persist")
    assert outcome.steps[-1].step == PipelineStep.PERSISTENCE
    assert outcome.steps[-1].ok is False
    assert fake_images.calls == []


@pytest.mark.asyncio
async def test_slow_collaborator_times_out(work_queue, fake_text, fake_face_swap, entity_store):
    class SlowImages:
        async def generate(self, prompt, width, height):
            await asyncio.sleep(5)
            return b"late"

    executor = PipelineExecutor(
        fake_text,
        SlowImages(),
        fake_face_swap,
        entity_store,
        work_queue,
        config=GenerationConfig(step_timeout_seconds=0.05),
    )
    job = _character_job(work_queue, images=1)

    outcome = await executor.execute(job)

    assert not outcome.ok
    assert outcome.step_errors == ["Image 1: image_generation timed out after 0.05s"]


@pytest.mark.asyncio
async def test_auto_post_failure_is_not_fatal(executor, work_queue, fake_publisher):
    fake_publisher.fail = True
    job = _character_job(work_queue, images=1, auto_post=True, target_platforms=["instagram"])

    outcome = await executor.execute(job)

    assert outcome.ok
    assert outcome.post_id is None
    assert outcome.step_errors == ["Auto-post: rate limited"]


# -- Content jobs --------------------------------------------------------------


@pytest.mark.asyncio
async def test_content_job_generates_from_suggestion(
    executor, work_queue, character_id, fake_text, fake_images, session_factory
):
    job = _content_job(work_queue, character_id, images=2, theme="rainy day")

    outcome = await executor.execute(job)

    assert outcome.ok
    assert outcome.images_generated == 2
    assert fake_text.prompt_calls[0]["themes"] == ["rainy day"]
    assert "reading on a sunny balcony" in fake_images.calls[0]
    with session_factory() as session:
        content = session.get(GeneratedContentRow, outcome.result_ref)
        assert content.status == "generated"
        assert content.image_id == outcome.image_ids[0]
        assert content.character_id == character_id
        character = session.get(CharacterRow, character_id)
        assert character.main_face_image_id == outcome.image_ids[0]


@pytest.mark.asyncio
async def test_content_job_reuses_main_face(
    executor, work_queue, character_id, entity_store, fake_face_swap
):
    face_id = entity_store.attach_image(character_id, b"face", {"prompt": "portrait"})
    entity_store.set_main_face(character_id, face_id)
    job = _content_job(work_queue, character_id, images=2)

    outcome = await executor.execute(job)

    assert outcome.ok
    assert [src for src, _ in fake_face_swap.calls] == [b"face", b"face"]
    assert entity_store.get_character(character_id).main_face_image_id == face_id


@pytest.mark.asyncio
async def test_content_prompt_override_skips_text(executor, work_queue, character_id, fake_text):
    job = _content_job(work_queue, character_id, prompt="sunset over the pier")
    outcome = await executor.execute(job)
    assert outcome.ok
    assert fake_text.prompt_calls == []


@pytest.mark.asyncio
async def test_content_passes_previous_prompts(executor, work_queue, character_id, fake_text):
    await executor.execute(_content_job(work_queue, character_id))
    await executor.execute(_content_job(work_queue, character_id))
    assert fake_text.prompt_calls[1]["previous"] == ["reading on a sunny balcony"]


@pytest.mark.asyncio
async def test_content_for_someone_elses_character_fails(executor, work_queue, character_id):
    job = _content_job(work_queue, character_id, owner="intruder")

    outcome = await executor.execute(job)

    assert not outcome.ok
    assert outcome.failed_step == PipelineStep.PROMPT_GENERATION
    assert "not found" in outcome.error_message


@pytest.mark.asyncio
async def test_content_for_missing_character_fails(executor, work_queue):
    outcome = await executor.execute(_content_job(work_queue, "ghost"))
    assert not outcome.ok
    assert outcome.failed_step == PipelineStep.PROMPT_GENERATION


@pytest.mark.asyncio
async def test_content_all_images_failing_marks_content_failed(
    executor, work_queue, character_id, fake_images, session_factory
):
    fake_images.fail_on = {1}
    outcome = await executor.execute(_content_job(work_queue, character_id))

    assert not outcome.ok
    with session_factory() as session:
        assert session.get(GeneratedContentRow, outcome.result_ref).status == "failed"


@pytest.mark.asyncio
async def test_content_auto_post_builds_caption(
    executor, work_queue, character_id, fake_publisher, session_factory
):
    job = _content_job(
        work_queue, character_id, auto_post=True, target_platforms=["instagram", "tiktok"]
    )

    outcome = await executor.execute(job)

    assert outcome.post_id == "post-123"
    artifact, platforms, caption = fake_publisher.calls[0]
    assert artifact == outcome.image_ids[0]
    assert platforms == ["instagram", "tiktok"]
    assert caption == "Slow mornings.\n\n#slowliving #coffee"
    with session_factory() as session:
        content = session.get(GeneratedContentRow, outcome.result_ref)
        assert content.status == "posted"
        assert content.post_id == "post-123"


@pytest.mark.asyncio
async def test_auto_post_without_platforms(executor, work_queue, character_id, fake_publisher):
    job = _content_job(work_queue, character_id, auto_post=True)
    outcome = await executor.execute(job)
    assert outcome.ok
    assert fake_publisher.calls == []
    assert outcome.step_errors[0].startswith("Auto-post:")

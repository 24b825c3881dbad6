"""Runs one generation job: profile or prompt, entity, images, optional post.

Steps run strictly in order. Image iterations are sequential because the
first successful image can become the reference face for every later one;
that face is passed forward explicitly rather than re-read from storage.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from autopersona.config.models import GenerationConfig
from autopersona.errors import StepError
from autopersona.generation.profiles import character_tags, scene_prompts
from autopersona.generation.prompts import build_character_prompt
from autopersona.pipeline.models import PipelineOutcome, PipelineStep, StepOutcome
from autopersona.queue.models import Job, JobKind
from autopersona.queue.store import WorkQueue
from autopersona.services.base import (
    EntityStore,
    FaceSwapService,
    ImageGenerationService,
    PromptSuggestion,
    PublishingService,
    TextGenerationService,
)

logger = logging.getLogger("autopersona.pipeline.executor")

T = TypeVar("T")


@dataclass
class _Trace:
    """Step outcomes of one job, in execution order."""

    steps: list[StepOutcome] = field(default_factory=list)

    def ok(self, step: PipelineStep, detail: str = "") -> None:
        self.steps.append(StepOutcome(step=step, ok=True, detail=detail))

    def failed(self, step: PipelineStep, detail: str) -> None:
        self.steps.append(StepOutcome(step=step, ok=False, detail=detail))

    @property
    def errors(self) -> list[str]:
        return [s.detail for s in self.steps if not s.ok]


@dataclass
class _ImageRun:
    """Mutable state threaded through one job's image loop."""

    character_id: str
    face: bytes | None
    has_main_face: bool
    trace: _Trace
    image_ids: list[str] = field(default_factory=list)


class PipelineExecutor:
    """Executes jobs against injected collaborators.

    ``execute`` never raises for step failures; it reports them in the
    returned ``PipelineOutcome``.
    """

    def __init__(
        self,
        text: TextGenerationService,
        images: ImageGenerationService,
        face_swap: FaceSwapService,
        entities: EntityStore,
        queue: WorkQueue,
        *,
        publisher: PublishingService | None = None,
        config: GenerationConfig | None = None,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.text = text
        self.images = images
        self.face_swap = face_swap
        self.entities = entities
        self.queue = queue
        self.publisher = publisher
        self.config = config or GenerationConfig()
        self.rng_factory = rng_factory

    async def execute(self, job: Job) -> PipelineOutcome:
        logger.info("Executing %s job %s (%d images)", job.kind.value, job.id, job.total_images)
        trace = _Trace()
        try:
            if job.kind == JobKind.CHARACTER:
                return await self._run_character(job, trace)
            return await self._run_content(job, trace)
        except StepError as exc:
            logger.warning("Job %s failed at %s: %s", job.id, exc.step, exc)
            step = PipelineStep(exc.step) if exc.step else None
            errors = trace.errors
            if step is not None:
                trace.failed(step, str(exc))
            return PipelineOutcome(
                job_id=job.id,
                ok=False,
                error_message=str(exc),
                failed_step=step,
                steps=trace.steps,
                step_errors=errors,
            )

    # -- Collaborator calls ----------------------------------------------------

    async def _call(self, step: PipelineStep, awaitable: Awaitable[T]) -> T:
        """Await a collaborator under the step timeout; any failure becomes a StepError."""
        timeout = self.config.step_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except TimeoutError as exc:
            raise StepError(f"{step.value} timed out after {timeout:g}s", step=step) from exc
        except StepError as exc:
            exc.step = exc.step or step
            raise
        except Exception as exc:
            raise StepError(str(exc) or type(exc).__name__, step=step) from exc

    def _store(self, step: PipelineStep, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except StepError as exc:
            exc.step = exc.step or step
            raise
        except Exception as exc:
            raise StepError(f"Failed to persist: {exc}", step=step) from exc

    # -- Job flavors -----------------------------------------------------------

    async def _run_character(self, job: Job, trace: _Trace) -> PipelineOutcome:
        payload = job.character_payload()
        profile = await self._call(
            PipelineStep.PROFILE_SYNTHESIS,
            self.text.generate_profile(payload.profile_type, payload.gender),
        )
        trace.ok(PipelineStep.PROFILE_SYNTHESIS, profile.name)

        tags = character_tags(
            payload.profile_type, profile.gender, profile.physical_attributes, profile.traits
        )
        character_id = self._store(
            PipelineStep.PERSISTENCE,
            self.entities.create_character,
            job.owner_id,
            profile,
            tags,
            payload.make_public,
        )
        trace.ok(PipelineStep.PERSISTENCE, character_id)

        rng = self.rng_factory()
        prompts = [
            build_character_prompt(profile.physical_attributes, scene)
            for scene in scene_prompts(payload.profile_type, job.total_images, rng)
        ]
        run = _ImageRun(
            character_id=character_id,
            face=self._reference_face(payload.face_image_id),
            has_main_face=False,
            trace=trace,
        )
        await self._generate_images(job, run, prompts)

        if not run.image_ids:
            return self._no_images(job, run, character_id)

        post_id = None
        if payload.auto_post:
            post_id = await self._auto_post(run, payload.target_platforms, profile.description)

        logger.info(
            "Character %s (%s) created with %d/%d images",
            character_id,
            profile.name,
            len(run.image_ids),
            job.total_images,
        )
        return self._done(job, run, character_id, post_id)

    async def _run_content(self, job: Job, trace: _Trace) -> PipelineOutcome:
        payload = job.content_payload()
        character = self._store(
            PipelineStep.PROMPT_GENERATION, self.entities.get_character, payload.character_id
        )
        if character is None or character.owner_id != job.owner_id:
            raise StepError(
                f"Character {payload.character_id} not found for owner {job.owner_id}",
                step=PipelineStep.PROMPT_GENERATION,
            )

        if payload.prompt:
            suggestion = PromptSuggestion(prompt=payload.prompt)
        else:
            previous = self._store(
                PipelineStep.PROMPT_GENERATION, self.entities.recent_prompts, character.id, 10
            )
            themes = [payload.theme] if payload.theme else payload.custom_themes
            suggestions = await self._call(
                PipelineStep.PROMPT_GENERATION,
                self.text.generate_prompts(
                    character,
                    payload.content_type,
                    themes=themes,
                    style=payload.style_preferences,
                    previous_prompts=previous,
                    count=1,
                ),
            )
            if not suggestions:
                raise StepError("No prompt suggestions returned", step=PipelineStep.PROMPT_GENERATION)
            suggestion = suggestions[0]
        trace.ok(PipelineStep.PROMPT_GENERATION, suggestion.prompt)

        content_id = self._store(
            PipelineStep.PERSISTENCE,
            self.entities.create_content,
            job.owner_id,
            character.id,
            job.schedule_id,
            suggestion,
            payload.content_type,
        )
        trace.ok(PipelineStep.PERSISTENCE, content_id)

        face_id = payload.face_image_id or character.main_face_image_id
        run = _ImageRun(
            character_id=character.id,
            face=self._reference_face(face_id),
            has_main_face=character.main_face_image_id is not None,
            trace=trace,
        )
        if character.physical_attributes:
            prompt = build_character_prompt(character.physical_attributes, suggestion.prompt)
        else:
            prompt = suggestion.prompt
        await self._generate_images(job, run, [prompt] * job.total_images)

        if not run.image_ids:
            self._finish_content(content_id, None, "failed", run)
            return self._no_images(job, run, content_id)

        post_id = None
        if payload.auto_post:
            caption = suggestion.caption
            if suggestion.hashtags:
                caption += "\n\n" + " ".join(
                    h if h.startswith("#") else f"#{h}" for h in suggestion.hashtags
                )
            post_id = await self._auto_post(run, payload.target_platforms, caption)

        self._finish_content(
            content_id, run.image_ids[0], "posted" if post_id else "generated", run, post_id
        )
        return self._done(job, run, content_id, post_id)

    # -- Steps -----------------------------------------------------------------

    def _reference_face(self, image_id: str | None) -> bytes | None:
        if not image_id:
            return None
        try:
            face = self.entities.image_bytes(image_id)
        except SQLAlchemyError:
            logger.exception("Failed to load reference face %s", image_id)
            return None
        if face is None:
            logger.warning("Reference face %s is unavailable, skipping face swap", image_id)
        return face

    async def _generate_images(self, job: Job, run: _ImageRun, prompts: list[str]) -> None:
        for index, prompt in enumerate(prompts, start=1):
            await self._generate_one(job, run, index, prompt)
            # Also renews the job's lease, so it runs after failed images too
            try:
                self.queue.record_progress(job.id, len(run.image_ids))
            except SQLAlchemyError:
                logger.exception("Failed to record progress for job %s", job.id)

    async def _generate_one(self, job: Job, run: _ImageRun, index: int, prompt: str) -> None:
        cfg = self.config
        try:
            image = await self._call(
                PipelineStep.IMAGE_GENERATION,
                self.images.generate(prompt, cfg.image_width, cfg.image_height),
            )
        except StepError as exc:
            logger.warning("Job %s image %d failed: %s", job.id, index, exc)
            run.trace.failed(PipelineStep.IMAGE_GENERATION, f"Image {index}: {exc}")
            return
        run.trace.ok(PipelineStep.IMAGE_GENERATION, f"Image {index}")

        swapped = False
        if run.face is not None:
            try:
                image = await self._call(
                    PipelineStep.FACE_SWAP, self.face_swap.swap(run.face, image)
                )
                swapped = True
                run.trace.ok(PipelineStep.FACE_SWAP, f"Image {index}")
            except StepError as exc:
                logger.warning("Job %s face swap %d failed, keeping original: %s", job.id, index, exc)
                run.trace.failed(PipelineStep.FACE_SWAP, f"Image {index} face swap: {exc}")

        try:
            image_id = self._store(
                PipelineStep.PERSISTENCE,
                self.entities.attach_image,
                run.character_id,
                image,
                {"prompt": prompt, "face_swapped": swapped, "job_id": job.id, "index": index},
            )
        except StepError as exc:
            run.trace.failed(PipelineStep.PERSISTENCE, f"Image {index}: {exc}")
            return
        run.image_ids.append(image_id)

        if not run.has_main_face:
            try:
                self._store(
                    PipelineStep.PERSISTENCE,
                    self.entities.set_main_face,
                    run.character_id,
                    image_id,
                )
                run.has_main_face = True
            except StepError as exc:
                run.trace.failed(PipelineStep.PERSISTENCE, f"Image {index} main face: {exc}")
            if run.face is None:
                run.face = image

    async def _auto_post(self, run: _ImageRun, platforms: list[str], caption: str) -> str | None:
        if self.publisher is None or not platforms:
            run.trace.failed(
                PipelineStep.AUTO_POST, "Auto-post: no publisher or target platforms configured"
            )
            return None
        try:
            post_id = await self._call(
                PipelineStep.AUTO_POST,
                self.publisher.post(run.image_ids[0], platforms, caption),
            )
        except StepError as exc:
            logger.warning("Auto-post failed for %s: %s", run.image_ids[0], exc)
            run.trace.failed(PipelineStep.AUTO_POST, f"Auto-post: {exc}")
            return None
        run.trace.ok(PipelineStep.AUTO_POST, post_id)
        return post_id

    def _finish_content(
        self,
        content_id: str,
        image_id: str | None,
        status: str,
        run: _ImageRun,
        post_id: str | None = None,
    ) -> None:
        try:
            self.entities.finish_content(content_id, image_id, status, post_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to update content %s", content_id)
            run.trace.failed(PipelineStep.PERSISTENCE, f"Content status: {exc}")

    # -- Outcomes --------------------------------------------------------------

    def _no_images(self, job: Job, run: _ImageRun, result_ref: str) -> PipelineOutcome:
        logger.warning("Job %s produced no images", job.id)
        return PipelineOutcome(
            job_id=job.id,
            ok=False,
            result_ref=result_ref,
            steps=run.trace.steps,
            step_errors=run.trace.errors,
            error_message=f"All {job.total_images} image generations failed",
            failed_step=PipelineStep.IMAGE_GENERATION,
        )

    def _done(
        self, job: Job, run: _ImageRun, result_ref: str, post_id: str | None
    ) -> PipelineOutcome:
        return PipelineOutcome(
            job_id=job.id,
            ok=True,
            result_ref=result_ref,
            images_generated=len(run.image_ids),
            image_ids=run.image_ids,
            steps=run.trace.steps,
            step_errors=run.trace.errors,
            post_id=post_id,
        )

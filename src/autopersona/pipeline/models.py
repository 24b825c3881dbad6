"""Pipeline step names and execution outcome."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class PipelineStep(StrEnum):
    PROFILE_SYNTHESIS = "profile_synthesis"
    PROMPT_GENERATION = "prompt_generation"
    PERSISTENCE = "persistence"
    IMAGE_GENERATION = "image_generation"
    FACE_SWAP = "face_swap"
    AUTO_POST = "auto_post"


class StepOutcome(BaseModel):
    """One attempt at one step. Image steps repeat once per image."""

    step: PipelineStep
    ok: bool
    detail: str = ""


class PipelineOutcome(BaseModel):
    """Result of running one job through the pipeline.

    ``ok`` is False only for fatal failures (profile or prompt generation,
    entity persistence, zero successful images). Non-fatal problems are
    listed in ``step_errors`` either way; ``steps`` keeps every attempt in
    execution order.
    """

    job_id: str
    ok: bool
    result_ref: str | None = None  # character or content ID
    images_generated: int = 0
    image_ids: list[str] = Field(default_factory=list)
    steps: list[StepOutcome] = Field(default_factory=list)
    step_errors: list[str] = Field(default_factory=list)
    error_message: str | None = None
    failed_step: PipelineStep | None = None
    post_id: str | None = None

"""Pydantic models for the generation work queue."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class JobStatus(StrEnum):
    """Lifecycle states for a generation job. Transitions only move forward."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobKind(StrEnum):
    CHARACTER = "character"  # synthesize a new character plus its images
    CONTENT = "content"  # new images/posts for an existing character


def _generate_id() -> str:
    return secrets.token_hex(6)


class CharacterJobPayload(BaseModel):
    """What a character job needs: who to invent and how many images."""

    profile_type: str = "influencer"
    gender: str = "female"  # male|female|non-binary
    image_count: int = Field(default=5, ge=1, le=10)
    make_public: bool = False
    face_image_id: str | None = None  # optional supplied reference face
    auto_post: bool = False
    target_platforms: list[str] = Field(default_factory=list)


class ContentJobPayload(BaseModel):
    """What a content job needs: which character and what to shoot."""

    character_id: str
    image_count: int = Field(default=1, ge=1, le=10)
    content_type: str = "lifestyle"
    custom_themes: list[str] = Field(default_factory=list)
    style_preferences: dict[str, Any] = Field(default_factory=dict)
    theme: str | None = None  # theme drawn for this job
    seed: int | None = None
    prompt: str | None = None  # skips prompt generation when set
    face_image_id: str | None = None
    auto_post: bool = False
    target_platforms: list[str] = Field(default_factory=list)


class JobSpec(BaseModel):
    """A job to be enqueued."""

    owner_id: str
    kind: JobKind
    schedule_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    total_images: int = 1


class Job(BaseModel):
    """One unit of queued generation work."""

    id: str = Field(default_factory=_generate_id)
    schedule_id: str | None = None
    owner_id: str
    kind: JobKind
    status: JobStatus = JobStatus.PENDING
    payload: dict[str, Any] = Field(default_factory=dict)
    progress_count: int = 0
    total_images: int = 1
    result_ref: str | None = None
    error_message: str | None = None
    step_errors: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    heartbeat_at: datetime | None = None
    completed_at: datetime | None = None

    def character_payload(self) -> CharacterJobPayload:
        return CharacterJobPayload.model_validate(self.payload)

    def content_payload(self) -> ContentJobPayload:
        return ContentJobPayload.model_validate(self.payload)

"""SQLAlchemy table mappings for schedules, jobs and generated entities."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from autopersona.db.core import Base, UTCDateTime


def generate_id() -> str:
    return secrets.token_hex(6)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ScheduleRow(Base):
    __tablename__ = "schedules"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    target_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)  # content|character
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # frequency
    frequency_type: Mapped[str] = mapped_column(String(16), nullable=False)
    frequency_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    time_slots: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    last_executed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    next_scheduled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    total_runs_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_images_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    params: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("ix_schedules_due", "is_active", "next_scheduled_at"),)


class JobRow(Base):
    __tablename__ = "generation_jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    schedule_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)  # character|content

    # pending|generating|completed|failed
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    progress_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_images: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    result_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    step_errors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    started_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    # Renewed by progress updates; the lease runs from here
    heartbeat_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (Index("ix_generation_jobs_status_created", "status", "created_at"),)


class CharacterRow(Base):
    __tablename__ = "characters"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    personality: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    physical_attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    main_face_image_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


class CharacterImageRow(Base):
    __tablename__ = "character_images"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    character_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("characters.id", ondelete="CASCADE"), nullable=False, index=True
    )
    path: Mapped[str] = mapped_column(Text, nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_main_face: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    face_swapped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


class GeneratedContentRow(Base):
    __tablename__ = "generated_content"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    character_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    schedule_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    image_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    original_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    enhanced_prompt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    caption: Mapped[str] = mapped_column(Text, nullable=False, default="")
    hashtags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    ai_suggestions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    content_type: Mapped[str] = mapped_column(String(32), nullable=False, default="lifestyle")
    # generating|generated|scheduled|posted|failed
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="generating")
    post_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

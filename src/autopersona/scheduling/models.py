"""Pydantic models for recurring schedules."""

from __future__ import annotations

import re
import secrets
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from autopersona.config.constants import (
    CONTENT_TYPES,
    DEFAULT_GENDER_DISTRIBUTION,
    DEFAULT_PROFILE_TYPES,
)
from autopersona.errors import InvalidFrequencyError

_SLOT_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class FrequencyType(StrEnum):
    """How a schedule's next run is derived."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    TIME_SLOTS = "time_slots"


class ScheduleKind(StrEnum):
    """The two schedule flavors."""

    CONTENT = "content"  # new content for an existing character
    CHARACTER = "character"  # brand new characters for a user


def _generate_id() -> str:
    return secrets.token_hex(6)


def normalize_slot(slot: str) -> str:
    """Return ``slot`` as zero-padded ``HH:MM`` or raise ValueError."""
    match = _SLOT_RE.match(slot.strip())
    if not match:
        raise ValueError(f"Invalid time slot {slot!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time slot {slot!r}, out of range")
    return f"{hours:02d}:{minutes:02d}"


def slot_minutes(slot: str) -> int:
    """Minute-of-day for a normalized slot."""
    hours, minutes = slot.split(":")
    return int(hours) * 60 + int(minutes)


class Frequency(BaseModel):
    """Cadence of a schedule.

    ``value`` multiplies the hourly/daily/weekly interval. ``time_slots``
    are wall-clock ``HH:MM`` times in ``timezone`` and only apply to
    ``time_slots`` frequencies.
    """

    type: FrequencyType
    value: int = Field(default=1, ge=1)
    time_slots: list[str] = Field(default_factory=list)
    timezone: str = "UTC"

    @field_validator("time_slots")
    @classmethod
    def _normalize_slots(cls, slots: list[str]) -> list[str]:
        normalized = {normalize_slot(s) for s in slots}
        return sorted(normalized, key=slot_minutes)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, tz: str) -> str:
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {tz!r}") from exc
        return tz


def parse_frequency(data: dict[str, Any]) -> Frequency:
    """Validate raw frequency input, raising ``InvalidFrequencyError``."""
    try:
        return Frequency.model_validate(data)
    except ValidationError as exc:
        raise InvalidFrequencyError(str(exc)) from exc


class GenderDistribution(BaseModel):
    """Percentages used to pick a gender for each auto-generated character."""

    male: int = Field(default=DEFAULT_GENDER_DISTRIBUTION["male"], ge=0, le=100)
    female: int = Field(default=DEFAULT_GENDER_DISTRIBUTION["female"], ge=0, le=100)
    non_binary: int = Field(
        default=DEFAULT_GENDER_DISTRIBUTION["non_binary"],
        ge=0,
        le=100,
        validation_alias=AliasChoices("non_binary", "nonBinary"),
    )


class CharacterGenerationParams(BaseModel):
    """Parameters of a character auto-generation schedule."""

    characters_per_run: int = Field(default=5, ge=1, le=20)
    images_per_character: int = Field(default=5, ge=1, le=10)
    profile_types: list[str] = Field(default_factory=lambda: list(DEFAULT_PROFILE_TYPES))
    gender_distribution: GenderDistribution = Field(default_factory=GenderDistribution)
    make_public: bool = False

    @field_validator("profile_types")
    @classmethod
    def _non_empty(cls, types: list[str]) -> list[str]:
        return types or list(DEFAULT_PROFILE_TYPES)


class ContentGenerationParams(BaseModel):
    """Parameters of a per-character content schedule."""

    items_per_run: int = Field(default=1, ge=1, le=20)
    images_per_item: int = Field(default=1, ge=1, le=10)
    content_type: str = "lifestyle"
    custom_themes: list[str] = Field(default_factory=list)
    style_preferences: dict[str, Any] = Field(default_factory=dict)
    auto_post: bool = False
    target_platforms: list[str] = Field(default_factory=list)

    @field_validator("content_type")
    @classmethod
    def _known_content_type(cls, value: str) -> str:
        if value not in CONTENT_TYPES:
            raise ValueError(f"Unknown content type {value!r}")
        return value


class Schedule(BaseModel):
    """A recurring directive to produce content or characters."""

    id: str = Field(default_factory=_generate_id)
    owner_id: str
    target_id: str | None = None  # character id for content schedules
    kind: ScheduleKind
    name: str = ""
    is_active: bool = True
    frequency: Frequency
    last_executed_at: datetime | None = None
    next_scheduled_at: datetime | None = None
    total_runs_completed: int = 0
    total_images_generated: int = 0
    params: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def _check_flavor(self) -> Schedule:
        if self.kind == ScheduleKind.CONTENT and not self.target_id:
            raise ValueError("Content schedules need a target character")
        # Normalize params through the flavor's model so defaults are explicit
        if self.kind == ScheduleKind.CONTENT:
            self.params = ContentGenerationParams.model_validate(self.params).model_dump()
        else:
            self.params = CharacterGenerationParams.model_validate(self.params).model_dump()
        return self

    def character_params(self) -> CharacterGenerationParams:
        return CharacterGenerationParams.model_validate(self.params)

    def content_params(self) -> ContentGenerationParams:
        return ContentGenerationParams.model_validate(self.params)

    @property
    def batch_size(self) -> int:
        """Number of jobs one due run expands into."""
        if self.kind == ScheduleKind.CONTENT:
            return self.content_params().items_per_run
        return self.character_params().characters_per_run

    def is_due(self, now: datetime) -> bool:
        return (
            self.is_active
            and self.next_scheduled_at is not None
            and self.next_scheduled_at <= now
        )

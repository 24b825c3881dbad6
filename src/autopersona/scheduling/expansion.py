"""Turn one due schedule run into concrete job specs."""

from __future__ import annotations

import random

from autopersona.generation.profiles import pick_profile_type, weighted_gender
from autopersona.queue.models import CharacterJobPayload, ContentJobPayload, JobKind, JobSpec
from autopersona.scheduling.models import Schedule, ScheduleKind


def _character_specs(schedule: Schedule, rng: random.Random) -> list[JobSpec]:
    params = schedule.character_params()
    distribution = params.gender_distribution.model_dump()
    specs = []
    for _ in range(params.characters_per_run):
        payload = CharacterJobPayload(
            profile_type=pick_profile_type(params.profile_types, rng),
            gender=weighted_gender(distribution, rng),
            image_count=params.images_per_character,
            make_public=params.make_public,
        )
        specs.append(
            JobSpec(
                owner_id=schedule.owner_id,
                kind=JobKind.CHARACTER,
                schedule_id=schedule.id,
                payload=payload.model_dump(),
                total_images=payload.image_count,
            )
        )
    return specs


def _content_specs(schedule: Schedule, rng: random.Random) -> list[JobSpec]:
    params = schedule.content_params()
    specs = []
    for _ in range(params.items_per_run):
        payload = ContentJobPayload(
            character_id=schedule.target_id,
            image_count=params.images_per_item,
            content_type=params.content_type,
            custom_themes=params.custom_themes,
            style_preferences=params.style_preferences,
            theme=rng.choice(params.custom_themes) if params.custom_themes else None,
            seed=rng.randrange(2**31),
            auto_post=params.auto_post,
            target_platforms=params.target_platforms,
        )
        specs.append(
            JobSpec(
                owner_id=schedule.owner_id,
                kind=JobKind.CONTENT,
                schedule_id=schedule.id,
                payload=payload.model_dump(),
                total_images=payload.image_count,
            )
        )
    return specs


def expand(schedule: Schedule, rng: random.Random | None = None) -> list[JobSpec]:
    """One spec per item in the run, each with its own random draw."""
    rng = rng or random.Random()
    if schedule.kind == ScheduleKind.CHARACTER:
        return _character_specs(schedule, rng)
    return _content_specs(schedule, rng)

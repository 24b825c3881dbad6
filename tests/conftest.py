"""Shared test fixtures."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from autopersona.clock import FixedClock
from autopersona.config.models import GenerationConfig
from autopersona.config.settings import Settings
from autopersona.db.core import create_db_engine, init_db, make_session_factory
from autopersona.errors import CollaboratorError
from autopersona.queue.store import WorkQueue
from autopersona.scheduling.store import ScheduleStore
from autopersona.services.base import (
    CharacterProfile,
    CharacterRecord,
    FaceSwapService,
    ImageGenerationService,
    PromptSuggestion,
    PublishingService,
    TextGenerationService,
)
from autopersona.services.entities import SqlEntityStore

# The CLI modules build their rich Console at import time, which reads COLUMNS;
# pin a wide terminal so table cells are not truncated at the 80-column default.
os.environ["COLUMNS"] = "200"

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)

_SECRET_ENV = ("OPENAI_API_KEY", "SEGMIND_API_KEY", "LATE_API_KEY", "CRON_SECRET")


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the real ~/.autopersona and secret env vars out of every test."""
    monkeypatch.setattr("autopersona.config.settings.CONFIG_FILE", tmp_path / "config.json")
    monkeypatch.setattr("autopersona.config.env_utils.ENV_FILE", tmp_path / ".env")
    for var in _SECRET_ENV:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def engine(tmp_path: Path):
    eng = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def schedule_store(session_factory, clock) -> ScheduleStore:
    return ScheduleStore(session_factory, clock)


@pytest.fixture
def work_queue(session_factory, clock) -> WorkQueue:
    return WorkQueue(session_factory, clock)


@pytest.fixture
def entity_store(session_factory, tmp_path: Path) -> SqlEntityStore:
    return SqlEntityStore(session_factory, tmp_path / "media")


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings configured for testing (no real API calls)."""
    return Settings(
        db_url=f"sqlite:///{tmp_path / 'app.db'}",
        generation=GenerationConfig(media_dir=str(tmp_path / "media"), step_timeout_seconds=2),
    )


# -- Fake collaborators --------------------------------------------------------


class FakeText(TextGenerationService):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.profile_calls: list[tuple[str, str]] = []
        self.prompt_calls: list[dict[str, Any]] = []

    async def generate_profile(self, profile_type: str, gender: str) -> CharacterProfile:
        self.profile_calls.append((profile_type, gender))
        if self.fail:
            raise CollaboratorError("LLM unavailable")
        return CharacterProfile(
            name="Mara Quinn",
            description="A rooftop yoga regular.",
            category=profile_type,
            profile_type=profile_type,
            gender=gender,
            personality={"traits": ["calm", "curious", "witty", "bold"]},
            physical_attributes={"gender": gender, "age": "mid 20s", "ethnicity": "Mixed",
                                 "hair_color": "auburn"},
        )

    async def generate_prompts(
        self,
        character: CharacterRecord,
        content_type: str,
        *,
        themes=None,
        style=None,
        previous_prompts=None,
        count: int = 1,
    ) -> list[PromptSuggestion]:
        self.prompt_calls.append(
            {"character": character.id, "content_type": content_type, "themes": themes,
             "previous": previous_prompts}
        )
        if self.fail:
            raise CollaboratorError("LLM unavailable")
        return [
            PromptSuggestion(
                prompt="reading on a sunny balcony",
                caption="Slow mornings.",
                hashtags=["slowliving", "#coffee"],
            )
        ]


class FakeImages(ImageGenerationService):
    """Returns ``image-N`` bytes; calls listed in ``fail_on`` raise."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def generate(self, prompt: str, width: int, height: int) -> bytes:
        self.calls.append(prompt)
        n = len(self.calls)
        if n in self.fail_on:
            raise CollaboratorError(f"render {n} failed")
        return f"image-{n}".encode()


class FakeFaceSwap(FaceSwapService):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[bytes, bytes]] = []

    async def swap(self, source_face: bytes, target_image: bytes) -> bytes:
        self.calls.append((source_face, target_image))
        if self.fail:
            raise CollaboratorError("no face detected")
        return b"swapped:" + target_image


class FakePublisher(PublishingService):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, list[str], str]] = []

    async def post(self, artifact_ref: str, platforms: list[str], caption: str = "") -> str:
        self.calls.append((artifact_ref, platforms, caption))
        if self.fail:
            raise CollaboratorError("rate limited")
        return "post-123"


@pytest.fixture
def fake_text() -> FakeText:
    return FakeText()


@pytest.fixture
def fake_images() -> FakeImages:
    return FakeImages()


@pytest.fixture
def fake_face_swap() -> FakeFaceSwap:
    return FakeFaceSwap()


@pytest.fixture
def fake_publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def runtime(test_settings, clock, fake_text, fake_images, fake_face_swap, fake_publisher):
    """A fully wired runtime backed by a temp SQLite file and fake collaborators."""
    from autopersona.runtime import build_runtime

    rt = build_runtime(
        test_settings,
        clock=clock,
        text=fake_text,
        images=fake_images,
        face_swap=fake_face_swap,
        publisher=fake_publisher,
    )
    yield rt
    rt.close()

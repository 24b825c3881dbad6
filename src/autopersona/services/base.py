"""Collaborator interfaces consumed by the generation pipeline.

The pipeline only talks to these abstractions; concrete adapters live in
sibling modules and are wired together once per process by the runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class CharacterProfile:
    """A synthesized character, before it is persisted."""

    name: str
    description: str
    category: str
    profile_type: str
    gender: str
    personality: dict[str, Any] = field(default_factory=dict)
    physical_attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def traits(self) -> list[str]:
        return list(self.personality.get("traits") or [])


@dataclass
class PromptSuggestion:
    """One creative post idea for an existing character."""

    prompt: str
    caption: str = ""
    hashtags: list[str] = field(default_factory=list)
    mood: str = ""
    setting: str = ""
    reasoning: str = ""


@dataclass
class CharacterRecord:
    """What the pipeline needs to know about a stored character."""

    id: str
    owner_id: str
    name: str
    personality: dict[str, Any] = field(default_factory=dict)
    physical_attributes: dict[str, Any] = field(default_factory=dict)
    main_face_image_id: str | None = None


class TextGenerationService(ABC):
    """LLM used for character profiles and post ideas."""

    @abstractmethod
    async def generate_profile(self, profile_type: str, gender: str) -> CharacterProfile: ...

    @abstractmethod
    async def generate_prompts(
        self,
        character: CharacterRecord,
        content_type: str,
        *,
        themes: list[str] | None = None,
        style: dict[str, Any] | None = None,
        previous_prompts: list[str] | None = None,
        count: int = 1,
    ) -> list[PromptSuggestion]: ...


class ImageGenerationService(ABC):
    @abstractmethod
    async def generate(self, prompt: str, width: int, height: int) -> bytes: ...


class FaceSwapService(ABC):
    @abstractmethod
    async def swap(self, source_face: bytes, target_image: bytes) -> bytes:
        """Put ``source_face`` onto ``target_image`` and return the new image."""
        ...


class PublishingService(ABC):
    @abstractmethod
    async def post(self, artifact_ref: str, platforms: list[str], caption: str = "") -> str:
        """Publish an artifact and return the platform post ID."""
        ...


class EntityStore(ABC):
    """Where characters, their images and generated content are recorded."""

    @abstractmethod
    def create_character(
        self,
        owner_id: str,
        profile: CharacterProfile,
        tags: list[str],
        is_public: bool = False,
    ) -> str: ...

    @abstractmethod
    def get_character(self, character_id: str) -> CharacterRecord | None: ...

    @abstractmethod
    def attach_image(self, character_id: str, image: bytes, metadata: dict[str, Any]) -> str: ...

    @abstractmethod
    def set_main_face(self, character_id: str, image_id: str) -> None: ...

    @abstractmethod
    def image_bytes(self, image_id: str) -> bytes | None: ...

    @abstractmethod
    def create_content(
        self,
        owner_id: str,
        character_id: str,
        schedule_id: str | None,
        suggestion: PromptSuggestion,
        content_type: str,
    ) -> str: ...

    @abstractmethod
    def finish_content(
        self,
        content_id: str,
        image_id: str | None,
        status: str,
        post_id: str | None = None,
    ) -> None: ...

    @abstractmethod
    def recent_prompts(self, character_id: str, limit: int = 10) -> list[str]: ...

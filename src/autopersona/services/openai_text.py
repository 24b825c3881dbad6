"""OpenAI-backed text generation for profiles and post ideas."""

from __future__ import annotations

import json
import logging
import random
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from autopersona.config.models import OpenAIConfig
from autopersona.errors import CollaboratorError
from autopersona.generation.profiles import random_physical_attributes
from autopersona.generation.prompts import (
    CONTENT_SYSTEM_PROMPT,
    PROFILE_SYSTEM_PROMPT,
    build_content_prompt,
    build_profile_prompt,
)
from autopersona.services.base import (
    CharacterProfile,
    CharacterRecord,
    PromptSuggestion,
    TextGenerationService,
)

logger = logging.getLogger("autopersona.services.openai_text")

_PERSONALITY_DEFAULTS: dict[str, Any] = {
    "traits": [],
    "mood": "cheerful",
    "speaking_style": "casual",
    "tone": "friendly",
    "backstory": "",
    "interests": [],
    "hobbies": [],
    "occupation": "",
}


def _parse_json(content: str | None, what: str) -> dict[str, Any]:
    if not content:
        raise CollaboratorError(f"Empty response while generating {what}")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise CollaboratorError(f"Invalid JSON while generating {what}: {exc}") from exc
    if not isinstance(data, dict):
        raise CollaboratorError(f"Expected a JSON object while generating {what}")
    return data


class OpenAITextService(TextGenerationService):
    """Chat-completions client in JSON mode.

    Physical attributes are drawn locally from a fresh ``random.Random`` per
    profile; only the name, description and personality come from the model.
    """

    def __init__(self, config: OpenAIConfig, client: AsyncOpenAI | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.config.api_key:
                raise CollaboratorError("OpenAI API key is not configured")
            self._client = AsyncOpenAI(api_key=self.config.api_key)
        return self._client

    async def _complete(self, system: str, user: str, what: str) -> dict[str, Any]:
        try:
            completion = await self.client.chat.completions.create(
                model=self.config.model_id,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                response_format={"type": "json_object"},
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except OpenAIError as exc:
            raise CollaboratorError(f"OpenAI request failed: {exc}") from exc
        content = completion.choices[0].message.content if completion.choices else None
        return _parse_json(content, what)

    async def generate_profile(self, profile_type: str, gender: str) -> CharacterProfile:
        data = await self._complete(
            PROFILE_SYSTEM_PROMPT, build_profile_prompt(profile_type, gender), "profile"
        )
        name = str(data.get("name") or "").strip()
        if not name:
            raise CollaboratorError("Generated profile has no name")

        raw_personality = data.get("personality")
        if not isinstance(raw_personality, dict):
            raw_personality = {}
        personality = {
            key: raw_personality.get(key) or default
            for key, default in _PERSONALITY_DEFAULTS.items()
        }

        profile = CharacterProfile(
            name=name,
            description=str(data.get("description") or ""),
            category=str(data.get("category") or profile_type),
            profile_type=profile_type,
            gender=gender,
            personality=personality,
            physical_attributes=random_physical_attributes(gender, profile_type, random.Random()),
        )
        logger.info("Generated %s profile: %s", profile_type, profile.name)
        return profile

    async def generate_prompts(
        self,
        character: CharacterRecord,
        content_type: str,
        *,
        themes: list[str] | None = None,
        style: dict[str, Any] | None = None,
        previous_prompts: list[str] | None = None,
        count: int = 1,
    ) -> list[PromptSuggestion]:
        user = build_content_prompt(
            character.name,
            character.personality,
            character.physical_attributes,
            content_type,
            themes=themes,
            style=style,
            previous_prompts=previous_prompts,
            count=count,
        )
        data = await self._complete(CONTENT_SYSTEM_PROMPT, user, "prompts")
        raw = data.get("prompts")
        if not isinstance(raw, list):
            raise CollaboratorError("Prompt response has no 'prompts' list")

        suggestions = [
            PromptSuggestion(
                prompt=str(item.get("prompt") or ""),
                caption=str(item.get("caption") or ""),
                hashtags=[str(h) for h in item.get("hashtags") or [] if h],
                mood=str(item.get("mood") or ""),
                setting=str(item.get("setting") or ""),
                reasoning=str(item.get("reasoning") or ""),
            )
            for item in raw
            if isinstance(item, dict) and item.get("prompt")
        ]
        if not suggestions:
            raise CollaboratorError("Prompt response contained no usable prompts")
        return suggestions

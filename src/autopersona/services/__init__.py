"""External collaborators: LLM, image generation, face swap, publishing, entities."""

from autopersona.services.base import (
    CharacterProfile,
    CharacterRecord,
    EntityStore,
    FaceSwapService,
    ImageGenerationService,
    PromptSuggestion,
    PublishingService,
    TextGenerationService,
)

__all__ = [
    "CharacterProfile",
    "CharacterRecord",
    "EntityStore",
    "FaceSwapService",
    "ImageGenerationService",
    "PromptSuggestion",
    "PublishingService",
    "TextGenerationService",
]

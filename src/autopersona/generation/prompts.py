"""Prompt text for the LLM and image collaborators."""

from __future__ import annotations

from typing import Any

from autopersona.generation.profiles import profile_type

CONTENT_TYPE_CONTEXT: dict[str, str] = {
    "lifestyle": "everyday life moments, morning routines, self-care, home activities, casual outings",
    "fashion": "outfit showcases, street style, fashion photoshoots, wardrobe styling, accessory highlights",
    "travel": "exotic destinations, adventure activities, scenic views, local culture exploration, travel photography",
    "food": "culinary experiences, restaurant visits, cooking moments, food styling, cafe aesthetics",
    "fitness": "workout sessions, gym selfies, outdoor exercise, yoga poses, active lifestyle",
    "beauty": "makeup looks, skincare routines, beauty tutorials, glam shots, natural beauty",
    "tech": "tech reviews, gaming setups, digital lifestyle, gadget showcases, creative workspaces",
    "art": "artistic photography, creative expressions, gallery visits, artistic poses, cultural events",
    "nature": "outdoor adventures, nature walks, beach vibes, mountain views, sunset/sunrise moments",
    "urban": "city life, urban photography, street scenes, nightlife, architectural backgrounds",
    "custom": "custom themed content based on user preferences",
}

PROFILE_SYSTEM_PROMPT = (
    "You are an AI character designer creating realistic, diverse virtual influencer profiles.\n"
    "Generate a unique, authentic character profile that feels like a real person with depth "
    "and personality.\n"
    "The character should be interesting, relatable, and have a compelling backstory.\n"
    "Return the response in valid JSON format."
)

CONTENT_SYSTEM_PROMPT = (
    "You are a creative content strategist for AI influencers on social media.\n"
    "Your task is to generate unique, engaging image prompts that will help create "
    "consistent, high-quality content for an AI influencer.\n\n"
    "The prompts should be:\n"
    "1. Detailed enough for image generation (describe pose, setting, lighting, mood)\n"
    "2. Consistent with the character's personality and appearance\n"
    "3. Appropriate for social media (Instagram, TikTok, etc.)\n"
    "4. Diverse and creative, avoiding repetitive ideas\n\n"
    "For each prompt, also provide a caption in the character's voice, 5-10 hashtags, "
    "the mood of the image and its setting.\n\n"
    "Respond in JSON format with an array of suggestions."
)

_PROFILE_SHAPE = """{
  "name": "Full Name",
  "description": "Brief engaging description",
  "category": "appropriate category",
  "personality": {
    "traits": ["trait1", "trait2", "trait3", "trait4", "trait5"],
    "mood": "default mood",
    "speaking_style": "how they communicate",
    "tone": "their tone of voice",
    "backstory": "their background story",
    "interests": ["interest1", "interest2", "interest3"],
    "hobbies": ["hobby1", "hobby2", "hobby3"],
    "occupation": "their job title"
  }
}"""

_SUGGESTION_SHAPE = """{
  "prompts": [
    {
      "prompt": "detailed image generation prompt",
      "caption": "engaging social media caption in character's voice",
      "hashtags": ["hashtag1", "hashtag2"],
      "mood": "mood/vibe description",
      "setting": "setting/location description",
      "reasoning": "brief explanation of why this works for the character"
    }
  ]
}"""

_STYLE_LABELS = (
    ("mood", "Mood"),
    ("settings", "Settings"),
    ("lighting", "Lighting"),
    ("color_scheme", "Color scheme"),
    ("composition", "Composition"),
)


def build_character_prompt(attributes: dict[str, Any], scene: str) -> str:
    """Image prompt describing the character's appearance in ``scene``."""
    a = attributes
    features = a.get("distinctive_features") or []
    makeup = a.get("makeup")
    parts = [
        f"A {a.get('age', '')} {a.get('ethnicity', '')} {a.get('gender', '')}",
        f"with {a.get('skin_tone', '')} skin",
        f"{a.get('face_shape', '')} face shape",
        f"{a.get('eye_color', '')} {a.get('eye_shape', '')} eyes",
        f"{a.get('hair_length', '')} {a.get('hair_texture', '')} {a.get('hair_color', '')} hair "
        f"styled in {a.get('hair_style', '')}",
        f"{a.get('body_type', '')} {a.get('height', '')} build",
        f"distinctive features: {', '.join(features)}" if features else "",
        f"{a.get('fashion_style', '')} fashion style" if a.get("fashion_style") else "",
        f"{makeup} makeup" if makeup and makeup != "none" else "",
    ]
    description = ", ".join(" ".join(p.split()) for p in parts if p.strip())
    return (
        f"Portrait photography, {description}. {scene.rstrip('.')}. High quality, detailed, "
        "professional photography, 8k, sharp focus, beautiful lighting."
    )


def build_profile_prompt(kind: str, gender: str) -> str:
    info = profile_type(kind)
    lines = [
        f"Create a {gender} {kind.replace('_', ' ')} character profile with these guidelines:",
        f"- Profile type: {info.description}",
        f"- Typical occupations: {', '.join(info.occupations)}",
        f"- Common interests: {', '.join(info.interests)}",
        f"- Personality traits: {', '.join(info.traits)}",
        f"- Fashion style: {', '.join(info.fashion_styles)}",
        "",
        "Generate a complete character with a realistic first and last name, a 2-3 sentence "
        "description, detailed personality traits, a short backstory and their speaking style.",
        "",
        "Return as JSON:",
        _PROFILE_SHAPE,
    ]
    return "\n".join(lines)


def _character_context(name: str, personality: dict[str, Any], attributes: dict[str, Any]) -> str:
    lines = [f"AI Influencer: {name}"]
    if personality:
        lines += [
            "",
            "Personality:",
            f"- Traits: {', '.join(personality.get('traits') or []) or 'Not specified'}",
            f"- Mood: {personality.get('mood') or 'Varied'}",
            f"- Style: {personality.get('speaking_style') or 'Natural'}",
            f"- Interests: {', '.join(personality.get('interests') or []) or 'Various'}",
        ]
    if attributes:
        lines += [
            "",
            "Appearance:",
            f"- {attributes.get('age', '')} {attributes.get('gender', '')}",
            f"- Ethnicity: {attributes.get('ethnicity', '')}",
            f"- Hair: {attributes.get('hair_length', '')} {attributes.get('hair_color', '')} "
            f"{attributes.get('hair_style', '')}",
            f"- Fashion style: {attributes.get('fashion_style', '')}",
        ]
    return "\n".join(lines)


def _style_context(style: dict[str, Any]) -> list[str]:
    lines = []
    for key, label in _STYLE_LABELS:
        values = style.get(key)
        if values:
            lines.append(f"{label}: {', '.join(values) if isinstance(values, list) else values}")
    if style.get("additional_instructions"):
        lines.append(f"Additional: {style['additional_instructions']}")
    return ["", "Style preferences:", *lines] if lines else []


def build_content_prompt(
    name: str,
    personality: dict[str, Any],
    attributes: dict[str, Any],
    content_type: str,
    *,
    themes: list[str] | None = None,
    style: dict[str, Any] | None = None,
    previous_prompts: list[str] | None = None,
    count: int = 1,
) -> str:
    """User message asking for ``count`` creative post ideas for a character."""
    lines = [_character_context(name, personality, attributes)]
    lines += _style_context(style or {})
    lines += [
        "",
        f"Content type: {content_type}",
        f"Description: {CONTENT_TYPE_CONTEXT.get(content_type, CONTENT_TYPE_CONTEXT['custom'])}",
    ]
    if themes:
        lines += ["", f"Custom themes to incorporate: {', '.join(themes)}"]
    if previous_prompts:
        lines += ["", "Previously used prompts (AVOID similar ideas):"]
        lines += [f"- {p}" for p in previous_prompts[-10:]]
    lines += [
        "",
        f"Generate {count} unique, creative image prompts for this AI influencer.",
        "",
        "Respond with a JSON object:",
        _SUGGESTION_SHAPE,
    ]
    return "\n".join(lines)

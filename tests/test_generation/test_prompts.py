"""Tests for LLM and image prompt text."""

from __future__ import annotations

from autopersona.generation.prompts import (
    build_character_prompt,
    build_content_prompt,
    build_profile_prompt,
)

ATTRS = {
    "gender": "female",
    "age": "mid 20s",
    "ethnicity": "Korean",
    "skin_tone": "fair",
    "hair_color": "black",
    "hair_length": "long",
    "hair_style": "loose waves",
    "distinctive_features": ["dimples"],
    "makeup": "none",
}


def test_character_prompt_describes_appearance_and_scene():
    prompt = build_character_prompt(ATTRS, "cooking in a bright kitchen.")
    assert prompt.startswith("Portrait photography, A mid 20s Korean female")
    assert "distinctive features: dimples" in prompt
    assert "cooking in a bright kitchen. High quality" in prompt
    assert "none makeup" not in prompt
    assert "  " not in prompt


def test_profile_prompt_mentions_type_guidelines():
    prompt = build_profile_prompt("yoga_instructor", "male")
    assert prompt.startswith("Create a male yoga instructor character profile")
    assert "- Profile type: " in prompt
    assert '"personality"' in prompt


def test_content_prompt_includes_context():
    prompt = build_content_prompt(
        "Mara Quinn",
        {"traits": ["calm", "witty"]},
        ATTRS,
        "travel",
        themes=["coastal towns"],
        style={"mood": ["dreamy"], "lighting": "golden hour"},
        count=3,
    )
    assert "AI Influencer: Mara Quinn" in prompt
    assert "- Traits: calm, witty" in prompt
    assert "Content type: travel" in prompt
    assert "exotic destinations" in prompt
    assert "Custom themes to incorporate: coastal towns" in prompt
    assert "Mood: dreamy" in prompt
    assert "Lighting: golden hour" in prompt
    assert "Generate 3 unique" in prompt


def test_content_prompt_keeps_last_ten_previous_prompts():
    previous = [f"idea {i}" for i in range(15)]
    prompt = build_content_prompt("X", {}, {}, "food", previous_prompts=previous)
    assert "- idea 4\n" not in prompt
    assert "- idea 5" in prompt
    assert "- idea 14" in prompt
    assert "AVOID similar ideas" in prompt


def test_unknown_content_type_uses_custom_context():
    prompt = build_content_prompt("X", {}, {}, "underwater")
    assert "custom themed content" in prompt

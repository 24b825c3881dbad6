"""Pydantic models for configuration sub-sections."""

from __future__ import annotations

from pydantic import BaseModel, Field

from autopersona.config.constants import (
    DEFAULT_DRAIN_LIMIT,
    DEFAULT_HOST,
    DEFAULT_LEASE_SECONDS,
    DEFAULT_PORT,
    DEFAULT_STEP_TIMEOUT_SECONDS,
)


class GenerationConfig(BaseModel):
    """Image pipeline settings."""

    image_width: int = 1024
    image_height: int = 1024
    step_timeout_seconds: float = DEFAULT_STEP_TIMEOUT_SECONDS
    default_images_per_character: int = 5
    kickoff_first_job: bool = True  # process the first queued job right after a tick
    media_dir: str = ""  # empty = ~/.autopersona/media


class QueueConfig(BaseModel):
    """Work queue and in-process cadence settings."""

    drain_limit: int = DEFAULT_DRAIN_LIMIT
    lease_seconds: int = DEFAULT_LEASE_SECONDS
    tick_interval_seconds: int = 60
    drain_interval_seconds: int = 30
    run_in_process: bool = False  # drive tick/drain from the server itself


class OpenAIConfig(BaseModel):
    """Text generation (profiles and scene prompts)."""

    model_id: str = "gpt-4o"
    temperature: float = 0.9
    max_tokens: int = 2000
    api_key: str = Field(default="", exclude=True)


class SegmindConfig(BaseModel):
    """Image generation and face swap endpoints."""

    image_url: str = "https://api.segmind.com/v1/z-image-turbo"
    face_swap_url: str = "https://api.segmind.com/v1/faceswap-v2"
    steps: int = 8
    guidance_scale: float = 1.0
    image_format: str = "webp"
    quality: int = 90
    api_key: str = Field(default="", exclude=True)


class PublishingConfig(BaseModel):
    """Social publishing (Late.dev)."""

    base_url: str = "https://getlate.dev/api/v1"
    media_base_url: str = ""  # public URL prefix images are served from
    api_key: str = Field(default="", exclude=True)


class ServerConfig(BaseModel):
    """HTTP trigger surface settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cron_secret: str = Field(default="", exclude=True)


# Maps nested secret field paths to the plain env var that supplies them.
SECRET_FIELD_ENV_MAP: dict[tuple[str, ...], str] = {
    ("openai", "api_key"): "OPENAI_API_KEY",
    ("segmind", "api_key"): "SEGMIND_API_KEY",
    ("publishing", "api_key"): "LATE_API_KEY",
    ("server", "cron_secret"): "CRON_SECRET",
}

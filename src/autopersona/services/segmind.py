"""Segmind image generation and face swap over HTTP."""

from __future__ import annotations

import base64
import binascii
import logging
import random
from typing import Any

import httpx

from autopersona.config.models import SegmindConfig
from autopersona.errors import CollaboratorError
from autopersona.services.base import FaceSwapService, ImageGenerationService

logger = logging.getLogger("autopersona.services.segmind")


def _decode_image(data: str) -> bytes:
    """Accept raw base64 or a ``data:image/...;base64,`` URL."""
    if data.startswith("data:"):
        data = data.split(",", 1)[-1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CollaboratorError(f"Segmind returned undecodable image data: {exc}") from exc


def _encode_image(image: bytes, image_format: str) -> str:
    return f"data:image/{image_format};base64,{base64.b64encode(image).decode('ascii')}"


async def _post_for_image(url: str, api_key: str, body: dict[str, Any], timeout: float) -> bytes:
    """POST ``body`` and return the image, whether sent as JSON or raw bytes."""
    if not api_key:
        raise CollaboratorError("Segmind API key is not configured")
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=body, headers={"x-api-key": api_key})
    except httpx.HTTPError as exc:
        raise CollaboratorError(f"Segmind request failed: {exc}") from exc

    if resp.status_code >= 400:
        raise CollaboratorError(f"Segmind error {resp.status_code}: {resp.text[:200]}")

    if "application/json" in resp.headers.get("content-type", ""):
        payload = resp.json()
        image = payload.get("image") if isinstance(payload, dict) else None
        if not image:
            raise CollaboratorError("Segmind JSON response has no image")
        return _decode_image(image)

    if not resp.content:
        raise CollaboratorError("Segmind returned an empty image")
    return resp.content


class SegmindImageService(ImageGenerationService):
    """Text-to-image via Segmind's turbo endpoint."""

    def __init__(self, config: SegmindConfig, timeout: float = 120.0) -> None:
        self.config = config
        self.timeout = timeout

    async def generate(self, prompt: str, width: int, height: int) -> bytes:
        body = {
            "prompt": prompt,
            "steps": self.config.steps,
            "guidance_scale": self.config.guidance_scale,
            "seed": random.randint(0, 2**31 - 1),
            "height": height,
            "width": width,
            "image_format": self.config.image_format,
            "quality": self.config.quality,
            "base_64": True,
        }
        image = await _post_for_image(self.config.image_url, self.config.api_key, body, self.timeout)
        logger.debug("Generated %d byte image", len(image))
        return image


class SegmindFaceSwapService(FaceSwapService):
    """Face swap: ``source_face`` is the reference, ``target_image`` the new scene."""

    def __init__(self, config: SegmindConfig, timeout: float = 120.0) -> None:
        self.config = config
        self.timeout = timeout

    async def swap(self, source_face: bytes, target_image: bytes) -> bytes:
        fmt = self.config.image_format
        body = {
            "source_image": _encode_image(source_face, fmt),
            "target_image": _encode_image(target_image, fmt),
            "image_format": fmt,
            "quality": self.config.quality,
            "seed": random.randint(0, 2**31 - 1),
            "base64": True,
        }
        return await _post_for_image(
            self.config.face_swap_url, self.config.api_key, body, self.timeout
        )

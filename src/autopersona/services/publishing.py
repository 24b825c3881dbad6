"""Social publishing through the Late API."""

from __future__ import annotations

import logging

import httpx

from autopersona.config.models import PublishingConfig
from autopersona.errors import CollaboratorError
from autopersona.services.base import PublishingService

logger = logging.getLogger("autopersona.services.publishing")


class LatePublishingService(PublishingService):
    """Publishes a generated image immediately to the requested platforms.

    ``artifact_ref`` is either a full URL or an image ID that is resolved
    against ``media_base_url``.
    """

    def __init__(self, config: PublishingConfig, timeout: float = 30.0) -> None:
        self.config = config
        self.timeout = timeout

    def media_url(self, artifact_ref: str) -> str:
        if artifact_ref.startswith(("http://", "https://")):
            return artifact_ref
        if not self.config.media_base_url:
            raise CollaboratorError("No public media URL configured for publishing")
        return f"{self.config.media_base_url.rstrip('/')}/{artifact_ref}"

    async def post(self, artifact_ref: str, platforms: list[str], caption: str = "") -> str:
        if not self.config.api_key:
            raise CollaboratorError("Late API key is not configured")
        if not platforms:
            raise CollaboratorError("No target platforms given")

        body = {
            "content": caption,
            "mediaItems": [{"url": self.media_url(artifact_ref), "type": "image"}],
            "platforms": [{"platform": p} for p in platforms],
            "publishNow": True,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.config.base_url.rstrip('/')}/posts",
                    json=body,
                    headers={"Authorization": f"Bearer {self.config.api_key}"},
                )
        except httpx.HTTPError as exc:
            raise CollaboratorError(f"Late request failed: {exc}") from exc

        if resp.status_code >= 400:
            raise CollaboratorError(f"Late error {resp.status_code}: {resp.text[:200]}")

        data = resp.json()
        post = data.get("post") if isinstance(data, dict) else None
        post_id = (post or {}).get("_id") or (post or {}).get("id")
        if not post_id:
            raise CollaboratorError("Late response has no post ID")
        logger.info("Published %s to %s as %s", artifact_ref, ", ".join(platforms), post_id)
        return str(post_id)

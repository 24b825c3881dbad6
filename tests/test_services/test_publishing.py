"""Tests for the Late publishing adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from autopersona.config.models import PublishingConfig
from autopersona.errors import CollaboratorError
from autopersona.services.publishing import LatePublishingService

CONFIG = PublishingConfig(
    api_key="late-key",
    base_url="https://late.test/api/v1/",
    media_base_url="https://cdn.test/media",
)


def _mock_client(mock_client_cls, response) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client_cls.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    mock_client.post = AsyncMock(return_value=response)
    return mock_client


class TestMediaUrl:
    def test_full_url_passes_through(self):
        service = LatePublishingService(PublishingConfig())
        assert service.media_url("https://x.test/a.webp") == "https://x.test/a.webp"

    def test_image_id_resolved_against_base(self):
        assert LatePublishingService(CONFIG).media_url("img1") == "https://cdn.test/media/img1"

    def test_no_base_url(self):
        with pytest.raises(CollaboratorError, match="No public media URL"):
            LatePublishingService(PublishingConfig()).media_url("img1")


class TestPost:
    @pytest.mark.asyncio
    async def test_posts_to_platforms(self):
        response = httpx.Response(200, json={"post": {"_id": "late-99"}})

        with patch("autopersona.services.publishing.httpx.AsyncClient") as mock_client_cls:
            client = _mock_client(mock_client_cls, response)
            post_id = await LatePublishingService(CONFIG).post(
                "img1", ["instagram", "tiktok"], "Hello #world"
            )

        assert post_id == "late-99"
        assert client.post.call_args.args[0] == "https://late.test/api/v1/posts"
        kwargs = client.post.call_args.kwargs
        assert kwargs["headers"] == {"Authorization": "Bearer late-key"}
        assert kwargs["json"] == {
            "content": "Hello #world",
            "mediaItems": [{"url": "https://cdn.test/media/img1", "type": "image"}],
            "platforms": [{"platform": "instagram"}, {"platform": "tiktok"}],
            "publishNow": True,
        }

    @pytest.mark.asyncio
    async def test_error_status(self):
        response = httpx.Response(401, text="bad key")
        with patch("autopersona.services.publishing.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, response)
            with pytest.raises(CollaboratorError, match="401"):
                await LatePublishingService(CONFIG).post("img1", ["instagram"])

    @pytest.mark.asyncio
    async def test_response_without_id(self):
        response = httpx.Response(200, json={"post": {}})
        with patch("autopersona.services.publishing.httpx.AsyncClient") as mock_client_cls:
            _mock_client(mock_client_cls, response)
            with pytest.raises(CollaboratorError, match="no post ID"):
                await LatePublishingService(CONFIG).post("img1", ["instagram"])

    @pytest.mark.asyncio
    async def test_requires_key_and_platforms(self):
        with pytest.raises(CollaboratorError, match="not configured"):
            await LatePublishingService(PublishingConfig()).post("img1", ["instagram"])
        with pytest.raises(CollaboratorError, match="No target platforms"):
            await LatePublishingService(CONFIG).post("img1", [])

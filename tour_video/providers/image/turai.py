"""
Turai postcard image provider

Asks the Turai postcard generator for an AI image of a topic at a
location. The service answers with {success, data: {imageUrl}}; the URL
may be relative to the Turai host.
"""

import logging
from typing import Optional

import aiohttp

from ...download import make_absolute_url, open_session
from ..base import ImageGenerationResult, ImageProvider, ImageProviderConfig

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/postcards/generate-by-topic"


def aspect_ratio_for(width: int, height: int) -> str:
    if width == height:
        return "1:1"
    return "9:16" if height > width else "16:9"


class TuraiPostcardProvider(ImageProvider):
    """Turai postcard generator (primary image source, needs an API key)."""

    def __init__(
        self,
        config: ImageProviderConfig,
        session: Optional[aiohttp.ClientSession] = None,
        style_preset: str = "vibrant",
    ):
        super().__init__(config, session)
        self.style_preset = style_preset

    @property
    def name(self) -> str:
        return "turai"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key and self.config.base_url)

    async def generate_image(
        self,
        topic: str,
        location: str,
        width: int = 1080,
        height: int = 1920,
        **kwargs
    ) -> ImageGenerationResult:
        if not self.is_configured:
            return ImageGenerationResult(
                success=False,
                error_message="Turai API URL or key not configured",
            )

        body = {
            "location": {"name": location},
            "topic": topic,
            "aspectRatio": aspect_ratio_for(width, height),
            "stylePreset": kwargs.get("style_preset", self.style_preset),
        }
        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self.config.api_key,
        }
        url = f"{self.config.base_url.rstrip('/')}{GENERATE_PATH}"
        logger.debug(f"Turai postcard request: topic={topic!r} location={location!r}")

        async with open_session(self.session, self.config.timeout) as session:
            async with session.post(
                url,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    return ImageGenerationResult(
                        success=False,
                        error_message=f"Turai postcard API error (status {response.status}): {error_text[:200]}",
                    )
                payload = await response.json(content_type=None)

        data = payload.get("data") or {}
        image_url = data.get("imageUrl")
        if not payload.get("success") or not image_url:
            return ImageGenerationResult(
                success=False,
                error_message="Turai postcard API returned no imageUrl",
            )

        return ImageGenerationResult(
            success=True,
            image_url=make_absolute_url(image_url, self.config.base_url),
            provider_metadata={"provider": self.name, "topic": topic, "location": location},
        )

"""
Pollinations image provider

Free text-to-image endpoint. No API key. The image is generated on the GET
itself, so this provider fetches the bytes directly and checks that the
response really is an image.
"""

import logging
from typing import Optional
from urllib.parse import quote

import aiohttp

from ...download import open_session
from ..base import ImageGenerationResult, ImageProvider, ImageProviderConfig

logger = logging.getLogger(__name__)

API_URL = "https://image.pollinations.ai/prompt"


def build_prompt(topic: str, location: str) -> str:
    """Looser travel-photography prompt than the postcard generator gets."""
    subject = topic if not location or location.lower() in topic.lower() else f"{topic} in {location}"
    return (
        f"Beautiful travel photo of {subject}, professional photography, "
        f"vibrant colors, no text"
    )


class PollinationsProvider(ImageProvider):
    """Pollinations (flux) image generation, keyless fallback."""

    def __init__(
        self,
        config: Optional[ImageProviderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        model: str = "flux",
    ):
        super().__init__(config or ImageProviderConfig(timeout=60.0), session)
        self.model = model

    @property
    def name(self) -> str:
        return "pollinations"

    def build_url(self, topic: str, location: str, width: int, height: int) -> str:
        prompt = quote(build_prompt(topic, location), safe="")
        return f"{API_URL}/{prompt}?width={width}&height={height}&nologo=true&model={self.model}"

    async def generate_image(
        self,
        topic: str,
        location: str,
        width: int = 1080,
        height: int = 1920,
        **kwargs
    ) -> ImageGenerationResult:
        url = self.build_url(topic, location, width, height)
        logger.debug(f"Pollinations request for {topic!r}")

        async with open_session(self.session, self.config.timeout) as session:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:
                content_type = response.headers.get("Content-Type", "")
                if response.status != 200:
                    return ImageGenerationResult(
                        success=False,
                        error_message=f"Pollinations error (status {response.status})",
                    )
                if not content_type.lower().startswith("image/"):
                    return ImageGenerationResult(
                        success=False,
                        error_message=f"Pollinations returned non-image content: {content_type!r}",
                    )
                data = await response.read()

        return ImageGenerationResult(
            success=True,
            image_url=url,
            image_data=data,
            content_type=content_type,
            provider_metadata={"provider": self.name, "model": self.model},
        )

"""
LoremFlickr stock image provider

Keyword search over Creative Commons Flickr photos. Always answers, so it
sits at the end of the image chain. The URL is returned unresolved; the
downloader follows the redirect to the actual photo.
"""

import random
import re
import time
from typing import List, Optional

import aiohttp

from ..base import ImageGenerationResult, ImageProvider, ImageProviderConfig

API_URL = "https://loremflickr.com"

# Keywords that add nothing to a photo search
_STOPWORDS = {"the", "of", "and", "in", "at", "a", "an", "to", "on", "for"}


def sanitize_keywords(*phrases: str, limit: int = 4) -> List[str]:
    """Lower-case alphanumeric keywords, de-duplicated, first `limit` kept."""
    keywords: List[str] = []
    for phrase in phrases:
        for word in re.split(r"[^a-z0-9]+", (phrase or "").lower()):
            if word and word not in _STOPWORDS and word not in keywords:
                keywords.append(word)
    return keywords[:limit] or ["travel"]


class LoremFlickrProvider(ImageProvider):
    """Stock photo search by keyword."""

    def __init__(
        self,
        config: Optional[ImageProviderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(config or ImageProviderConfig(), session)

    @property
    def name(self) -> str:
        return "loremflickr"

    def build_url(self, topic: str, location: str, width: int, height: int) -> str:
        keywords = ",".join(sanitize_keywords(topic, location))
        # Cache-buster so repeated stops do not get the same photo
        buster = f"{int(time.time() * 1000)}{random.randint(0, 9999)}"
        return f"{API_URL}/{width}/{height}/{keywords}?random={buster}"

    async def generate_image(
        self,
        topic: str,
        location: str,
        width: int = 1080,
        height: int = 1920,
        **kwargs
    ) -> ImageGenerationResult:
        return ImageGenerationResult(
            success=True,
            image_url=self.build_url(topic, location, width, height),
            provider_metadata={"provider": self.name},
        )

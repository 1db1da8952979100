"""
Asset Fetcher

Turns logical asset requests into local files by walking provider chains:

    images:    Turai postcards -> Pollinations -> LoremFlickr
    narration: ElevenLabs -> Turai TTS -> (silent)

Each provider attempt is isolated. Whatever goes wrong inside one attempt
(HTTP error, bad payload, file too small, unexpected exception) is logged
and the next provider is tried. An exhausted chain is reported as None.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .download import Downloader, DownloadError, make_absolute_url
from .models.stop import MAX_IMAGES_PER_STOP
from .providers.base import (
    AudioGenerationResult,
    AudioProvider,
    ImageGenerationResult,
    ImageProvider,
)

logger = logging.getLogger(__name__)


class AssetUnavailable(Exception):
    """Every provider in a chain failed to produce a usable asset"""
    pass


class AssetFetcher:
    """
    Resolves images and narration to local temp files.

    Args:
        downloader: Downloader writing into the run's temp directory
        image_providers: Image chain, tried in order
        audio_providers: Narration chain, tried in order
        base_url: Base URL used to absolutize relative stop URLs
        min_image_bytes: Reject images smaller than this
        min_audio_bytes: Reject audio smaller than this
        width: Requested image width
        height: Requested image height
    """

    def __init__(
        self,
        downloader: Downloader,
        image_providers: Sequence[ImageProvider] = (),
        audio_providers: Sequence[AudioProvider] = (),
        base_url: str = "",
        min_image_bytes: int = 10_000,
        min_audio_bytes: int = 1_000,
        width: int = 1080,
        height: int = 1920,
    ):
        self.downloader = downloader
        self.image_providers = list(image_providers)
        self.audio_providers = list(audio_providers)
        self.base_url = base_url
        self.min_image_bytes = min_image_bytes
        self.min_audio_bytes = min_audio_bytes
        self.width = width
        self.height = height

    # ------------------------------------------------------------------
    # Provider chains
    # ------------------------------------------------------------------

    async def fetch_image(self, topic: str, location: str) -> Optional[Path]:
        """Image for "topic at location", or None when every source failed."""
        try:
            return await self._run_image_chain(topic, location)
        except AssetUnavailable as e:
            logger.warning(str(e))
            return None

    async def fetch_narration(self, text: str) -> Optional[Path]:
        """Narration audio for text, or None (the stop is then rendered silent)."""
        if not text or not text.strip():
            logger.warning("No narration text; stop will be silent")
            return None
        try:
            return await self._run_audio_chain(text)
        except AssetUnavailable as e:
            logger.warning(str(e))
            return None

    async def _run_image_chain(self, topic: str, location: str) -> Path:
        errors = []
        for provider in self.image_providers:
            if not provider.is_configured:
                logger.debug(f"Skipping image provider {provider.name}: not configured")
                continue
            logger.debug(f"Trying image provider {provider.name} for {topic!r}")
            try:
                result = await provider.generate_image(
                    topic, location, width=self.width, height=self.height
                )
                path = await self._materialize_image(provider.name, result)
            except DownloadError as e:
                errors.append(f"{provider.name}: {e}")
                logger.info(f"Image provider {provider.name} failed: {e}")
                continue
            except Exception as e:
                errors.append(f"{provider.name}: {e!r}")
                logger.warning(f"Image provider {provider.name} raised: {e!r}")
                continue

            logger.info(f"Image for {topic!r} from {provider.name}")
            return path

        raise AssetUnavailable(
            f"No image for {topic!r} at {location!r} ({'; '.join(errors) or 'no providers'})"
        )

    async def _materialize_image(self, provider_name: str, result: ImageGenerationResult) -> Path:
        if not result.success:
            raise DownloadError(result.error_message or "provider reported failure")
        if result.image_data is not None:
            return self.downloader.save(
                result.image_data,
                f"img_{provider_name}",
                "jpg",
                min_bytes=self.min_image_bytes,
            )
        if result.image_url:
            return await self.downloader.download(
                result.image_url,
                f"img_{provider_name}",
                "jpg",
                min_bytes=self.min_image_bytes,
                content_type_prefix="image/",
            )
        raise DownloadError("provider returned neither URL nor data")

    async def _run_audio_chain(self, text: str) -> Path:
        errors = []
        for provider in self.audio_providers:
            if not provider.is_configured:
                logger.debug(f"Skipping narration provider {provider.name}: not configured")
                continue
            logger.debug(f"Trying narration provider {provider.name}")
            try:
                result = await provider.generate_speech(text)
                path = await self._materialize_audio(provider.name, result)
            except DownloadError as e:
                errors.append(f"{provider.name}: {e}")
                logger.info(f"Narration provider {provider.name} failed: {e}")
                continue
            except Exception as e:
                errors.append(f"{provider.name}: {e!r}")
                logger.warning(f"Narration provider {provider.name} raised: {e!r}")
                continue

            logger.info(f"Narration from {provider.name}")
            return path

        raise AssetUnavailable(
            f"No narration available ({'; '.join(errors) or 'no providers'})"
        )

    async def _materialize_audio(self, provider_name: str, result: AudioGenerationResult) -> Path:
        if not result.success:
            raise DownloadError(result.error_message or "provider reported failure")
        if result.audio_data is not None:
            return self.downloader.save(
                result.audio_data,
                f"audio_{provider_name}",
                result.format or "mp3",
                min_bytes=self.min_audio_bytes,
            )
        if result.audio_url:
            return await self.downloader.download(
                make_absolute_url(result.audio_url, self.base_url),
                f"audio_{provider_name}",
                result.format or "mp3",
                min_bytes=self.min_audio_bytes,
            )
        raise DownloadError("provider returned neither URL nor data")

    # ------------------------------------------------------------------
    # Stop-supplied URLs
    # ------------------------------------------------------------------

    async def download_stop_images(
        self,
        urls: Sequence[str],
        limit: int = MAX_IMAGES_PER_STOP,
    ) -> List[Path]:
        """Download stop image URLs in order, skipping failures, at most `limit`."""
        paths: List[Path] = []
        for url in urls:
            if len(paths) >= limit:
                break
            if not url:
                continue
            try:
                path = await self.downloader.download(
                    make_absolute_url(url, self.base_url),
                    "img",
                    "jpg",
                    min_bytes=self.min_image_bytes,
                    content_type_prefix="image/",
                )
            except DownloadError as e:
                logger.info(f"Skipping stop image {url[:80]}: {e}")
                continue
            paths.append(path)
        return paths

    async def download_audio(self, url: Optional[str]) -> Optional[Path]:
        """Download a stop's narration URL (or data: URI), None on failure."""
        if not url:
            return None
        try:
            return await self.downloader.download(
                make_absolute_url(url, self.base_url),
                "audio",
                "mp3",
                min_bytes=self.min_audio_bytes,
            )
        except DownloadError as e:
            logger.warning(f"Stop audio unusable: {e}")
            return None

"""
Provider interfaces for the image and narration chains.

Both chains are ordered lists of interchangeable backends. A provider
answers with a result object instead of raising for ordinary upstream
failures (bad status, empty payload); the fetcher moves on to the next
provider when `success` is False.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp


def _mask_secret(value: Optional[str]) -> str:
    """Show only the edges of a key in logs and reprs."""
    if value is None:
        return "None"
    if len(value) <= 8:
        return "'***'"
    return f"'{value[:4]}...{value[-4:]}'"


@dataclass
class ProviderConfig:
    """
    Connection settings shared by every provider.

    Attributes:
        api_key: Credential sent to the backend, if it needs one
        base_url: Backend root URL
        timeout: Total request timeout in seconds
        extra_params: Backend-specific knobs
    """
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 30.0
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(api_key={_mask_secret(self.api_key)}, "
            f"base_url={self.base_url!r}, timeout={self.timeout})"
        )


@dataclass(repr=False)
class ImageProviderConfig(ProviderConfig):
    pass


@dataclass(repr=False)
class AudioProviderConfig(ProviderConfig):
    # TTS renders the whole script before answering
    timeout: float = 60.0


@dataclass
class ProviderResult:
    success: bool
    error_message: Optional[str] = None
    provider_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ImageGenerationResult(ProviderResult):
    """
    Image answer: a URL for the downloader to fetch (image_url) or the
    bytes themselves (image_data).
    """
    image_url: Optional[str] = None
    image_data: Optional[bytes] = None
    content_type: Optional[str] = None


@dataclass
class AudioGenerationResult(ProviderResult):
    """Narration answer: an audio URL (possibly relative or data:) or raw bytes."""
    audio_url: Optional[str] = None
    audio_data: Optional[bytes] = None
    format: str = "mp3"


class Provider(ABC):
    """
    Common base for chain members.

    Args:
        config: Connection settings
        session: Shared aiohttp session; when None each request opens its own
    """

    _is_stub = False

    def __init__(
        self,
        config: ProviderConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config
        self.session = session

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and temp file names"""

    @property
    def is_configured(self) -> bool:
        """False when a required key or URL is missing; the chain skips it."""
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"


class ImageProvider(Provider):
    """An image source: Turai postcards, Pollinations or LoremFlickr."""

    @abstractmethod
    async def generate_image(
        self,
        topic: str,
        location: str,
        width: int = 1080,
        height: int = 1920,
        **kwargs
    ) -> ImageGenerationResult:
        """
        Produce an image for a topic at a location.

        Args:
            topic: What the image should show (usually the stop name)
            location: Destination the stop belongs to
            width: Requested width in pixels
            height: Requested height in pixels
        """


class AudioProvider(Provider):
    """A narration source: ElevenLabs or Turai TTS."""

    @abstractmethod
    async def generate_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        **kwargs
    ) -> AudioGenerationResult:
        """
        Synthesize narration.

        Args:
            text: Script to speak
            voice_id: Backend voice; the provider default when None
        """

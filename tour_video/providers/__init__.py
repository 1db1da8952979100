"""Asset providers: image sources, narration sources and the tour service"""

from .base import (
    AudioGenerationResult,
    AudioProvider,
    AudioProviderConfig,
    ImageGenerationResult,
    ImageProvider,
    ImageProviderConfig,
    Provider,
    ProviderConfig,
    ProviderResult,
)

__all__ = [
    "AudioGenerationResult",
    "AudioProvider",
    "AudioProviderConfig",
    "ImageGenerationResult",
    "ImageProvider",
    "ImageProviderConfig",
    "Provider",
    "ProviderConfig",
    "ProviderResult",
]

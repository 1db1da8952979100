"""Audio provider implementations"""

from .elevenlabs import ElevenLabsProvider
from .turai_tts import TuraiTTSProvider

__all__ = [
    "ElevenLabsProvider",
    "TuraiTTSProvider",
]

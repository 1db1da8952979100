"""
ElevenLabs narration

Primary narration source. Speaks the stop script with the multilingual v2
model and the "Rachel" voice unless configured otherwise; the MP3 comes
back in the response body.

API reference: https://api.elevenlabs.io/docs
"""

import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ...download import open_session
from ...secrets import get_api_key
from ..base import AudioGenerationResult, AudioProvider, AudioProviderConfig

logger = logging.getLogger(__name__)

API_URL = "https://api.elevenlabs.io"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"  # Rachel
DEFAULT_MODEL = "eleven_multilingual_v2"

# Tuned for calm tour-guide delivery
DEFAULT_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.5,
    "use_speaker_boost": True,
}

_UNIT_SETTINGS = ("stability", "similarity_boost", "style")


def voice_settings(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Defaults merged with per-call overrides, numeric values clamped to [0, 1]."""
    merged = dict(DEFAULT_VOICE_SETTINGS)
    for key in _UNIT_SETTINGS:
        if overrides.get(key) is not None:
            merged[key] = max(0.0, min(1.0, float(overrides[key])))
    if overrides.get("use_speaker_boost") is not None:
        merged["use_speaker_boost"] = bool(overrides["use_speaker_boost"])
    return merged


class ElevenLabsProvider(AudioProvider):
    """
    ElevenLabs text-to-speech.

    Args:
        api_key: Explicit key; otherwise ELEVENLABS_API_KEY from keychain or env
        voice_id: Voice used when a call does not name one
        model: ElevenLabs model id
        session: Shared aiohttp session
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 60.0,
    ):
        super().__init__(
            AudioProviderConfig(
                api_key=api_key or get_api_key("ELEVENLABS_API_KEY"),
                base_url=API_URL,
                timeout=timeout,
            ),
            session,
        )
        self.model = model
        self.voice_id = voice_id or DEFAULT_VOICE_ID

    @property
    def name(self) -> str:
        return "elevenlabs"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def build_request(
        self,
        text: str,
        voice_id: Optional[str],
        overrides: Dict[str, Any],
    ) -> Tuple[str, Dict[str, Any]]:
        """(url, json body) for one synthesis call."""
        voice = voice_id or self.voice_id
        body = {
            "text": text,
            "model_id": self.model,
            "voice_settings": voice_settings(overrides),
        }
        return f"{self.config.base_url}/v1/text-to-speech/{voice}", body

    async def generate_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        **kwargs
    ) -> AudioGenerationResult:
        """
        Speak `text`.

        Keyword overrides: stability, similarity_boost, style,
        use_speaker_boost.
        """
        if not self.is_configured:
            return AudioGenerationResult(
                success=False,
                error_message="No ElevenLabs key; set ELEVENLABS_API_KEY",
            )
        if not text or not text.strip():
            return AudioGenerationResult(success=False, error_message="Nothing to narrate")

        url, body = self.build_request(text, voice_id, kwargs)
        headers = {
            "xi-api-key": self.config.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        logger.debug(f"ElevenLabs: {len(text)} chars -> {url.rsplit('/', 1)[-1]}")

        async with open_session(self.session, self.config.timeout) as session:
            async with session.post(
                url,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:
                if response.status != 200:
                    detail = (await response.text())[:200]
                    return AudioGenerationResult(
                        success=False,
                        error_message=f"ElevenLabs returned {response.status}: {detail}",
                    )
                mp3 = await response.read()

        return AudioGenerationResult(
            success=True,
            audio_data=mp3,
            format="mp3",
            provider_metadata={"provider": self.name, "model": self.model, "chars": len(text)},
        )

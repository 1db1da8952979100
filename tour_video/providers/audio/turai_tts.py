"""
Turai TTS provider

Secondary narration source. POST /api/tts/generate answers with an
{audioUrl} that is often relative to the Turai host; the URL is made
absolute here and downloaded by the fetcher.
"""

import logging
from typing import Optional

import aiohttp

from ...download import make_absolute_url, open_session
from ..base import AudioGenerationResult, AudioProvider, AudioProviderConfig

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/tts/generate"


class TuraiTTSProvider(AudioProvider):
    """Turai text-to-speech endpoint."""

    def __init__(
        self,
        config: AudioProviderConfig,
        session: Optional[aiohttp.ClientSession] = None,
        voice: str = "alloy",
    ):
        super().__init__(config, session)
        self.voice = voice

    @property
    def name(self) -> str:
        return "turai_tts"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.base_url)

    async def generate_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        **kwargs
    ) -> AudioGenerationResult:
        if not self.config.base_url:
            return AudioGenerationResult(success=False, error_message="Turai API URL not configured")
        if not text or not text.strip():
            return AudioGenerationResult(success=False, error_message="Text cannot be empty")

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["X-API-Key"] = self.config.api_key
        url = f"{self.config.base_url.rstrip('/')}{GENERATE_PATH}"
        logger.debug(f"Turai TTS request: {len(text)} chars")

        async with open_session(self.session, self.config.timeout) as session:
            async with session.post(
                url,
                json={"text": text, "voice": voice_id or self.voice},
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    return AudioGenerationResult(
                        success=False,
                        error_message=f"Turai TTS error (status {response.status}): {error_text[:200]}",
                    )
                payload = await response.json(content_type=None)

        audio_url = (payload or {}).get("audioUrl")
        if not audio_url:
            return AudioGenerationResult(success=False, error_message="Turai TTS returned no audioUrl")

        return AudioGenerationResult(
            success=True,
            audio_url=make_absolute_url(audio_url, self.config.base_url),
            provider_metadata={"provider": self.name, "voice": voice_id or self.voice},
        )

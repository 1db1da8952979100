"""Pipeline configuration using pydantic-settings"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings

from .models.render import AssemblyOptions, EncodeStrategy, OutputFormat, RenderConfig


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables"""

    # Tour service
    turai_api_url: str = "https://turai.org"
    turai_api_key: str = ""

    # Storage
    temp_dir: str = "./artifacts/tmp"
    output_dir: str = "./artifacts/videos"

    # Timing
    seconds_per_image: float = 5.0
    max_duration_seconds: float = 60.0
    transition_duration: float = 0.5

    # Download validation
    min_image_bytes: int = 10_000
    min_audio_bytes: int = 1_000

    # Timeouts
    http_timeout_seconds: float = 30.0
    encode_timeout_seconds: float = 60.0
    encode_timeout_per_second: float = 3.0
    poll_interval_seconds: float = 8.0
    poll_max_wait_seconds: float = 180.0

    readiness_policy: Literal["all", "half"] = "all"
    output_format: Literal["portrait", "square"] = "portrait"
    encode_strategy: Literal["segments", "xfade"] = "segments"

    # ElevenLabs "Rachel"
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def assembly_options(self) -> AssemblyOptions:
        return AssemblyOptions(
            max_duration_seconds=self.max_duration_seconds,
            seconds_per_image=self.seconds_per_image,
            transition_duration=self.transition_duration,
            output_format=OutputFormat(self.output_format),
            strategy=EncodeStrategy(self.encode_strategy),
        )

    def render_config(self, output_format: Optional[OutputFormat] = None) -> RenderConfig:
        return RenderConfig.for_format(
            output_format or OutputFormat(self.output_format),
            timeout=self.encode_timeout_seconds,
            timeout_per_second=self.encode_timeout_per_second,
            max_clip_seconds=self.seconds_per_image,
        )


def get_settings() -> Settings:
    """Load settings fresh from the environment and .env"""
    return Settings()

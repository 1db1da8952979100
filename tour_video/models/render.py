"""
Render models for FFmpeg stop video assembly

These models represent the encoding configuration and the results handed
back to callers of the assembly pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class OutputFormat(Enum):
    """Output frame shapes supported by the social platforms"""
    PORTRAIT = "portrait"  # 9:16
    SQUARE = "square"      # 1:1

    @property
    def size(self) -> Tuple[int, int]:
        if self is OutputFormat.SQUARE:
            return (1080, 1080)
        return (1080, 1920)


class EncodeStrategy(Enum):
    """How a multi-image timeline is turned into encoder invocations"""
    SEGMENTS = "segments"      # one clip per image, then concat + mux
    XFADE = "xfade"            # single filter graph with chained xfade
    SINGLE_IMAGE = "single_image"


@dataclass
class RenderConfig:
    """
    Configuration for encoding.

    Attributes:
        output_width: Output video width in pixels
        output_height: Output video height in pixels
        output_fps: Output frame rate
        video_codec: Video codec
        audio_codec: Audio codec
        audio_bitrate: Audio bitrate (e.g., "128k")
        audio_sample_rate: Output sample rate; uniform so stop videos can be joined by stream copy
        pixel_format: Pixel format (yuv420p for player compatibility)
        zoom_step: Per-frame Ken Burns zoom increment
        max_zoom: Upper clamp on Ken Burns scale
        timeout: Minimum time limit for each encoder subprocess (seconds)
        timeout_per_second: Extra budget per second of output a subprocess renders
        max_clip_seconds: Longest clip handed to a single encoder process
    """
    output_width: int = 1080
    output_height: int = 1920
    output_fps: int = 25
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    audio_sample_rate: int = 44100
    pixel_format: str = "yuv420p"

    # Quality preset (ultrafast, fast, medium, slow, veryslow)
    preset: str = "fast"

    # CRF for quality-based encoding (0-51, lower = better)
    crf: int = 23

    zoom_step: float = 0.0008
    max_zoom: float = 1.15

    timeout: float = 60.0
    timeout_per_second: float = 3.0
    max_clip_seconds: float = 5.0

    def __post_init__(self):
        # Keep zoom inside the 1.1x-1.2x band
        self.max_zoom = min(1.2, max(1.1, self.max_zoom))

    @classmethod
    def for_format(cls, output_format: OutputFormat, **kwargs) -> "RenderConfig":
        width, height = output_format.size
        return cls(output_width=width, output_height=height, **kwargs)

    def timeout_for(self, output_seconds: float) -> float:
        """Time limit for one subprocess producing output_seconds of video."""
        return max(self.timeout, output_seconds * self.timeout_per_second)

    @property
    def frame_size(self) -> str:
        return f"{self.output_width}x{self.output_height}"


@dataclass
class EncodeOutcome:
    """What the encoder produced"""
    output_path: str
    strategy: EncodeStrategy
    duration: float
    fell_back: bool = False
    fallback_reason: Optional[str] = None


@dataclass
class AssemblyOptions:
    """Per-call knobs for assembling one stop video"""
    max_duration_seconds: float = 60.0
    seconds_per_image: float = 5.0
    transition_duration: float = 0.5
    output_format: OutputFormat = OutputFormat.PORTRAIT
    strategy: EncodeStrategy = EncodeStrategy.SEGMENTS
    max_images: int = 6


@dataclass
class AssemblyResult:
    """
    Outcome of one assembly run.

    On success the caller owns video_path. On failure every temp file has
    already been removed.
    """
    success: bool
    video_path: Optional[str] = None
    error: Optional[str] = None
    duration: Optional[float] = None
    stop_name: Optional[str] = None
    strategy: Optional[str] = None
    has_audio: bool = False
    warnings: List[str] = field(default_factory=list)

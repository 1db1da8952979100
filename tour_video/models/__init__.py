"""Data models for the stop video pipeline"""

from .stop import StopDescriptor, StopAsset, MAX_IMAGES_PER_STOP
from .timeline import Segment, Timeline, ZoomDirection
from .render import (
    AssemblyOptions,
    AssemblyResult,
    EncodeOutcome,
    EncodeStrategy,
    OutputFormat,
    RenderConfig,
)

__all__ = [
    "StopDescriptor",
    "StopAsset",
    "MAX_IMAGES_PER_STOP",
    "Segment",
    "Timeline",
    "ZoomDirection",
    "AssemblyOptions",
    "AssemblyResult",
    "EncodeOutcome",
    "EncodeStrategy",
    "OutputFormat",
    "RenderConfig",
]

"""Narrated tour stop videos: asset acquisition, timeline composition and FFmpeg assembly"""

from .models import AssemblyOptions, AssemblyResult, StopDescriptor, Timeline
from .orchestrator import (
    StopVideoAssembler,
    TourRunResult,
    TourVideoPipeline,
    assemble_stop_video,
    cleanup_old_videos,
)
from .timeline import NoAssetsAvailable, compute_timeline

__version__ = "0.1.0"

__all__ = [
    "AssemblyOptions",
    "AssemblyResult",
    "StopDescriptor",
    "Timeline",
    "StopVideoAssembler",
    "TourRunResult",
    "TourVideoPipeline",
    "assemble_stop_video",
    "cleanup_old_videos",
    "NoAssetsAvailable",
    "compute_timeline",
]

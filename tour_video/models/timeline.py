"""
Timeline models

A Timeline is the rendering plan for one stop video: which image is shown
when, for how long, and how adjacent images overlap.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


class ZoomDirection(Enum):
    """Ken Burns zoom direction"""
    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class Segment:
    """
    One image on the timeline.

    Attributes:
        image_path: Local image file
        start_offset: When the segment starts in the output (seconds). For
            segments after the first this is also the cross-fade offset.
        duration: How long the segment is on screen, including the overlap
            it shares with the next segment
        zoom_direction: Ken Burns direction for this image
    """
    image_path: Path
    start_offset: float
    duration: float
    zoom_direction: ZoomDirection = ZoomDirection.IN

    @property
    def end(self) -> float:
        return self.start_offset + self.duration


@dataclass(frozen=True)
class Timeline:
    """
    Immutable rendering plan.

    total_duration == sum(durations) - transition_count * transition_duration
    """
    segments: Tuple[Segment, ...]
    transition_duration: float
    total_duration: float
    has_audio: bool = False

    @property
    def image_count(self) -> int:
        return len(self.segments)

    @property
    def transition_count(self) -> int:
        return max(0, len(self.segments) - 1)

    @property
    def end_time(self) -> float:
        """End of the last segment on the output timeline."""
        if not self.segments:
            return 0.0
        return self.segments[-1].end

    def clip_duration(self, index: int) -> float:
        """
        Exclusive span of a segment: time until the next segment starts.

        Used when segments are rendered as separate clips and concatenated
        back to back instead of overlapped.
        """
        if index < len(self.segments) - 1:
            return self.segments[index + 1].start_offset - self.segments[index].start_offset
        return self.total_duration - self.segments[index].start_offset

    def primary_image(self) -> Optional[Path]:
        return self.segments[0].image_path if self.segments else None

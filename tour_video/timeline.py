"""
Timeline Composer

Decides how many images are shown, for how long, and where each
cross-fade starts. Offsets are accumulated segment by segment from the
previous start, duration and overlap; the last segment takes whatever
is left so the chain ends exactly at the total duration.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from .models.stop import MAX_IMAGES_PER_STOP
from .models.timeline import Segment, Timeline, ZoomDirection

logger = logging.getLogger(__name__)


class NoAssetsAvailable(Exception):
    """There are no images to build a video from"""
    pass


def zoom_for_index(index: int) -> ZoomDirection:
    """Alternate zoom direction for visual variety."""
    return ZoomDirection.IN if index % 2 == 0 else ZoomDirection.OUT


def compute_timeline(
    images: Sequence[Path],
    audio_duration: Optional[float] = None,
    seconds_per_image: float = 5.0,
    max_duration: float = 60.0,
    transition_duration: float = 0.5,
    max_images: int = MAX_IMAGES_PER_STOP,
) -> Timeline:
    """
    Build the rendering plan for a stop.

    Args:
        images: Local image paths in display order
        audio_duration: Narration length in seconds, None for a silent stop
        seconds_per_image: Target on-screen time per image
        max_duration: Hard cap on the video length
        transition_duration: Requested cross-fade length
        max_images: Images beyond this are dropped

    Returns:
        Timeline whose chain ends exactly at total_duration

    Raises:
        NoAssetsAvailable: If there are no images
        ValueError: If a duration argument is not positive
    """
    if not images:
        raise NoAssetsAvailable("No images available for timeline")
    if seconds_per_image <= 0 or max_duration <= 0:
        raise ValueError("seconds_per_image and max_duration must be positive")

    if len(images) > max_images:
        logger.info(f"Using first {max_images} of {len(images)} images")
    images = list(images)[:max_images]
    count = len(images)

    has_audio = audio_duration is not None and audio_duration > 0
    if has_audio:
        total = min(max_duration, audio_duration)
    else:
        total = min(max_duration, count * seconds_per_image)

    per_image = min(seconds_per_image, total / count)

    if count == 1:
        transition = 0.0
    else:
        transition = max(0.0, min(transition_duration, per_image / 2))

    segments = []
    start = 0.0
    for index, image in enumerate(images):
        if index < count - 1:
            duration = per_image + transition
        else:
            # Last segment absorbs whatever is left so the chain ends at total
            duration = total - start
        segments.append(Segment(
            image_path=Path(image),
            start_offset=start,
            duration=duration,
            zoom_direction=zoom_for_index(index),
        ))
        start = start + duration - transition

    timeline = Timeline(
        segments=tuple(segments),
        transition_duration=transition,
        total_duration=total,
        has_audio=has_audio,
    )
    logger.debug(
        f"Timeline: {count} images, {per_image:.2f}s each, "
        f"{transition:.2f}s transitions, {total:.2f}s total"
    )
    return timeline

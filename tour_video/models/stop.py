"""
Stop models

A StopDescriptor is the remote view of one tour stop (URLs as returned by the
tour service). A StopAsset is the same stop after its media has been resolved
to local temp files.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


# Upper bound on images shown per stop
MAX_IMAGES_PER_STOP = 6


@dataclass
class StopDescriptor:
    """
    One narrated waypoint as described by the tour service.

    Attributes:
        name: Display name of the stop
        description: Short description (used as narration fallback)
        narration_text: Full narration script, if the service produced one
        image_urls: Ordered candidate image URLs (http(s) or data: URIs)
        audio_url: Narration audio URL (http(s) or data: URI)
        index: Zero-based position of the stop in its tour
    """
    name: str
    description: str = ""
    narration_text: Optional[str] = None
    image_urls: List[str] = field(default_factory=list)
    audio_url: Optional[str] = None
    index: int = 0

    @property
    def spoken_text(self) -> str:
        """Text to synthesize when no narration audio is available."""
        return (self.narration_text or self.description or self.name).strip()

    @classmethod
    def from_dict(cls, data: dict) -> "StopDescriptor":
        """Build from a camelCase or snake_case dict."""
        return cls(
            name=data.get("name") or "Untitled stop",
            description=data.get("description") or "",
            narration_text=data.get("narrationText") or data.get("narration_text"),
            image_urls=list(data.get("imageUrls") or data.get("image_urls") or []),
            audio_url=data.get("audioUrl") or data.get("audio_url"),
            index=int(data.get("index", 0)),
        )


@dataclass
class StopAsset:
    """
    A stop whose media has been resolved to local temp files.

    Paths are owned by the assembly run and removed once encoding finishes.
    """
    name: str
    description: str = ""
    narration_text: Optional[str] = None
    image_paths: List[Path] = field(default_factory=list)
    audio_path: Optional[Path] = None
    audio_duration: Optional[float] = None

    @property
    def has_audio(self) -> bool:
        return self.audio_path is not None

    def temp_files(self) -> List[Path]:
        files = list(self.image_paths)
        if self.audio_path is not None:
            files.append(self.audio_path)
        return files

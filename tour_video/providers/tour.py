"""
Turai tour source

Creates tours through the Turai tour-maker wizard and reads their current
state from the slideshow endpoint. Tour generation is asynchronous on the
Turai side: the share code comes back quickly and narrations appear over
the following minutes, which is why snapshots are polled.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from ..download import make_absolute_url, open_session
from ..models.stop import MAX_IMAGES_PER_STOP, StopDescriptor
from .base import _mask_secret

logger = logging.getLogger(__name__)

WIZARD_PATH = "/api/tour-maker/wizard/generate"
SLIDESHOW_PATH = "/api/slideshows/{code}"

DEFAULT_THEME = "hidden_gems"
DEFAULT_EMAIL = "vibepost@turai.app"


class TourSourceError(Exception):
    """The tour service could not be reached or returned an unusable response"""
    pass


@dataclass
class TourSnapshot:
    """
    Point-in-time view of a tour.

    Attributes:
        share_code: Turai share code
        stops: One descriptor per point of interest, in tour order
        narration_count: Narrations generated so far
        poi_count: Points of interest in the tour
        destination: Tour destination, when reported
    """
    share_code: str
    stops: List[StopDescriptor] = field(default_factory=list)
    narration_count: int = 0
    poi_count: int = 0
    destination: str = ""

    @property
    def ready(self) -> bool:
        return self.poi_count > 0 and self.narration_count >= self.poi_count


def _unwrap(payload: Any) -> Dict[str, Any]:
    """Strip the optional {data: {...}} envelope."""
    if isinstance(payload, dict):
        inner = payload.get("data")
        if isinstance(inner, dict):
            return inner
        return payload
    return {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _dicts(value: Any) -> List[Dict[str, Any]]:
    """Dict items of a JSON array; anything else counts as empty."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _match_narrations(narrations: List[Dict[str, Any]], poi_count: int) -> List[Optional[Dict[str, Any]]]:
    """
    Assign narrations to points of interest.

    poiIndex wins, then stopNumber (1-based), then list position.
    """
    matched: List[Optional[Dict[str, Any]]] = [None] * poi_count
    leftovers = []
    for narration in narrations:
        if not isinstance(narration, dict):
            continue
        slot = None
        if isinstance(narration.get("poiIndex"), int):
            slot = narration["poiIndex"]
        elif isinstance(narration.get("stopNumber"), int):
            slot = narration["stopNumber"] - 1
        if slot is not None and 0 <= slot < poi_count and matched[slot] is None:
            matched[slot] = narration
        else:
            leftovers.append(narration)

    # Fill remaining gaps in order
    for i in range(poi_count):
        if matched[i] is None and leftovers:
            matched[i] = leftovers.pop(0)
    return matched


class TuraiTourSource:
    """Client for the Turai tour-maker and slideshow endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
        max_images_per_stop: int = MAX_IMAGES_PER_STOP,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session
        self.max_images_per_stop = max_images_per_stop

    def __repr__(self) -> str:
        return f"TuraiTourSource(base_url={self.base_url!r}, api_key={_mask_secret(self.api_key)})"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def create_tour(
        self,
        destination: str,
        theme: Optional[str] = None,
        topic: Optional[str] = None,
    ) -> str:
        """
        Start tour generation.

        Returns:
            The tour's share code

        Raises:
            TourSourceError: On HTTP errors or a response without a share code
        """
        body = {
            "location": destination,
            "theme": theme or DEFAULT_THEME,
            "focus": topic,
            "email": DEFAULT_EMAIL,
        }
        url = f"{self.base_url}{WIZARD_PATH}"
        logger.info(f"Generating tour for {destination!r}" + (f" (topic: {topic})" if topic else ""))

        try:
            async with open_session(self.session, self.timeout) as session:
                async with session.post(
                    url,
                    json=body,
                    headers=self._headers(),
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise TourSourceError(f"Turai API error: {response.status} - {error_text[:200]}")
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TourSourceError(f"Tour generation request failed: {e!r}")

        share_code = _unwrap(payload).get("shareCode") or _as_dict(payload).get("shareCode")
        if not share_code:
            raise TourSourceError("No share code returned")

        logger.info(f"Tour created: {share_code}")
        return share_code

    async def fetch_snapshot(self, share_code: str) -> TourSnapshot:
        """
        Read the current state of a tour.

        Raises:
            TourSourceError: On HTTP errors or a body that is not JSON
        """
        url = f"{self.base_url}{SLIDESHOW_PATH.format(code=share_code)}"
        try:
            async with open_session(self.session, self.timeout) as session:
                async with session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        raise TourSourceError(f"Slideshow {share_code} returned HTTP {response.status}")
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TourSourceError(f"Slideshow request failed: {e!r}")
        except ValueError as e:
            raise TourSourceError(f"Slideshow {share_code} returned invalid JSON: {e}")

        return self.parse_snapshot(share_code, payload)

    def parse_snapshot(self, share_code: str, payload: Any) -> TourSnapshot:
        data = _unwrap(payload)
        tour = _as_dict(data.get("tour"))
        pois = _dicts(tour.get("pointsOfInterest"))
        narrations = _dicts(data.get("narrations"))
        matched = _match_narrations(narrations, len(pois))

        stops = []
        for i, (poi, narration) in enumerate(zip(pois, matched)):
            narration = narration or {}
            text = narration.get("narrationText") or narration.get("text")
            audio_url = narration.get("audioUrl")
            stops.append(StopDescriptor(
                name=poi.get("name") or f"Stop {i + 1}",
                description=text or poi.get("description") or "",
                narration_text=text,
                image_urls=self._collect_image_urls(poi, narration),
                audio_url=make_absolute_url(audio_url, self.base_url) if audio_url else None,
                index=i,
            ))

        return TourSnapshot(
            share_code=share_code,
            stops=stops,
            narration_count=len(narrations),
            poi_count=len(pois),
            destination=tour.get("destination") or tour.get("name") or "",
        )

    def _collect_image_urls(self, poi: Dict[str, Any], narration: Dict[str, Any]) -> List[str]:
        candidates: List[str] = []
        if poi.get("heroImageUrl"):
            candidates.append(poi["heroImageUrl"])
        for source in (narration, poi):
            photo_urls = source.get("photoUrls")
            if isinstance(photo_urls, list):
                candidates.extend(photo_urls)
        photos = poi.get("photos")
        for photo in photos if isinstance(photos, list) else []:
            candidates.append(photo.get("url") if isinstance(photo, dict) else photo)
        if narration.get("thumbnailUrl"):
            candidates.append(narration["thumbnailUrl"])

        urls: List[str] = []
        for url in candidates:
            if not url or not isinstance(url, str):
                continue
            absolute = make_absolute_url(url, self.base_url)
            if absolute not in urls:
                urls.append(absolute)
            if len(urls) >= self.max_images_per_stop:
                break
        return urls

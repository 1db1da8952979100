"""Test data factories and fakes for consistent test setup"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import aiohttp

from tour_video.models.stop import StopDescriptor
from tour_video.providers.tour import TourSnapshot


# Payloads just over the default size floors
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 12_000
MP3_BYTES = b"ID3\x03" + b"\x00" * 4_000


def make_stop(
    name: str = "Old Town",
    image_count: int = 3,
    audio_url: Optional[str] = "https://cdn.example.com/audio/old_town.mp3",
    **kwargs
) -> StopDescriptor:
    """Factory for StopDescriptor objects"""
    defaults = {
        "name": name,
        "description": f"A walk through {name}",
        "narration_text": f"Welcome to {name}.",
        "image_urls": [f"https://cdn.example.com/img/{i}.jpg" for i in range(image_count)],
        "audio_url": audio_url,
        "index": 0,
    }
    defaults.update(kwargs)
    return StopDescriptor(**defaults)


def make_snapshot(
    narration_count: int,
    poi_count: int = 5,
    share_code: str = "abc123",
    destination: str = "Prague",
) -> TourSnapshot:
    """Factory for TourSnapshot objects"""
    stops = [make_stop(name=f"Stop {i + 1}", index=i) for i in range(poi_count)]
    return TourSnapshot(
        share_code=share_code,
        stops=stops,
        narration_count=narration_count,
        poi_count=poi_count,
        destination=destination,
    )


def make_slideshow_payload(
    pois: List[Dict[str, Any]],
    narrations: List[Dict[str, Any]],
    destination: str = "Prague",
    envelope: bool = True,
) -> Dict[str, Any]:
    """Factory for Turai slideshow responses"""
    body = {
        "tour": {"destination": destination, "pointsOfInterest": pois},
        "narrations": narrations,
    }
    return {"success": True, "data": body} if envelope else body


def make_image_files(directory: Path, count: int = 3) -> List[Path]:
    """Write small placeholder image files"""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for i in range(count):
        path = directory / f"image_{i}.jpg"
        path.write_bytes(JPEG_BYTES)
        paths.append(path)
    return paths


def make_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"", hang: bool = False):
    """Fake asyncio subprocess"""
    process = MagicMock()
    process.returncode = returncode
    if hang:
        # Still running until killed
        process.returncode = None

        async def _hang():
            import asyncio
            await asyncio.sleep(3600)
        process.communicate = AsyncMock(side_effect=_hang)
    else:
        process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.kill = MagicMock()
    process.wait = AsyncMock(return_value=-9)
    return process


# ============================================================
# Fake aiohttp session
# ============================================================

class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse used as an async context manager"""

    def __init__(
        self,
        status: int = 200,
        body: bytes = b"",
        headers: Optional[Dict[str, str]] = None,
        json_data: Any = None,
    ):
        self.status = status
        self.body = body
        self.headers = headers or {}
        self.json_data = json_data

    async def read(self) -> bytes:
        return self.body

    async def text(self) -> str:
        if self.json_data is not None:
            return json.dumps(self.json_data)
        return self.body.decode(errors="replace")

    async def json(self, content_type=None) -> Any:
        if self.json_data is not None:
            return self.json_data
        return json.loads(self.body.decode())

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    Routes (method, url) to queued FakeResponses.

    Exact URL matches win, then the longest registered prefix. The last
    queued response for a route is reused once the queue drains. Queue an
    exception instance to have the request raise it.
    """

    def __init__(self):
        self.routes: Dict[tuple, list] = {}
        self.calls: List[tuple] = []

    def add(self, method: str, url: str, *responses) -> "FakeSession":
        self.routes.setdefault((method, url), []).extend(responses)
        return self

    def _lookup(self, method: str, url: str) -> list:
        if (method, url) in self.routes:
            return self.routes[(method, url)]
        prefixes = [u for (m, u) in self.routes if m == method and url.startswith(u)]
        if not prefixes:
            raise aiohttp.ClientConnectionError(f"No fake route for {method} {url}")
        return self.routes[(method, max(prefixes, key=len))]

    def _dispatch(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        queue = self._lookup(method, url)
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url: str, **kwargs):
        return self._dispatch("GET", url, **kwargs)

    def post(self, url: str, **kwargs):
        return self._dispatch("POST", url, **kwargs)

    def urls(self, method: Optional[str] = None) -> List[str]:
        return [u for (m, u, _) in self.calls if method is None or m == method]

"""
Remote asset download

Fetches images and audio over HTTP(S) or from inline data: URIs and writes
them to uniquely named files in a scoped temp directory. Redirects are
followed by hand so that the hop count stays bounded and relative
Location headers resolve against the URL that produced them.
"""

import asyncio
import base64
import binascii
import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple
from urllib.parse import urljoin

import aiohttp

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)

REDIRECT_STATUSES = {301, 302, 303, 307, 308}

USER_AGENT = "Mozilla/5.0 (compatible; TourVideoBot/1.0)"

# Content type -> file extension for the formats we expect
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
    "audio/aac": "aac",
    "audio/mp4": "m4a",
}


class DownloadError(Exception):
    """A remote asset could not be fetched or failed validation"""
    pass


@asynccontextmanager
async def open_session(
    session: Optional[aiohttp.ClientSession] = None,
    timeout: float = 30.0,
) -> AsyncIterator[aiohttp.ClientSession]:
    """Yield the caller's session, or a short-lived one closed on exit."""
    if session is not None:
        yield session
        return
    async with aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers={"User-Agent": USER_AGENT},
    ) as owned:
        yield owned


def make_absolute_url(url: str, base_url: str) -> str:
    """Prefix relative URLs with the tour service base URL."""
    if not url:
        return url
    if url.startswith(("http://", "https://", "data:")):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def decode_data_uri(uri: str) -> Tuple[str, bytes]:
    """
    Decode a base64 data: URI.

    Returns:
        (mime_type, payload)

    Raises:
        DownloadError: If the URI is malformed or not valid base64
    """
    match = DATA_URI_RE.match(uri.strip())
    if not match:
        raise DownloadError("Malformed data URI")
    try:
        payload = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError) as e:
        raise DownloadError(f"Invalid base64 payload: {e}")
    return match.group(1).strip().lower(), payload


def extension_for(content_type: Optional[str], default: str) -> str:
    if not content_type:
        return default
    return _EXTENSIONS.get(content_type.split(";")[0].strip().lower(), default)


def unique_temp_path(directory: Path, prefix: str, ext: str) -> Path:
    """<prefix>_<epoch-ms>_<random hex>.<ext>, never reused within a process."""
    stamp = int(time.time() * 1000)
    return Path(directory) / f"{prefix}_{stamp}_{uuid.uuid4().hex[:12]}.{ext.lstrip('.')}"


def remove_quietly(path: Optional[Path]) -> None:
    """Best-effort delete; a missing file is not an error."""
    if path is None:
        return
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {path}: {e}")


class Downloader:
    """
    Fetches remote assets into a temp directory.

    Args:
        temp_dir: Directory for downloaded files (created on demand)
        timeout: Total timeout for each HTTP request, in seconds
        max_redirects: Maximum redirect hops before giving up
        session: Optional shared aiohttp session
    """

    def __init__(
        self,
        temp_dir: Path,
        timeout: float = 30.0,
        max_redirects: int = 5,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.temp_dir = Path(temp_dir)
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.session = session

    async def fetch(self, url: str) -> Tuple[bytes, Optional[str]]:
        """
        Fetch the body behind a URL.

        Returns:
            (body, content_type)

        Raises:
            DownloadError: On network errors, non-2xx status, or too many redirects
        """
        if url.startswith("data:"):
            mime, payload = decode_data_uri(url)
            return payload, mime

        current = url
        try:
            async with open_session(self.session, self.timeout) as session:
                for _ in range(self.max_redirects + 1):
                    async with session.get(
                        current,
                        allow_redirects=False,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        if response.status in REDIRECT_STATUSES:
                            location = response.headers.get("Location")
                            if not location:
                                raise DownloadError(
                                    f"Redirect {response.status} without Location from {current}"
                                )
                            next_url = urljoin(current, location)
                            logger.debug(f"Redirect {response.status}: {current} -> {next_url}")
                            current = next_url
                            continue

                        if response.status < 200 or response.status >= 300:
                            raise DownloadError(f"HTTP {response.status} for {current}")

                        body = await response.read()
                        return body, response.headers.get("Content-Type")
        except aiohttp.ClientError as e:
            raise DownloadError(f"Request failed for {current}: {e}")
        except asyncio.TimeoutError:
            raise DownloadError(f"Timed out after {self.timeout}s fetching {current}")

        raise DownloadError(f"Too many redirects (>{self.max_redirects}) starting at {url}")

    def save(self, data: bytes, prefix: str, ext: str, min_bytes: int = 0) -> Path:
        """Write bytes to a fresh temp file after checking the size floor."""
        if len(data) < min_bytes:
            raise DownloadError(f"Payload too small ({len(data)} bytes < {min_bytes})")
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = unique_temp_path(self.temp_dir, prefix, ext)
        path.write_bytes(data)
        return path

    async def download(
        self,
        url: str,
        prefix: str,
        default_ext: str,
        min_bytes: int = 0,
        content_type_prefix: Optional[str] = None,
    ) -> Path:
        """
        Download a URL (or decode a data: URI) to a temp file.

        Args:
            url: http(s) URL or data: URI
            prefix: File name prefix (e.g. "img", "audio")
            default_ext: Extension when the content type is unknown
            min_bytes: Reject payloads smaller than this
            content_type_prefix: Reject responses whose type does not start with it

        Returns:
            Path to the written file

        Raises:
            DownloadError: If fetching or validation fails
        """
        body, content_type = await self.fetch(url)

        if content_type_prefix and content_type:
            if not content_type.lower().startswith(content_type_prefix):
                raise DownloadError(
                    f"Unexpected content type {content_type!r} from {url[:80]}"
                )

        path = self.save(body, prefix, extension_for(content_type, default_ext), min_bytes)
        logger.debug(f"Saved {len(body)} bytes to {path.name}")
        return path

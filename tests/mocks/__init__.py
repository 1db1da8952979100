"""Test doubles and factories"""

from .fixtures import (
    FakeResponse,
    FakeSession,
    JPEG_BYTES,
    MP3_BYTES,
    make_image_files,
    make_process,
    make_slideshow_payload,
    make_snapshot,
    make_stop,
)

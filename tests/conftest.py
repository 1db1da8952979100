"""Shared pytest fixtures"""

import pytest

from tour_video.download import Downloader
from tests.mocks.fixtures import (
    FakeSession,
    make_image_files,
    make_stop,
)


# ============================================================
# HTTP
# ============================================================

@pytest.fixture
def fake_session():
    """Fresh fake aiohttp session for each test"""
    return FakeSession()


@pytest.fixture
def downloader(tmp_path, fake_session):
    """Downloader writing into a per-test temp directory"""
    return Downloader(tmp_path / "downloads", timeout=5.0, session=fake_session)


# ============================================================
# Test Data Fixtures
# ============================================================

@pytest.fixture
def sample_stop():
    """Stop with 3 image URLs and an audio URL"""
    return make_stop()


@pytest.fixture
def image_files(tmp_path):
    """Three placeholder images on disk"""
    return make_image_files(tmp_path / "images", 3)


# ============================================================
# Markers Configuration
# ============================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks integration tests (need ffmpeg)"
    )
    config.addinivalue_line(
        "markers", "live_api: marks tests that hit real APIs (requires keys)"
    )

"""
Integration tests against a real ffmpeg binary.

Skipped when ffmpeg is not on PATH. Run with:
    pytest tests/integration -m integration
"""

import shutil

import pytest

from tour_video.encoder import FFmpegEncoder, probe_duration, run_process
from tour_video.models.render import EncodeStrategy, RenderConfig
from tour_video.timeline import compute_timeline

pytestmark = [
    pytest.mark.integration,
    pytest.mark.slow,
    pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg not installed"),
]


async def _make_image(path, color):
    await run_process([
        shutil.which("ffmpeg"), "-y",
        "-f", "lavfi", "-i", f"color=c={color}:s=640x480",
        "-frames:v", "1", str(path),
    ], timeout=30)
    return path


async def _make_tone(path, seconds):
    await run_process([
        shutil.which("ffmpeg"), "-y",
        "-f", "lavfi", "-i", f"sine=frequency=440:duration={seconds}",
        "-c:a", "libmp3lame", str(path),
    ], timeout=30)
    return path


@pytest.fixture
def encoder(tmp_path):
    # Small frames keep the encode fast
    config = RenderConfig(output_width=360, output_height=640, preset="ultrafast", timeout=120)
    return FFmpegEncoder(config, work_dir=tmp_path / "work")


@pytest.mark.asyncio
async def test_single_silent_image(encoder, tmp_path):
    image = await _make_image(tmp_path / "blue.jpg", "blue")
    timeline = compute_timeline([image], seconds_per_image=3)

    outcome = await encoder.encode(timeline, None, tmp_path / "out.mp4")

    assert outcome.strategy is EncodeStrategy.SINGLE_IMAGE
    assert await probe_duration(tmp_path / "out.mp4") == pytest.approx(3.0, abs=0.2)


@pytest.mark.asyncio
async def test_segments_with_narration(encoder, tmp_path):
    images = [await _make_image(tmp_path / f"{c}.jpg", c) for c in ("red", "green", "blue")]
    audio = await _make_tone(tmp_path / "tone.mp3", 6)
    duration = await probe_duration(audio)
    timeline = compute_timeline(images, audio_duration=duration)

    outcome = await encoder.encode(timeline, audio, tmp_path / "out.mp4")

    assert outcome.strategy is EncodeStrategy.SEGMENTS
    assert outcome.fell_back is False
    assert await probe_duration(tmp_path / "out.mp4") == pytest.approx(6.0, abs=0.3)
    assert list((tmp_path / "work").iterdir()) == []


@pytest.mark.asyncio
async def test_xfade_graph(encoder, tmp_path):
    images = [await _make_image(tmp_path / f"{c}.jpg", c) for c in ("red", "green")]
    timeline = compute_timeline(images, seconds_per_image=2)

    outcome = await encoder.encode(timeline, None, tmp_path / "out.mp4", strategy=EncodeStrategy.XFADE)

    assert outcome.strategy in (EncodeStrategy.XFADE, EncodeStrategy.SINGLE_IMAGE)
    assert await probe_duration(tmp_path / "out.mp4") == pytest.approx(4.0, abs=0.3)


@pytest.mark.asyncio
async def test_long_final_span_is_split(encoder, tmp_path):
    images = [await _make_image(tmp_path / f"{c}.jpg", c) for c in ("red", "green")]
    audio = await _make_tone(tmp_path / "tone.mp3", 14)
    timeline = compute_timeline(images, audio_duration=await probe_duration(audio))

    assert len(encoder.clip_plan(timeline)) > timeline.image_count
    outcome = await encoder.encode(timeline, audio, tmp_path / "out.mp4")

    assert outcome.fell_back is False
    assert await probe_duration(tmp_path / "out.mp4") == pytest.approx(14.0, abs=0.4)


@pytest.mark.asyncio
async def test_join_narrated_and_silent_stops(encoder, tmp_path):
    image = await _make_image(tmp_path / "red.jpg", "red")
    audio = await _make_tone(tmp_path / "tone.mp3", 3)
    narrated = compute_timeline([image], audio_duration=await probe_duration(audio))
    silent = compute_timeline([image], seconds_per_image=2)
    await encoder.encode(narrated, audio, tmp_path / "a.mp4")
    await encoder.encode(silent, None, tmp_path / "b.mp4")

    await encoder.concatenate([tmp_path / "a.mp4", tmp_path / "b.mp4"], tmp_path / "tour.mp4", silent=[1])

    assert await probe_duration(tmp_path / "tour.mp4") == pytest.approx(5.0, abs=0.4)
    assert list((tmp_path / "work").iterdir()) == []

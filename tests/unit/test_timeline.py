"""Unit tests for timeline composition"""

from pathlib import Path

import pytest

from tour_video.models.timeline import ZoomDirection
from tour_video.timeline import NoAssetsAvailable, compute_timeline, zoom_for_index


def _images(count):
    return [Path(f"/tmp/img_{i}.jpg") for i in range(count)]


def _assert_chain_consistent(timeline):
    """Offsets chain without drift and the last segment ends at total."""
    t = timeline.transition_duration
    for prev, seg in zip(timeline.segments, timeline.segments[1:]):
        assert seg.start_offset == pytest.approx(prev.start_offset + prev.duration - t)
    assert timeline.end_time == pytest.approx(timeline.total_duration)
    total = sum(s.duration for s in timeline.segments) - timeline.transition_count * t
    assert total == pytest.approx(timeline.total_duration)


class TestComputeTimeline:
    """Test duration and offset math"""

    @pytest.mark.parametrize("count", [1, 2, 3, 4, 5, 6])
    def test_silent_stop_uses_seconds_per_image(self, count):
        timeline = compute_timeline(_images(count), seconds_per_image=5)

        assert timeline.image_count == count
        assert timeline.total_duration == pytest.approx(count * 5)
        assert timeline.has_audio is False
        _assert_chain_consistent(timeline)

    @pytest.mark.parametrize("count", [2, 3, 4, 5, 6])
    def test_offsets_accumulate_per_image(self, count):
        timeline = compute_timeline(_images(count), audio_duration=17.3)
        per_image = 17.3 / count if 17.3 / count < 5 else 5
        for i, segment in enumerate(timeline.segments):
            assert segment.start_offset == pytest.approx(i * per_image)

    def test_audio_sets_total_duration(self):
        timeline = compute_timeline(_images(3), audio_duration=12.0)

        assert timeline.total_duration == pytest.approx(12.0)
        assert timeline.has_audio is True
        assert timeline.transition_duration == pytest.approx(0.5)
        assert [s.start_offset for s in timeline.segments] == pytest.approx([0.0, 4.0, 8.0])
        assert [s.duration for s in timeline.segments] == pytest.approx([4.5, 4.5, 4.0])
        _assert_chain_consistent(timeline)

    def test_long_audio_extends_last_image(self):
        timeline = compute_timeline(_images(2), audio_duration=20.0, seconds_per_image=5)

        assert timeline.total_duration == pytest.approx(20.0)
        assert timeline.segments[1].start_offset == pytest.approx(5.0)
        assert timeline.segments[1].duration == pytest.approx(15.0)

    def test_max_duration_caps_audio(self):
        timeline = compute_timeline(_images(4), audio_duration=300.0, max_duration=60)

        assert timeline.total_duration == pytest.approx(60.0)
        _assert_chain_consistent(timeline)

    def test_max_duration_caps_silent(self):
        timeline = compute_timeline(_images(6), seconds_per_image=20, max_duration=60)

        assert timeline.total_duration == pytest.approx(60.0)
        assert timeline.segments[1].start_offset == pytest.approx(10.0)

    def test_short_audio_clamps_transition(self):
        timeline = compute_timeline(_images(4), audio_duration=2.0, transition_duration=0.5)

        # 0.5s per image leaves room for at most a 0.25s cross-fade
        assert timeline.transition_duration == pytest.approx(0.25)
        assert all(s.duration > 0 for s in timeline.segments)
        _assert_chain_consistent(timeline)

    def test_single_image_has_no_transition(self):
        timeline = compute_timeline(_images(1), audio_duration=7.5)

        assert timeline.transition_duration == 0.0
        assert timeline.transition_count == 0
        assert timeline.segments[0].duration == pytest.approx(7.5)

    def test_zero_audio_duration_treated_as_silent(self):
        timeline = compute_timeline(_images(2), audio_duration=0.0, seconds_per_image=4)

        assert timeline.has_audio is False
        assert timeline.total_duration == pytest.approx(8.0)

    def test_images_truncated_to_max(self):
        timeline = compute_timeline(_images(9), seconds_per_image=5)

        assert timeline.image_count == 6
        assert timeline.segments[-1].image_path == Path("/tmp/img_5.jpg")

    def test_custom_max_images(self):
        timeline = compute_timeline(_images(5), max_images=2)
        assert timeline.image_count == 2

    def test_no_images_raises(self):
        with pytest.raises(NoAssetsAvailable):
            compute_timeline([])

    @pytest.mark.parametrize("kwargs", [{"seconds_per_image": 0}, {"max_duration": -1}])
    def test_non_positive_durations_rejected(self, kwargs):
        with pytest.raises(ValueError):
            compute_timeline(_images(2), **kwargs)

    def test_zoom_alternates(self):
        timeline = compute_timeline(_images(4))
        directions = [s.zoom_direction for s in timeline.segments]
        assert directions == [ZoomDirection.IN, ZoomDirection.OUT, ZoomDirection.IN, ZoomDirection.OUT]


class TestTimelineModel:
    """Test derived Timeline properties"""

    def test_clip_durations_sum_to_total(self):
        timeline = compute_timeline(_images(5), audio_duration=21.7)
        clips = [timeline.clip_duration(i) for i in range(timeline.image_count)]

        assert sum(clips) == pytest.approx(timeline.total_duration)
        assert all(c > 0 for c in clips)

    def test_primary_image(self):
        timeline = compute_timeline(_images(3))
        assert timeline.primary_image() == Path("/tmp/img_0.jpg")

    def test_segment_end(self):
        timeline = compute_timeline(_images(2), seconds_per_image=5)
        assert timeline.segments[0].end == pytest.approx(5.5)

    def test_zoom_for_index(self):
        assert zoom_for_index(0) is ZoomDirection.IN
        assert zoom_for_index(1) is ZoomDirection.OUT

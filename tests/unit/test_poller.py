"""Unit tests for tour readiness polling"""

import pytest

from tour_video.poller import ReadinessPoller, ReadinessPolicy, UpstreamTimeout
from tour_video.providers.tour import TourSourceError
from tests.mocks import make_snapshot


class FakeClock:
    """Monotonic clock advanced only by the fake sleep"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _scripted(*outcomes):
    """fetch_snapshot replaying narration counts (or exceptions) in order, repeating the last."""
    queue = list(outcomes)

    async def fetch(share_code):
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return make_snapshot(narration_count=item, share_code=share_code)

    return fetch


def _poller(fetch, clock, policy=ReadinessPolicy.ALL):
    return ReadinessPoller(fetch, interval=8, policy=policy, sleep=clock.sleep, clock=clock)


class TestReadinessPolicy:

    @pytest.mark.parametrize("expected,required", [(1, 1), (3, 3), (5, 3), (8, 4), (11, 6)])
    def test_half(self, expected, required):
        assert ReadinessPolicy.HALF.required(expected) == required

    def test_all(self):
        assert ReadinessPolicy.ALL.required(7) == 7


class TestReadinessPoller:

    @pytest.mark.asyncio
    async def test_ready_after_three_polls(self):
        clock = FakeClock()
        poller = _poller(_scripted(1, 3, 5), clock)

        result = await poller.wait_for_ready("abc123", expected_count=5, max_wait=180)

        assert result.ready is True
        assert result.polls == 3
        assert clock.sleeps == [8, 8]
        assert result.snapshot.narration_count == 5
        assert result.error is None

    @pytest.mark.asyncio
    async def test_ready_immediately(self):
        clock = FakeClock()
        result = await _poller(_scripted(5), clock).wait_for_ready("abc123", 5)

        assert result.ready is True
        assert result.polls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_timeout_returns_last_snapshot(self):
        clock = FakeClock()
        poller = _poller(_scripted(0, 1, 2, 2), clock)

        result = await poller.wait_for_ready("abc123", expected_count=5, max_wait=20)

        assert result.ready is False
        assert result.polls == 4
        assert clock.sleeps == [8, 8, 4]
        assert result.snapshot.narration_count == 2
        assert isinstance(result.error, UpstreamTimeout)
        assert "2/5" in str(result.error)

    @pytest.mark.asyncio
    async def test_half_policy_stops_early(self):
        clock = FakeClock()
        poller = _poller(_scripted(1, 3), clock, policy=ReadinessPolicy.HALF)

        result = await poller.wait_for_ready("abc123", expected_count=5)

        assert result.ready is True
        assert result.polls == 2

    @pytest.mark.asyncio
    async def test_failed_polls_are_retried(self):
        clock = FakeClock()
        poller = _poller(_scripted(TourSourceError("HTTP 502"), 5), clock)

        result = await poller.wait_for_ready("abc123", expected_count=5)

        assert result.ready is True
        assert result.polls == 2

    @pytest.mark.asyncio
    async def test_all_failures_make_one_final_attempt(self):
        clock = FakeClock()
        poller = _poller(_scripted(TourSourceError("down")), clock)

        result = await poller.wait_for_ready("abc123", expected_count=5, max_wait=8)

        assert result.ready is False
        assert result.snapshot is None
        assert result.polls == 3
        assert "0/5" in str(result.error)

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        clock = FakeClock()
        poller = _poller(_scripted(RuntimeError("bug")), clock)

        with pytest.raises(RuntimeError):
            await poller.wait_for_ready("abc123", expected_count=5)

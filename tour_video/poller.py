"""
Readiness polling for asynchronously generated tours

The tour service has no webhook, so the poller re-reads the tour on a fixed
interval until enough narrations exist or the wait budget runs out. A
timeout is not an error for the caller: it gets the last snapshot that was
fetched and carries on with partial data.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from .providers.tour import TourSnapshot, TourSourceError

logger = logging.getLogger(__name__)


class UpstreamTimeout(Exception):
    """The tour did not reach the required narration count in time"""
    pass


class ReadinessPolicy(Enum):
    """How many narrations must exist before a tour counts as ready"""
    ALL = "all"
    HALF = "half"

    def required(self, expected: int) -> int:
        if self is ReadinessPolicy.HALF:
            return min(expected, max(3, math.ceil(expected / 2)))
        return expected


@dataclass
class ReadinessResult:
    """
    Outcome of a wait.

    Attributes:
        ready: Whether the required narration count was reached
        snapshot: Last snapshot fetched (None if no fetch ever succeeded)
        polls: Number of fetch attempts made
        error: UpstreamTimeout when the wait ran out, never raised
    """
    ready: bool
    snapshot: Optional[TourSnapshot] = None
    polls: int = 0
    error: Optional[UpstreamTimeout] = None


class ReadinessPoller:
    """
    Polls a snapshot function until a tour is ready.

    Args:
        fetch_snapshot: Coroutine function returning the current TourSnapshot
        interval: Seconds between polls
        policy: Threshold policy (ALL by default)
        sleep: Injectable sleep coroutine, for tests
        clock: Injectable monotonic clock, for tests
    """

    def __init__(
        self,
        fetch_snapshot: Callable[[str], Awaitable[TourSnapshot]],
        interval: float = 8.0,
        policy: ReadinessPolicy = ReadinessPolicy.ALL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetch_snapshot = fetch_snapshot
        self.interval = interval
        self.policy = policy
        self._sleep = sleep
        self._clock = clock

    async def _try_fetch(self, resource_id: str) -> Optional[TourSnapshot]:
        try:
            return await self.fetch_snapshot(resource_id)
        except (TourSourceError, ValueError) as e:
            logger.warning(f"Poll for {resource_id} failed: {e}")
            return None

    async def wait_for_ready(
        self,
        resource_id: str,
        expected_count: int,
        max_wait: float = 180.0,
    ) -> ReadinessResult:
        """
        Wait until `expected_count` narrations (per policy) exist.

        Args:
            resource_id: Tour share code
            expected_count: Narrations the caller wants
            max_wait: Wait budget in seconds

        Returns:
            ReadinessResult; on timeout ready=False with the last snapshot
        """
        required = self.policy.required(expected_count)
        deadline = self._clock() + max_wait
        last: Optional[TourSnapshot] = None
        polls = 0

        logger.info(
            f"Waiting for narrations on {resource_id} "
            f"(target {required}/{expected_count}, timeout {max_wait:.0f}s)"
        )

        while True:
            snapshot = await self._try_fetch(resource_id)
            polls += 1
            if snapshot is not None:
                last = snapshot
                logger.info(f"   {snapshot.narration_count}/{required} narrations")
                if snapshot.narration_count >= required:
                    return ReadinessResult(ready=True, snapshot=snapshot, polls=polls)

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(self.interval, remaining))

        if last is None:
            # One last chance before giving up with nothing
            last = await self._try_fetch(resource_id)
            polls += 1
            if last is not None and last.narration_count >= required:
                return ReadinessResult(ready=True, snapshot=last, polls=polls)

        count = last.narration_count if last else 0
        logger.warning(f"Timed out waiting for {resource_id}: {count}/{required} narrations")
        return ReadinessResult(
            ready=False,
            snapshot=last,
            polls=polls,
            error=UpstreamTimeout(
                f"{resource_id} had {count}/{required} narrations after {max_wait:.0f}s"
            ),
        )

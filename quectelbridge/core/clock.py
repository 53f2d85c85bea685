"""
Time source abstraction.

All waiting in the protocol engine goes through a Clock so that tests can
replace real time with a virtual one that advances instantly.
"""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class Clock:
    """Real monotonic clock backed by the running event loop."""

    def monotonic(self) -> float:
        """Current time in seconds."""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        """Suspend the current task for ``seconds``."""
        await asyncio.sleep(max(seconds, 0.0))


class VirtualClock(Clock):
    """
    Clock for testing.

    ``sleep`` advances virtual time immediately and only yields control to
    the event loop once, so long protocol timeouts cost nothing.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        seconds = max(seconds, 0.0)
        self.sleeps.append(seconds)
        self._now += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        """Move virtual time forward without yielding."""
        self._now += seconds

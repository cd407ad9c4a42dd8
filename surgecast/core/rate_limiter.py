"""
SurgeCast Rate Limiter

Sliding-window rate limiting for provider and reasoning-service calls
"""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque

from .logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter

    One limiter per external service. Every attempt, retries included,
    takes a slot.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        enabled: bool = True,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = enabled
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self.requests: Deque[float] = deque()

    def _expire(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self.requests and self.requests[0] <= cutoff:
            self.requests.popleft()

    def wait_time(self) -> float:
        """Seconds until another request fits; 0.0 when it fits now"""
        if not self.enabled:
            return 0.0

        now = self._clock()
        self._expire(now)
        if len(self.requests) < self.max_requests:
            return 0.0
        return max(0.0, self.requests[0] + self.window_seconds - now)

    async def acquire(self) -> None:
        """Wait for room in the window, then take a slot"""
        if not self.enabled:
            return

        # Re-check after every sleep; concurrent waiters share one window
        wait = self.wait_time()
        while wait > 0:
            logger.warning(
                f"Rate limit '{self.name}' reached ({len(self.requests)}/{self.max_requests}), "
                f"waiting {wait:.2f}s"
            )
            await self._sleep(wait)
            wait = self.wait_time()

        self.requests.append(self._clock())
        used = len(self.requests)
        if used >= self.max_requests * 0.8:
            logger.debug(f"Rate limit '{self.name}': {used}/{self.max_requests} requests used")

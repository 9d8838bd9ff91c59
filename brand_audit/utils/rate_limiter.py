"""Async sliding-window rate limiter for outbound API calls."""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window limiter capping calls per rolling minute.

    Usage::

        limiter = RateLimiter(requests_per_minute=30, name="openai")

        async with limiter:
            await make_request()
    """

    def __init__(self, requests_per_minute: int = 60, name: str = "default"):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be >= 1")
        self._rpm = requests_per_minute
        self._name = name
        self._window: list[float] = []
        self._lock = asyncio.Lock()

    def _wait_time(self, now: float) -> float:
        """Seconds until the oldest call in the window expires (0 when free)."""
        self._window = [t for t in self._window if now - t < 60.0]
        if len(self._window) < self._rpm:
            return 0.0
        return 60.0 - (now - self._window[0])

    async def acquire(self) -> None:
        """Wait until a request slot is available."""
        async with self._lock:
            while True:
                wait = self._wait_time(time.monotonic())
                if wait <= 0:
                    break
                logger.debug("RateLimiter(%s) sleeping %.2fs", self._name, wait)
                await asyncio.sleep(wait)
            self._window.append(time.monotonic())

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *args):
        pass

    @property
    def requests_in_last_minute(self) -> int:
        """Number of calls made in the last 60 seconds."""
        self._wait_time(time.monotonic())
        return len(self._window)

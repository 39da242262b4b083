import asyncio
import time
from typing import Any, Awaitable, Callable


class RateLimiter:
    """Enforces a minimum interval between calls to one provider."""

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self):
        async with self._lock:
            if self._last_call is not None and self.min_interval > 0:
                wait = self._last_call + self.min_interval - self._clock()
                if wait > 0:
                    await self._sleep(wait)
            self._last_call = self._clock()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

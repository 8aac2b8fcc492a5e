"""
Process-wide request gate for MusicBrainz.

MusicBrainz allows one request per second per client and answers
anything faster with 503s (and, if it persists, an IP block). One
RateLimiter is created per run and handed to every component that talks
to MusicBrainz; all of them serialize through its acquire().

Usage:
    limiter = RateLimiter(interval=1.0)

    await limiter.acquire()
    # or
    async with limiter:
        response = await session.get(...)
"""

from asyncio_throttle import Throttler


class RateLimiter:
    """
    At most one acquisition per `interval` seconds.

    Backed by asyncio-throttle's sliding-window Throttler with a window
    of one slot. An interval of 0 disables throttling (used in tests).
    """

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval
        self._throttler = Throttler(rate_limit=1, period=interval) if interval > 0 else None

    async def acquire(self) -> None:
        """Suspend until the next request slot is available, then take it."""
        if self._throttler is not None:
            await self._throttler.acquire()

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

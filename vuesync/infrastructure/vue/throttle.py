"""Request pacing for the Vue API."""
import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx

from vuesync.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket with a burst of one.

    Callers are admitted at most ``rate`` times per second; a caller arriving
    early waits (cooperatively) for its slot instead of failing. The clock and
    sleep functions are injectable so tests can run without real time passing.
    """

    def __init__(
        self,
        rate: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        self.rate = rate
        self._interval = 1.0 / rate
        self._clock = clock
        self._sleep = sleep
        self._next_slot: Optional[float] = None

    async def wait(self, deadline: Optional[float] = None) -> None:
        """Block until the caller may proceed.

        Args:
            deadline: Optional ``clock()`` value by which the caller must be
                admitted. If the next free slot is later, RateLimitError is
                raised straight away and the slot is left for someone else.
        """
        now = self._clock()
        slot = now if self._next_slot is None else max(now, self._next_slot)
        if deadline is not None and slot > deadline:
            raise RateLimitError(
                f"rate limit wait of {slot - now:.3f}s would exceed the deadline"
            )

        previous = self._next_slot
        self._next_slot = slot + self._interval
        delay = slot - now
        if delay <= 0:
            return

        logger.debug(f"Rate limited, waiting {delay:.3f}s")
        try:
            await self._sleep(delay)
        except asyncio.CancelledError:
            # Give the slot back unless a later caller already queued behind it.
            if self._next_slot == slot + self._interval:
                self._next_slot = previous
            raise


class ThrottledTransport(httpx.AsyncBaseTransport):
    """Transport that waits on a RateLimiter before every request.

    A ``deadline`` request extension (a ``limiter`` clock value) is passed on to
    :meth:`RateLimiter.wait`.
    """

    def __init__(self, limiter: RateLimiter, base: Optional[httpx.AsyncBaseTransport] = None):
        self.limiter = limiter
        self.base = base or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self.limiter.wait(deadline=request.extensions.get("deadline"))
        return await self.base.handle_async_request(request)

    async def aclose(self) -> None:
        await self.base.aclose()

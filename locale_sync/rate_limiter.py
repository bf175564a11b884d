"""Global throughput ceiling for calls to the translation API."""
import asyncio
import logging

from aiolimiter import AsyncLimiter

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Enforce a minimum interval of ``1 / rate_limit`` seconds between granted calls.

    The underlying ``AsyncLimiter`` holds a single slot per interval, so callers
    that arrive too early are suspended for the remainder of the interval and
    concurrent callers are granted one at a time.
    """

    def __init__(self, rate_limit: float):
        if rate_limit <= 0:
            raise ValueError("rate_limit must be a positive number of calls per second")
        self.rate_limit = rate_limit
        self.min_interval = 1.0 / rate_limit
        self._limiter = AsyncLimiter(max_rate=1, time_period=self.min_interval)
        self.last_call = 0.0

    async def acquire(self) -> None:
        await self._limiter.acquire()
        # Time of granting, not of the request.
        self.last_call = asyncio.get_running_loop().time()
        logger.debug("Rate limiter granted a call at %.3f", self.last_call)

    async def __aenter__(self) -> None:
        await self.acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

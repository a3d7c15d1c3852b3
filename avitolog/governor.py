"""
Process-wide request pacing and 429 retry policy.

Every page the crawler loads goes through one FetchGovernor, so category
discovery, result pages and detail pages share the same spacing between
requests no matter how many coroutines are crawling at once.
"""
import asyncio
import logging
import random
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from .config import FetchSettings
from .errors import FetchError, RateLimitExceeded


logger = logging.getLogger(__name__)

RATE_LIMIT_STATUS = 429


class FetchGovernor:
    """Enforces the minimum interval between requests and retries on HTTP 429."""

    def __init__(
        self,
        min_interval: float = 3.0,
        max_retries: int = 3,
        base_delay: float = 5.0,
        jitter: float = 0.0,
        user_agent: str = "",
        user_agent_pool: Optional[Sequence[str]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = max(0.0, float(min_interval))
        self.max_retries = max(0, int(max_retries))
        self.base_delay = max(0.0, float(base_delay))
        self.jitter = max(0.0, float(jitter))
        self.user_agent = user_agent
        self.user_agent_pool: List[str] = list(user_agent_pool or [user_agent])
        self._clock = clock
        self._last_request: Optional[float] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: FetchSettings) -> "FetchGovernor":
        return cls(
            min_interval=settings.min_interval,
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
            jitter=settings.jitter,
            user_agent=settings.user_agent,
            user_agent_pool=settings.user_agent_pool,
        )

    async def acquire(self) -> None:
        """Wait for the next free request slot and claim it."""
        async with self._lock:
            if self._last_request is not None:
                wait = self._last_request + self.min_interval - self._clock()
                if wait > 0:
                    if self.jitter:
                        wait += random.uniform(0, self.jitter)
                    logger.debug(f"Rate limiting: waiting {wait:.2f}s before next request")
                    await asyncio.sleep(wait)
            self._last_request = self._clock()

    def rotated_user_agent(self, attempt: int) -> str:
        return self.user_agent_pool[attempt % len(self.user_agent_pool)]

    async def perform_with_retry(
        self,
        url: str,
        send: Callable[[str], Awaitable],
        discard: Optional[Callable[[object], Awaitable]] = None,
    ):
        """
        Issue one governed request.

        ``send`` is called with the user agent to use and must return a
        response object exposing ``status``. A 429 answer is retried up to
        ``max_retries`` times with a linearly growing pause and a rotated
        user agent; any other non-2xx status fails immediately. Responses
        that are not returned to the caller are handed to ``discard``.
        """
        await self.acquire()
        response = await send(self.user_agent)

        attempt = 0
        while response.status == RATE_LIMIT_STATUS:
            if discard is not None:
                await discard(response)
            if attempt >= self.max_retries:
                raise RateLimitExceeded(url, attempt + 1)
            attempt += 1
            delay = self.base_delay * attempt
            user_agent = self.rotated_user_agent(attempt)
            logger.warning(f"Rate limited on {url}, retry {attempt} of {self.max_retries} in {delay:.1f}s")
            await asyncio.sleep(delay)
            await self.acquire()
            response = await send(user_agent)

        if not 200 <= response.status < 300:
            if discard is not None:
                await discard(response)
            raise FetchError(url, f"HTTP {response.status}")
        return response


_default_governor: Optional[FetchGovernor] = None
_default_settings: Optional[FetchSettings] = None


def get_governor(settings: Optional[FetchSettings] = None) -> FetchGovernor:
    """Return the process-wide governor; settings only apply when it is first created."""
    global _default_governor, _default_settings
    if _default_governor is None:
        _default_settings = settings or FetchSettings()
        _default_governor = FetchGovernor.from_settings(_default_settings)
    elif settings is not None and settings != _default_settings:
        logger.warning(
            "Shared fetch governor already exists, new settings are ignored "
            "(pass a FetchGovernor to use different pacing)"
        )
    return _default_governor

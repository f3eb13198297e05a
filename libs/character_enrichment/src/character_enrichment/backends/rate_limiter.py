"""AI backend request rate limiting.

A process-wide limiter is acquired before every backend request so that the
comprehensive and detailed tiers share a single request quota.
"""

import asyncio
import time
from collections import deque
from functools import lru_cache

from ..config import get_ai_backend_config


class AsyncRateLimiter:
    """Asynchronous rate limiter for backend requests.

    This limiter throttles request *start times* to respect:
    - A minimum interval between requests (e.g., 0.5s).
    - A maximum number of requests per rolling 60-second window.

    Args:
        min_interval_seconds: Minimum spacing between request starts.
        max_per_minute: Maximum request starts allowed in the last 60 seconds.
    """

    def __init__(
        self, *, min_interval_seconds: float = 0.5, max_per_minute: int = 30
    ) -> None:
        self._min_interval = float(min_interval_seconds)
        self._max_per_minute = int(max_per_minute)
        self._lock = asyncio.Lock()
        self._last: float | None = None
        self._recent: deque[float] = deque()

    def _evict(self, now: float) -> None:
        cutoff = now - 60.0
        while self._recent and self._recent[0] <= cutoff:
            self._recent.popleft()

    async def acquire(self) -> None:
        """Wait until a new request can be started under the configured limits."""
        async with self._lock:
            now = time.time()
            self._evict(now)

            if self._max_per_minute > 0 and len(self._recent) >= self._max_per_minute:
                sleep_for = max(0.0, (self._recent[0] + 60.0) - now)
                if sleep_for > 0:
                    await asyncio.sleep(sleep_for)
                    now = time.time()
                    self._evict(now)

            if self._last is not None and self._min_interval > 0:
                sleep_for = (self._last + self._min_interval) - now
                if sleep_for > 0:
                    await asyncio.sleep(sleep_for)
                    now = time.time()

            self._last = now
            self._recent.append(now)


@lru_cache(maxsize=1)
def get_shared_rate_limiter() -> AsyncRateLimiter:
    """Return the process-wide limiter configured from AI_BACKEND_* settings."""
    config = get_ai_backend_config()
    return AsyncRateLimiter(
        min_interval_seconds=config.min_interval_seconds,
        max_per_minute=config.max_per_minute,
    )

"""
Asynchronous per-host rate limiting for the policy fetcher.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional

from loguru import logger

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]

# hosts idle for longer than this are forgotten
STALE_AFTER = 300.0


class RateLimiter:
    """
    Enforces a minimum interval between consecutive requests to the same key (hostname).

    Each key has its own lock, so requests to different hosts never contend while
    concurrent requests to one host are serialized and spaced out.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        *,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
        stale_after: float = STALE_AFTER,
    ) -> None:
        self.min_interval = max(0.0, min_interval)
        self.stale_after = stale_after
        self._clock: Clock = clock or time.monotonic
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._next_allowed: Dict[str, float] = {}

    async def throttle(self, key: str, min_interval: Optional[float] = None) -> None:
        """
        Wait until `key` may be requested again, then reserve the next slot.
        """
        interval = self.min_interval if min_interval is None else max(0.0, min_interval)

        lock = self._locks[key]
        async with lock:
            now = self._clock()
            ready_at = self._next_allowed.get(key, now)
            if ready_at > now:
                wait_for = ready_at - now
                logger.debug(f"Rate limiting {key}: waiting {wait_for:.2f}s")
                await self._sleep(wait_for)
            self._next_allowed[key] = self._clock() + interval
        self._prune(keep=key)

    async def defer(self, key: str, seconds: float) -> None:
        """Push the next allowed request for `key` at least `seconds` into the future."""
        lock = self._locks[key]
        async with lock:
            candidate = self._clock() + max(0.0, seconds)
            if candidate > self._next_allowed.get(key, 0.0):
                self._next_allowed[key] = candidate

    @property
    def tracked_keys(self) -> List[str]:
        return list(self._next_allowed)

    def _prune(self, keep: str) -> None:
        cutoff = self._clock() - self.stale_after
        for key, ready_at in list(self._next_allowed.items()):
            if key == keep or ready_at >= cutoff:
                continue
            lock = self._locks.get(key)
            if lock is not None and lock.locked():
                continue
            del self._next_allowed[key]
            self._locks.pop(key, None)

"""
Rate Limiter for ChatGPT Module
===============================

Caps the number of concurrent upstream requests and spaces out dispatches.

All methods assume a single asyncio event loop: counters are only touched
between awaits, so no lock is needed.
"""

import time
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Any

logger = logging.getLogger(__name__)

MAX_CONCURRENT_REQUESTS = 3


class RateLimiter:
    """
    Admission slots plus a minimum spacing between dispatches.

    Usage::

        if not limiter.try_acquire():
            ...  # reject
        async with limiter.slot():
            await limiter.wait_cooldown()
            ...
    """

    def __init__(
        self,
        max_concurrent: int = MAX_CONCURRENT_REQUESTS,
        cooldown: float = 0.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            max_concurrent: Number of admission slots
            cooldown: Minimum seconds between two dispatches
            clock: Monotonic time source
        """
        self.max_concurrent = max_concurrent
        self.cooldown = cooldown
        self._clock = clock

        self.in_flight = 0
        self.last_dispatch = float("-inf")

        self._stats = {
            "total_admitted": 0,
            "total_blocked": 0,
        }

    @property
    def is_full(self) -> bool:
        return self.in_flight >= self.max_concurrent

    def try_acquire(self) -> bool:
        """Take a slot if one is free. Never suspends."""
        if self.is_full:
            self._stats["total_blocked"] += 1
            logger.info(f"⛔ All {self.max_concurrent} slots busy, request rejected")
            return False

        self.in_flight += 1
        self._stats["total_admitted"] += 1
        return True

    def release(self) -> None:
        if self.in_flight == 0:
            logger.warning("release() called with no slot held")
            return
        self.in_flight -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Release a slot taken with :meth:`try_acquire` on every exit path."""
        try:
            yield
        finally:
            self.release()

    def remaining_cooldown(self) -> float:
        """Seconds left before the next dispatch may start."""
        elapsed = self._clock() - self.last_dispatch
        return max(0.0, self.cooldown - elapsed)

    async def wait_cooldown(self) -> None:
        """
        Wait out the remaining spacing, then stamp the dispatch time.

        Handlers that pass this point concurrently may end up closer together
        than ``cooldown``.
        """
        remaining = self.remaining_cooldown()
        if remaining > 0:
            logger.debug(f"⏳ Cooling down for {remaining:.2f}s")
            await asyncio.sleep(remaining)
        self.last_dispatch = self._clock()

    def get_global_stats(self) -> Dict[str, Any]:
        return {
            "in_flight": self.in_flight,
            "max_concurrent": self.max_concurrent,
            "cooldown": self.cooldown,
            **self._stats,
        }

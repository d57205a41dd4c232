"""
Request pacing for one distribution source.
"""

import asyncio
import logging
import time
from typing import Optional

log = logging.getLogger(__name__)


class AdaptiveRateLimiter:
    """
    Hands out request slots at an even pace.

    Each ``acquire`` reserves the next free slot and sleeps until it, outside
    the lock, so concurrent fetches queue up in arrival order. A 429 answer
    halves the pace; once ``RECOVERY_DELAY`` seconds pass without another
    one, every slot handed out raises it a little until it is back at the
    ceiling.
    """

    MIN_RATE = 0.5
    RECOVERY_DELAY = 120.0
    RECOVERY_STEP = 1.05

    def __init__(self, rate: float = 4.0, ceiling: float = 8.0):
        self._rate = rate
        self._ceiling = max(ceiling, rate)
        self._next_slot = 0.0
        self._throttled_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        """Current requests per second."""
        return self._rate

    @property
    def throttled(self) -> bool:
        return self._throttled_at is not None

    async def on_429(self) -> None:
        async with self._lock:
            self._rate = max(self.MIN_RATE, self._rate / 2)
            self._throttled_at = time.monotonic()
            self._next_slot = max(self._next_slot, self._throttled_at + 1.0 / self._rate)
        log.warning(
            f"[yellow]Source answered 429; slowing down to {self._rate:.1f} requests/s"
            "[/yellow]"
        )

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            self._recover(now)
            slot = max(now, self._next_slot)
            self._next_slot = slot + 1.0 / self._rate
        if slot > now:
            await asyncio.sleep(slot - now)

    def _recover(self, now: float) -> None:
        if self._throttled_at is None or now - self._throttled_at < self.RECOVERY_DELAY:
            return
        self._rate = min(self._ceiling, self._rate * self.RECOVERY_STEP)
        if self._rate >= self._ceiling:
            self._throttled_at = None
            log.debug(f"Request rate recovered to {self._rate:.1f}/s")

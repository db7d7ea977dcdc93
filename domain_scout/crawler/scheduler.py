# domain_scout/crawler/scheduler.py
"""
Crawl scheduler: one shared minimum-interval gate for every outgoing request.
"""
from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from domain_scout.logger import get_logger

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class CrawlScheduler:
    """Spaces request starts at least ``interval`` seconds apart.

    The interval is the robots crawl-delay once one was applied, else the
    configured default. When ``volume_source()`` exceeds
    ``high_volume_threshold`` the conservative delay takes over.
    """

    def __init__(
        self,
        default_delay_ms: int,
        *,
        conservative_delay_ms: int = 1000,
        high_volume_threshold: int = 200,
        volume_source: Optional[Callable[[], int]] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.default_delay_ms = default_delay_ms
        self.conservative_delay_ms = conservative_delay_ms
        self.high_volume_threshold = high_volume_threshold
        self.volume_source = volume_source
        self.clock = clock
        self.sleep = sleep
        self._crawl_delay_ms: Optional[int] = None
        self._lock = asyncio.Lock()
        self._last_request_ts: Optional[float] = None
        self.slots_granted = 0
        self.logger = get_logger("scheduler")

    def apply_crawl_delay(self, crawl_delay_ms: Optional[int]) -> None:
        """Use the robots crawl-delay as the base interval (None keeps the default)."""
        if crawl_delay_ms is not None and crawl_delay_ms >= 0:
            self._crawl_delay_ms = crawl_delay_ms
            self.logger.info("Using robots.txt crawl-delay of %d ms", crawl_delay_ms)

    @property
    def under_load(self) -> bool:
        if self.volume_source is None:
            return False
        return self.volume_source() > self.high_volume_threshold

    @property
    def interval(self) -> float:
        """Current minimum spacing between requests, in seconds."""
        base = self._crawl_delay_ms if self._crawl_delay_ms is not None else self.default_delay_ms
        if self.under_load:
            base = max(base, self.conservative_delay_ms)
        return base / 1000.0

    async def await_slot(self) -> None:
        """Wait until the next request may start."""
        async with self._lock:
            interval = self.interval
            if self._last_request_ts is not None and interval > 0:
                wait = interval - (self.clock() - self._last_request_ts)
                if wait > 0:
                    await self.sleep(wait)
            self._last_request_ts = self.clock()
            self.slots_granted += 1

    async def backoff(self, seconds: float) -> None:
        """Sleep without holding the gate."""
        await self.sleep(seconds)


__all__ = ["CrawlScheduler", "Clock", "Sleep"]

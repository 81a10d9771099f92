"""Background removal of expired replay records.

This module provides the CacheSweeper class that periodically purges expired
token records from a replay cache for the whole process lifetime.
"""

from __future__ import annotations

import asyncio
import logging

from altcha_guard.services.replay import ReplayCache

MIN_INTERVAL_SECONDS = 0.1

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Runs `ReplayCache.sweep` on a fixed interval in an asyncio task.

    Sweeps are synchronous and short; request handlers never wait on the
    loop itself. `run_once` lets callers trigger a single sweep directly.
    """

    def __init__(self, cache: ReplayCache, interval_seconds: float) -> None:
        self.cache = cache
        self.interval_seconds = max(MIN_INTERVAL_SECONDS, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self.running:
            return
        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("Replay cache sweeper started (every %.1fs)", self.interval_seconds)

    async def stop(self) -> None:
        """Stop the background sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None
        logger.info("Replay cache sweeper stopped")

    def run_once(self) -> int:
        """Sweep the cache once and return the number of removed records."""
        removed = self.cache.sweep()
        logger.debug("Swept %d expired replay records, %d remain", removed, len(self.cache))
        return removed

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
            else:
                return

            try:
                self.run_once()
            except Exception:
                logger.exception("Replay cache sweep failed")

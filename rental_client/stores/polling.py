"""
Polling scheduler that keeps the open thread close to live.

There is no push channel, so while a thread view is open the scheduler
calls ``refresh`` every ``interval`` seconds. Ticks are fire-and-forget
like a browser interval, so a slow refresh may overlap the next one; the
thread store's merge makes that harmless.

Stopping is synchronous and total. The interval task and every in-flight
tick are cancelled, and the generation counter is bumped so a refresh
whose response lands after ``stop()`` is told not to apply it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from rental_client.core.config import settings
from rental_client.core.errors import ApiError

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[Callable[[], bool]], Awaitable[Any]]


class PollingScheduler:
    def __init__(self, refresh: RefreshCallback, *, interval: float | None = None) -> None:
        self._refresh = refresh
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self._generation = 0
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def generation(self) -> int:
        return self._generation

    def start(self) -> None:
        # At most one timer: a new thread always replaces the old poller
        self.stop()
        generation = self._generation
        self._timer = asyncio.get_running_loop().create_task(self._run(generation))
        logger.info("Polling started every %.1fs", self.interval)

    def stop(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("Polling stopped")
        for task in self._inflight:
            task.cancel()
        self._inflight.clear()

    def is_live(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(self, generation: int) -> None:
        loop = asyncio.get_running_loop()
        while self.is_live(generation):
            await asyncio.sleep(self.interval)
            if not self.is_live(generation):
                return
            task = loop.create_task(self._tick(generation))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _tick(self, generation: int) -> None:
        try:
            await self._refresh(lambda: self.is_live(generation))
        except ApiError as exc:
            # Background refreshes stay quiet; the next tick retries
            logger.warning("Background refresh failed: %s", exc)

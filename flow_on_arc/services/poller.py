"""Fixed-interval background refresh."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicRefresher:
    """Run ``callback`` every ``interval`` seconds until stopped.

    ``refresh_now`` runs the callback immediately and leaves the timer alone.
    Runs never overlap.
    """

    def __init__(
        self, name: str, interval: float, callback: Callable[[], Awaitable[Any]]
    ) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run_once(self) -> None:
        async with self._lock:
            try:
                await self._callback()
            except Exception as e:
                logger.error("%s refresh failed: %s", self.name, e)
            finally:
                self.runs += 1

    async def _loop(self) -> None:
        logger.info("Starting %s refresh (every %s seconds)", self.name, self.interval)
        while True:
            await self._run_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"refresh-{self.name}")

    async def refresh_now(self) -> None:
        await self._run_once()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

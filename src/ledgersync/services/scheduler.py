"""
Owned, cancellable periodic background tasks.
"""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Run `callback` every `interval` seconds on the running event loop.

    ## Parameters
    - `name`: Task name used in logs
    - `interval`: Seconds between the end of one sleep and the next call
    - `callback`: Zero-argument coroutine function

    ## Design Notes
    A failing tick is logged and the loop carries on; only :meth:`stop`
    ends it. Starting an already running task is a no-op, so callers can
    start defensively without creating duplicate timers.
    """

    def __init__(
        self, name: str, interval: float, callback: Callable[[], Awaitable[None]]
    ) -> None:
        if interval <= 0:
            raise ValueError(f"{name}: interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: asyncio.Task | None = None
        self.ticks = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start the loop; returns `False` if it was already running."""
        if self.running:
            return False
        # Raises RuntimeError before the coroutine is created when no loop runs
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=self.name)
        logger.debug(f"Periodic task {self.name} started ({self.interval}s)")
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Periodic task {self.name} stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            try:
                await self._callback()
            except Exception as e:
                self.failures += 1
                logger.error(f"Error in periodic task {self.name}: {e}", exc_info=True)

"""
Request coalescing on top of :class:`CacheStore`.

At most one fetch per key is in flight at a time. Every caller that asks for
the key while the fetch runs awaits the same task and observes the same
value or the same exception. Callers are shielded from each other: a caller
that gives up (its own task is cancelled) never cancels the shared fetch,
which still populates the cache when it completes.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

from ledgersync.cache.store import CacheStore

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


class RequestCoalescer:
    def __init__(self, store: CacheStore) -> None:
        self.store = store
        self._in_flight: Dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        task = self._in_flight.get(key)
        return task is not None and not task.done()

    async def fetch_or_get(
        self,
        key: str,
        fetcher: Fetcher,
        ttl: float | None = None,
        dedupe: bool = True,
        skip_cache: bool = False,
    ) -> Any:
        """
        Return the cached payload for `key` or fetch it.

        ## Parameters
        - `key`: Cache key
        - `fetcher`: Zero-argument coroutine function producing the payload
        - `ttl`: TTL of the entry written on success
        - `dedupe`: Share an in-flight fetch for the same key
        - `skip_cache`: Ignore a fresh entry and go to the network

        ## Raises
        - Whatever `fetcher` raises; nothing is written to the cache then
        """
        if not skip_cache:
            cached = self.store.fresh_entry(key)
            if cached is not None:
                return cached.payload

        if dedupe:
            task = self._in_flight.get(key)
            if task is None or task.done():
                task = self._spawn(key, fetcher, ttl)
                self._in_flight[key] = task
        else:
            task = self._spawn(key, fetcher, ttl)

        return await asyncio.shield(task)

    def _spawn(self, key: str, fetcher: Fetcher, ttl: float | None) -> asyncio.Task:
        sequence = self.store.next_sequence()
        task = asyncio.create_task(
            self._run(key, fetcher, ttl, sequence), name=f"fetch:{key}"
        )
        task.add_done_callback(self._on_done)
        return task

    async def _run(
        self, key: str, fetcher: Fetcher, ttl: float | None, sequence: int
    ) -> Any:
        try:
            payload = await fetcher()
        finally:
            # Slot is cleared on success and failure alike so a failed key
            # can be retried by the next caller.
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]
        self.store.set(key, payload, ttl=ttl, sequence=sequence)
        return payload

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        # Mark the exception as retrieved when every caller already gave up.
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"{task.get_name()} failed: {task.exception()!r}")

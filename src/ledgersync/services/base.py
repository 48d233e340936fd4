"""
Shared polling pattern of the domain services.

A domain service owns the last-known snapshot of one category of ledger
data, a rate-limited :meth:`DomainService.refresh` and the background
task that calls it. Snapshots are published on the :class:`DataBus`.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ledgersync.bus import DataBus
from ledgersync.cache import CacheStore, FetchClient
from ledgersync.models import DomainSnapshot, DomainType
from ledgersync.services.scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class DomainService(ABC):
    """
    ## Parameters
    - `bus`: Where snapshots are published
    - `account`: Ledger account whose data this service follows
    - `cache`: Cache owned by this service; a private one is created when omitted
    - `fetch_interval`: Poll period and minimum spacing of network fetches (seconds)
    - `clock`: Monotonic time source used for rate limiting and `fetched_at`

    Subclasses set `domain` and implement :meth:`_load`.
    """

    domain: DomainType

    def __init__(
        self,
        bus: DataBus,
        account: str,
        fetch_interval: float,
        cache: CacheStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.bus = bus
        self.account = account
        self.fetch_interval = fetch_interval
        self.clock = clock
        self.client = FetchClient(
            cache if cache is not None else CacheStore(fetch_interval, clock=clock),
            default_ttl=fetch_interval,
        )
        self._snapshot: DomainSnapshot | None = None
        self._last_fetch_time: float | None = None
        self._tasks: List[PeriodicTask] = [
            PeriodicTask(f"{self.domain.value}:poll", fetch_interval, self.refresh)
        ]

    @property
    def cache_key(self) -> str:
        return f"{self.domain.value}:{self.account}"

    @property
    def snapshot(self) -> DomainSnapshot | None:
        return self._snapshot

    @property
    def last_fetch_time(self) -> float | None:
        return self._last_fetch_time

    @property
    def running(self) -> bool:
        return any(task.running for task in self._tasks)

    def start(self) -> None:
        for task in self._tasks:
            task.start()

    async def stop(self) -> None:
        for task in self._tasks:
            await task.stop()

    @abstractmethod
    async def _load(self) -> Sequence[Any]:
        """Fetch the domain items from the ledger."""

    def _rate_limited(self, now: float) -> bool:
        if self._last_fetch_time is None:
            return False
        return now - self._last_fetch_time < self.fetch_interval

    async def refresh(self, force: bool = False) -> DomainSnapshot | None:
        """
        Fetch and publish a new snapshot, or republish the current one.

        ## Parameters
        - `force`: Ignore the rate limit

        ## Returns
        - The snapshot that was published (None if nothing is known yet)

        ## Rate Limiting
        Within `fetch_interval` of the last successful fetch the network is
        not touched; the last-known snapshot is republished instead so that
        consumers always get a value on every tick.

        ## Raises
        - Whatever the underlying fetch raises. The last-known snapshot stays
          current in that case.
        """
        now = self.clock()
        if not force and self._rate_limited(now):
            if self._snapshot is not None:
                self.bus.publish(self.domain, self._snapshot)
            return self._snapshot

        # The rate limit above is the freshness policy here; the cache only
        # coalesces concurrent refreshes and keeps the last payload readable.
        items = await self.client.fetch(
            self.cache_key, self._load, ttl=self.fetch_interval, skip_cache=True
        )
        self._last_fetch_time = self.clock()
        snapshot = self._build_snapshot(items)
        self._replace(snapshot)
        logger.info(
            f"{self.domain.value} refreshed for {self.account}: {len(snapshot.items)} items"
        )
        return snapshot

    def _build_snapshot(self, items: Sequence[Any]) -> DomainSnapshot:
        return DomainSnapshot(
            domain=self.domain, items=tuple(items), fetched_at=self.clock()
        )

    def _replace(self, snapshot: DomainSnapshot) -> None:
        self._snapshot = snapshot
        self.bus.publish(self.domain, snapshot)

    def describe(self) -> Dict[str, Any]:
        return {
            "domain": self.domain.value,
            "account": self.account,
            "items": len(self._snapshot.items) if self._snapshot else 0,
            "last_fetch_time": self._last_fetch_time,
            "running": self.running,
        }


def sort_newest_first(items: Sequence[Any], attr: str) -> Tuple[Any, ...]:
    return tuple(sorted(items, key=lambda item: getattr(item, attr), reverse=True))

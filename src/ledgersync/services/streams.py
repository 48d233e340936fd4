"""
Payment stream polling with local vesting interpolation.

Besides the network poll, the service runs a faster local task that
recomputes the streamed amount of every active stream from wall-clock time
and republishes without touching the network. Interpolation always starts
from the last authoritative fetch, so the next fetch simply replaces it.
"""

import logging
import time
from typing import Awaitable, Callable, Sequence, Tuple

from ledgersync.config import STREAMS_FETCH_INTERVAL, STREAMS_UI_UPDATE_INTERVAL
from ledgersync.models import DomainSnapshot, DomainType, Stream, StreamStatus
from ledgersync.services.base import DomainService
from ledgersync.services.scheduler import PeriodicTask
from ledgersync.services.vesting import interpolate_stream

logger = logging.getLogger(__name__)

StreamsFetcher = Callable[[str], Awaitable[Sequence[Stream]]]


class StreamsService(DomainService):
    """
    ## Parameters
    - `fetch_streams`: Ledger read returning the account's streams
    - `ui_update_interval`: Period of the local interpolation task (seconds)
    - `wall_clock`: Unix time source; stream start/end are unix seconds
    """

    domain = DomainType.STREAMS

    def __init__(
        self,
        bus,
        account: str,
        fetch_streams: StreamsFetcher,
        fetch_interval: float = STREAMS_FETCH_INTERVAL,
        ui_update_interval: float = STREAMS_UI_UPDATE_INTERVAL,
        wall_clock: Callable[[], float] = time.time,
        **kwargs,
    ) -> None:
        super().__init__(bus, account, fetch_interval, **kwargs)
        self._fetch_streams = fetch_streams
        self.wall_clock = wall_clock
        self._authoritative: Tuple[Stream, ...] = ()
        self._tasks.append(
            PeriodicTask(
                f"{self.domain.value}:interpolate",
                ui_update_interval,
                self._interpolation_tick,
            )
        )

    async def _load(self) -> Sequence[Stream]:
        return tuple(await self._fetch_streams(self.account))

    def _build_snapshot(self, items: Sequence[Stream]) -> DomainSnapshot:
        self._authoritative = tuple(items)
        return DomainSnapshot(
            domain=self.domain,
            items=self._interpolate(self._authoritative),
            fetched_at=self.clock(),
        )

    def _interpolate(self, streams: Sequence[Stream]) -> Tuple[Stream, ...]:
        now = self.wall_clock()
        return tuple(interpolate_stream(stream, now) for stream in streams)

    def update_streamed_amounts(self) -> DomainSnapshot | None:
        """
        Recompute streamed amounts of active streams and republish.

        ## Returns
        - The new snapshot, or None when no streams are known yet
        """
        if not self._authoritative or self.snapshot is None:
            return None
        snapshot = self.snapshot.model_copy(
            update={"items": self._interpolate(self._authoritative)}
        )
        self._replace(snapshot)
        logger.debug(f"Interpolated {len(self.active_streams())} active stream(s)")
        return snapshot

    async def _interpolation_tick(self) -> None:
        self.update_streamed_amounts()

    def active_streams(self) -> Tuple[Stream, ...]:
        if self.snapshot is None:
            return ()
        return tuple(s for s in self.snapshot.items if s.status is StreamStatus.ACTIVE)

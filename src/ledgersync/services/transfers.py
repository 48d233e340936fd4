"""
Transfer record polling.

The ledger returns sent and received transfers separately; the service
publishes them as one sequence, newest first, each tagged with its
direction.
"""

import logging
from typing import Awaitable, Callable, Sequence, Tuple

from ledgersync.config import TRANSFERS_FETCH_INTERVAL
from ledgersync.models import DomainType, Transfer, TransferDirection
from ledgersync.services.base import DomainService, sort_newest_first

logger = logging.getLogger(__name__)

# Returns (sent, received)
TransfersFetcher = Callable[
    [str], Awaitable[Tuple[Sequence[Transfer], Sequence[Transfer]]]
]


class TransfersService(DomainService):
    domain = DomainType.TRANSFERS

    def __init__(
        self,
        bus,
        account: str,
        fetch_transfers: TransfersFetcher,
        fetch_interval: float = TRANSFERS_FETCH_INTERVAL,
        **kwargs,
    ) -> None:
        super().__init__(bus, account, fetch_interval, **kwargs)
        self._fetch_transfers = fetch_transfers

    async def _load(self) -> Sequence[Transfer]:
        sent, received = await self._fetch_transfers(self.account)
        logger.debug(f"Fetched {len(sent)} sent and {len(received)} received transfers")
        merged = [
            t.model_copy(update={"direction": TransferDirection.SENT}) for t in sent
        ] + [
            t.model_copy(update={"direction": TransferDirection.RECEIVED})
            for t in received
        ]
        return sort_newest_first(merged, "created_at")

    def _by_direction(self, direction: TransferDirection) -> Tuple[Transfer, ...]:
        if self.snapshot is None:
            return ()
        return tuple(t for t in self.snapshot.items if t.direction is direction)

    def sent(self) -> Tuple[Transfer, ...]:
        return self._by_direction(TransferDirection.SENT)

    def received(self) -> Tuple[Transfer, ...]:
        return self._by_direction(TransferDirection.RECEIVED)

"""
Token balance polling.
"""

import logging
from decimal import Decimal
from typing import Awaitable, Callable, Sequence

from ledgersync.config import TOKENS_FETCH_INTERVAL
from ledgersync.models import DomainType, TokenBalance
from ledgersync.services.base import DomainService

logger = logging.getLogger(__name__)

BalanceFetcher = Callable[[str], Awaitable[Sequence[TokenBalance]]]


class TokenBalanceService(DomainService):
    domain = DomainType.TOKENS

    def __init__(
        self,
        bus,
        account: str,
        fetch_balances: BalanceFetcher,
        fetch_interval: float = TOKENS_FETCH_INTERVAL,
        **kwargs,
    ) -> None:
        super().__init__(bus, account, fetch_interval, **kwargs)
        self._fetch_balances = fetch_balances

    async def _load(self) -> Sequence[TokenBalance]:
        balances = await self._fetch_balances(self.account)
        logger.debug(f"Fetched {len(balances)} token balance(s) for {self.account}")
        # Ledger order is kept; symbols are unique per account
        return tuple(balances)

    def balance_of(self, symbol: str) -> Decimal:
        """Last-known balance for `symbol`, zero when unknown."""
        snapshot = self.snapshot
        if snapshot is None:
            return Decimal(0)
        for token in snapshot.items:
            if token.symbol.upper() == symbol.upper():
                return token.balance
        return Decimal(0)

"""
Composition root of the domain services.

:class:`DataServiceRegistry` builds the three domain services once, each
with its own cache, wires them to the :class:`DataBus` and exposes a
dispatch table from :class:`DomainType` to the matching refresh function.
It owns every background task it starts and stops them in
:meth:`DataServiceRegistry.shutdown`.
"""

import asyncio
import logging
import time
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Protocol,
    Sequence,
    Set,
    Tuple,
    assert_never,
)

from ledgersync.bus import DataBus, SnapshotCallback
from ledgersync.cache import CacheStore
from ledgersync.config import (
    STREAMS_FETCH_INTERVAL,
    STREAMS_UI_UPDATE_INTERVAL,
    TOKENS_FETCH_INTERVAL,
    TRANSFERS_FETCH_INTERVAL,
    Settings,
)
from ledgersync.models import DomainSnapshot, DomainType, Stream, TokenBalance, Transfer
from ledgersync.services import (
    DomainService,
    StreamsService,
    TokenBalanceService,
    TransfersService,
)

logger = logging.getLogger(__name__)

RefreshHandler = Callable[..., Awaitable[DomainSnapshot | None]]


class LedgerReader(Protocol):
    async def fetch_token_balances(self, account: str) -> Sequence[TokenBalance]: ...

    async def fetch_transfers(
        self, account: str
    ) -> Tuple[Sequence[Transfer], Sequence[Transfer]]: ...

    async def fetch_streams(self, account: str) -> Sequence[Stream]: ...


class DataServiceRegistry:
    """
    ## Parameters
    - `ledger`: Read side of the ledger (a `LedgerClient` in production)
    - `account`: Account followed by every service
    - `bus`: Bus to publish on; a new one is created when omitted
    - `settings`: Interval overrides; module defaults otherwise
    - `clock` / `wall_clock`: Time sources passed to the services
    """

    def __init__(
        self,
        ledger: LedgerReader,
        account: str,
        bus: DataBus | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.ledger = ledger
        self.account = account
        self.bus = bus if bus is not None else DataBus()
        self.settings = settings
        self.clock = clock
        self.wall_clock = wall_clock
        self._initialized = False
        self._closed = False
        self._services: Dict[DomainType, DomainService] = {}
        self._handlers: Dict[DomainType, RefreshHandler] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def handlers(self) -> Dict[DomainType, RefreshHandler]:
        return dict(self._handlers)

    @property
    def tokens(self) -> TokenBalanceService:
        return self._service(DomainType.TOKENS)  # type: ignore[return-value]

    @property
    def transfers(self) -> TransfersService:
        return self._service(DomainType.TRANSFERS)  # type: ignore[return-value]

    @property
    def streams(self) -> StreamsService:
        return self._service(DomainType.STREAMS)  # type: ignore[return-value]

    def _service(self, domain: DomainType) -> DomainService:
        if not self._initialized:
            raise RuntimeError("Data services not initialized")
        return self._services[domain]

    def initialize(self, start_timers: bool = True) -> None:
        """
        Build the services and the dispatch table. Calling it again is a no-op.

        ## Parameters
        - `start_timers`: Start the background poll tasks (needs a running loop)

        ## Raises
        - `RuntimeError` after :meth:`shutdown`
        """
        if self._closed:
            raise RuntimeError("Registry was shut down")
        if self._initialized:
            return

        logger.info("Initializing all data services")
        services: Dict[DomainType, DomainService] = {}
        handlers: Dict[DomainType, RefreshHandler] = {}
        for domain in DomainType:
            service = self._build_service(domain)
            services[domain] = service
            handlers[domain] = self._handler_for(domain, service)

        # State is recorded only once the timers run
        if start_timers:
            for service in services.values():
                service.start()

        self._services = services
        self._handlers = handlers
        self._initialized = True

    def _build_service(self, domain: DomainType) -> DomainService:
        s = self.settings
        # Every service gets its own cache
        cache = CacheStore(clock=self.clock)
        match domain:
            case DomainType.TOKENS:
                return TokenBalanceService(
                    self.bus,
                    self.account,
                    self.ledger.fetch_token_balances,
                    fetch_interval=s.tokens_interval if s else TOKENS_FETCH_INTERVAL,
                    cache=cache,
                    clock=self.clock,
                )
            case DomainType.TRANSFERS:
                return TransfersService(
                    self.bus,
                    self.account,
                    self.ledger.fetch_transfers,
                    fetch_interval=(
                        s.transfers_interval if s else TRANSFERS_FETCH_INTERVAL
                    ),
                    cache=cache,
                    clock=self.clock,
                )
            case DomainType.STREAMS:
                return StreamsService(
                    self.bus,
                    self.account,
                    self.ledger.fetch_streams,
                    fetch_interval=s.streams_interval if s else STREAMS_FETCH_INTERVAL,
                    ui_update_interval=(
                        s.streams_ui_interval if s else STREAMS_UI_UPDATE_INTERVAL
                    ),
                    cache=cache,
                    clock=self.clock,
                    wall_clock=self.wall_clock,
                )
            case _:
                assert_never(domain)

    @staticmethod
    def _handler_for(domain: DomainType, service: DomainService) -> RefreshHandler:
        match domain:
            case DomainType.TOKENS | DomainType.TRANSFERS | DomainType.STREAMS:
                return service.refresh
            case _:
                assert_never(domain)

    async def refresh(
        self, domain: DomainType, force: bool = False
    ) -> DomainSnapshot | None:
        if not self._initialized:
            raise RuntimeError("Cannot refresh data: data services not initialized")
        return await self._handlers[domain](force=force)

    async def refresh_all(self, force: bool = False) -> List[DomainType]:
        """
        Refresh every domain, each in its own failure boundary.

        ## Returns
        - Domains whose refresh raised (already logged)
        """
        if not self._initialized:
            logger.warning("Cannot refresh data: data services not initialized")
            return []
        return await self._refresh_domains(list(self._handlers), force=force)

    async def _refresh_domains(
        self, domains: List[DomainType], force: bool
    ) -> List[DomainType]:
        failed: List[DomainType] = []
        for domain in domains:
            try:
                await self._handlers[domain](force=force)
            except Exception as e:
                logger.error(f"Error refreshing {domain.value}: {e}", exc_info=True)
                failed.append(domain)
        return failed

    def subscribe(
        self, domain: DomainType, callback: SnapshotCallback
    ) -> Callable[[], None]:
        """
        Subscribe to `domain` and schedule a refresh so the subscriber gets data soon.

        Rate limiting still applies: a recent snapshot is replayed, not refetched.
        """
        unsubscribe = self.bus.subscribe(domain, callback)
        if self._initialized:
            self._spawn(self.refresh(domain), f"refresh:{domain.value}")
        return unsubscribe

    async def revalidate(self) -> List[DomainType]:
        """
        Re-fetch every domain that has at least one bus subscriber.

        The rate limit and the cache are bypassed. Domains nobody
        subscribes to are left alone.

        ## Returns
        - Domains whose re-fetch raised (already logged)
        """
        if not self._initialized:
            logger.warning("Cannot revalidate data: data services not initialized")
            return []
        domains = [d for d in self._handlers if self.bus.subscriber_count(d) > 0]
        return await self._refresh_domains(domains, force=True)

    async def handle_focus_gained(self) -> List[DomainType]:
        logger.debug("Focus regained, revalidating subscribed domains")
        return await self.revalidate()

    async def handle_reconnect(self) -> List[DomainType]:
        logger.info("Ledger connection restored, revalidating subscribed domains")
        return await self.revalidate()

    def _spawn(self, coro: Awaitable[Any], name: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._pending.add(task)
        task.add_done_callback(self._on_spawned_done)
        return task

    def _on_spawned_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"{task.get_name()} failed: {task.exception()}")

    async def shutdown(self) -> None:
        """Stop every background task owned by the registry."""
        if self._closed:
            return
        self._closed = True

        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

        for service in self._services.values():
            await service.stop()
        logger.info("Data services stopped")

    def describe(self) -> List[Dict[str, Any]]:
        return [service.describe() for service in self._services.values()]

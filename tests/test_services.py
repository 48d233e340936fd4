import asyncio
from decimal import Decimal

import pytest

from ledgersync.bus import DataBus
from ledgersync.errors import NetworkError
from ledgersync.models import DomainType, TransferDirection
from ledgersync.services import DomainService, TokenBalanceService, TransfersService

from conftest import make_token, make_transfer


def test_refresh_within_interval_republishes_without_fetching(clock):
    calls = []
    published = []

    async def fetch_balances(account):
        calls.append(account)
        return [make_token(balance=str(len(calls)))]

    async def scenario():
        bus = DataBus()
        bus.subscribe(DomainType.TOKENS, published.append)
        service = TokenBalanceService(bus, "0xabc", fetch_balances, clock=clock)

        first = await service.refresh()
        clock.advance(29)
        second = await service.refresh()
        clock.advance(1)
        third = await service.refresh()
        return first, second, third

    first, second, third = asyncio.run(scenario())

    assert calls == ["0xabc", "0xabc"]
    assert second is first
    assert third.items[0].balance == Decimal("2")
    assert len(published) == 3


def test_force_ignores_rate_limit(clock):
    calls = []

    async def fetch_balances(account):
        calls.append(account)
        return []

    async def scenario():
        service = TokenBalanceService(DataBus(), "0xabc", fetch_balances, clock=clock)
        await service.refresh()
        await service.refresh(force=True)

    asyncio.run(scenario())
    assert len(calls) == 2


def test_failed_fetch_keeps_last_snapshot(clock):
    responses = [[make_token(balance="3")], NetworkError("down")]

    async def fetch_balances(account):
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def scenario():
        bus = DataBus()
        service = TokenBalanceService(bus, "0xabc", fetch_balances, clock=clock)
        good = await service.refresh()
        clock.advance(31)
        with pytest.raises(NetworkError):
            await service.refresh()
        return service, good, bus

    service, good, bus = asyncio.run(scenario())

    assert service.snapshot is good
    assert bus.latest(DomainType.TOKENS) is good
    assert service.balance_of("usdc") == Decimal("3")
    assert service.balance_of("DAI") == Decimal(0)
    # Failed fetches do not count as a fetch for rate limiting
    assert service.last_fetch_time == 1000.0


def test_poll_timer_survives_failing_fetch():
    calls = []

    async def fetch_balances(account):
        calls.append(account)
        if len(calls) == 1:
            raise NetworkError("down")
        return [make_token()]

    async def scenario():
        service = TokenBalanceService(
            DataBus(), "0xabc", fetch_balances, fetch_interval=0.01
        )
        service.start()
        await asyncio.sleep(0.055)
        await service.stop()
        return service

    service = asyncio.run(scenario())

    assert len(calls) >= 2
    assert service.snapshot is not None
    assert not service.running


def test_transfers_are_merged_newest_first_with_direction(clock):
    async def fetch_transfers(account):
        sent = [make_transfer("s-old", created_at=10), make_transfer("s-new", created_at=30)]
        received = [make_transfer("r-mid", created_at=20)]
        return sent, received

    async def scenario():
        service = TransfersService(DataBus(), "0xabc", fetch_transfers, clock=clock)
        snapshot = await service.refresh()
        return service, snapshot

    service, snapshot = asyncio.run(scenario())

    assert [t.id for t in snapshot.items] == ["s-new", "r-mid", "s-old"]
    assert [t.id for t in service.sent()] == ["s-new", "s-old"]
    assert [t.id for t in service.received()] == ["r-mid"]
    assert service.received()[0].direction is TransferDirection.RECEIVED


def test_domain_service_requires_a_loader():
    class Incomplete(DomainService):
        domain = DomainType.TOKENS

    with pytest.raises(TypeError):
        Incomplete(DataBus(), "0xabc", 30)

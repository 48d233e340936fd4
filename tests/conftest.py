from decimal import Decimal

import pytest

from ledgersync.models import Stream, StreamStatus, TokenBalance, Transfer, TransferStatus


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_token(symbol="USDC", balance="10"):
    return TokenBalance(symbol=symbol, name=symbol, balance=Decimal(balance))


def make_transfer(id="t1", created_at=100, **overrides):
    data = {
        "id": id,
        "sender": "0xsender",
        "recipient": "0xrecipient",
        "tokenAddress": "0xtoken",
        "tokenSymbol": "USDC",
        "amount": Decimal("5"),
        "expiry": 10_000,
        "status": TransferStatus.PENDING,
        "createdAt": created_at,
    }
    data.update(overrides)
    return Transfer(**data)


def make_stream(id="s1", amount="100", start=0, end=100, status=StreamStatus.ACTIVE):
    return Stream(
        id=id,
        sender="0xsender",
        recipient="0xrecipient",
        tokenAddress="0xtoken",
        tokenSymbol="USDC",
        amount=Decimal(amount),
        startTime=start,
        endTime=end,
        status=status,
    )

import asyncio
from decimal import Decimal

import httpx
import pytest

from ledgersync.errors import ConfirmationError, NetworkError, PreflightValidationError
from ledgersync.ledger import LedgerClient
from ledgersync.models import TransferDirection


def _client(handler, **kwargs):
    http = httpx.AsyncClient(
        base_url="https://indexer.test", transport=httpx.MockTransport(handler)
    )
    return LedgerClient("https://indexer.test", client=http, **kwargs)


def _transfer(id, created_at):
    return {
        "id": id,
        "sender": "0xsender",
        "tokenAddress": "0xtoken",
        "tokenSymbol": "USDC",
        "amount": "5.5",
        "expiry": 2_000_000_000,
        "status": 0,
        "hasPassword": True,
        "createdAt": created_at,
    }


def test_fetch_token_balances():
    def handler(request):
        assert request.url.path == "/accounts/0xabc/balances"
        return httpx.Response(
            200,
            json={"balances": [{"symbol": "USDC", "name": "USD Coin", "balance": "12.5"}]},
        )

    async def scenario():
        async with _client(handler) as ledger:
            return await ledger.fetch_token_balances("0xabc")

    balances = asyncio.run(scenario())
    assert balances[0].balance == Decimal("12.5")


def test_fetch_transfers_accepts_iso_timestamps():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "sent": [_transfer("a", 1_700_000_000)],
                "received": [_transfer("b", "2023-11-14T22:13:20Z")],
            },
        )

    async def scenario():
        async with _client(handler) as ledger:
            return await ledger.fetch_transfers("0xabc")

    sent, received = asyncio.run(scenario())

    assert sent[0].has_password
    assert received[0].created_at == 1_700_000_000
    # Direction is assigned by the transfers service, not the client
    assert received[0].direction is TransferDirection.SENT


def test_http_error_status_becomes_network_error():
    def handler(request):
        return httpx.Response(503, json={"error": "maintenance"})

    async def scenario():
        async with _client(handler) as ledger:
            await ledger.fetch_streams("0xabc")

    with pytest.raises(NetworkError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.status_code == 503


def test_transport_failure_becomes_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async def scenario():
        async with _client(handler) as ledger:
            await ledger.fetch_streams("0xabc")

    with pytest.raises(NetworkError):
        asyncio.run(scenario())


def test_malformed_payload_becomes_network_error():
    def handler(request):
        return httpx.Response(200, json={"streams": [{"id": "s1"}]})

    async def scenario():
        async with _client(handler) as ledger:
            await ledger.fetch_streams("0xabc")

    with pytest.raises(NetworkError):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(422, json={"error": "insufficient funds"}),
        httpx.Response(200, json={"ok": False, "error": "already claimed"}),
    ],
)
def test_simulate_rejection_is_preflight_error(response):
    def handler(request):
        return response

    async def scenario():
        async with _client(handler) as ledger:
            await ledger.simulate({"to": "0xabc"})

    with pytest.raises(PreflightValidationError):
        asyncio.run(scenario())


def test_wait_for_receipt_polls_until_mined():
    polls = []

    def handler(request):
        polls.append(request.url.path)
        if len(polls) < 3:
            return httpx.Response(404)
        return httpx.Response(
            200, json={"transactionHash": "0xabc", "status": "success", "blockNumber": 7}
        )

    async def scenario():
        async with _client(handler, receipt_poll_interval=0.001) as ledger:
            return await ledger.wait_for_receipt("0xabc")

    receipt = asyncio.run(scenario())

    assert len(polls) == 3
    assert receipt.block_number == 7


def test_reverted_receipt_raises_confirmation_error():
    def handler(request):
        return httpx.Response(
            200, json={"transactionHash": "0xabc", "status": "reverted"}
        )

    async def scenario():
        async with _client(handler) as ledger:
            await ledger.wait_for_receipt("0xabc")

    with pytest.raises(ConfirmationError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.tx_hash == "0xabc"

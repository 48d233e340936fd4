"""
# Ledger REST Client

Async HTTP client for the ledger indexer API, built on httpx.

## Endpoints
- `GET  /accounts/{account}/balances`  -> `{"balances": [TokenBalance, ...]}`
- `GET  /accounts/{account}/transfers` -> `{"sent": [...], "received": [...]}`
- `GET  /accounts/{account}/streams`   -> `{"streams": [Stream, ...]}`
- `POST /transactions/simulate`        -> `{"ok": bool, "error": str | null}`
- `GET  /transactions/{hash}/receipt`  -> `Receipt`, 404 while not yet mined

## Error Handling
Every transport failure and non-2xx status surfaces as
:class:`~ledgersync.errors.NetworkError` (with `status_code` when there was
a response). A failed simulation raises
:class:`~ledgersync.errors.PreflightValidationError`; a reverted receipt
raises :class:`~ledgersync.errors.ConfirmationError`. No timeout is added
here: whatever the httpx client is configured with applies.

## Example
```python
async with LedgerClient("https://indexer.example.org") as ledger:
    balances = await ledger.fetch_token_balances("0xabc...")
```
"""

import asyncio
import logging
from typing import Any, Dict, List, Tuple

import httpx
from pydantic import ValidationError

from ledgersync.config import RECEIPT_POLL_INTERVAL_SECONDS
from ledgersync.errors import ConfirmationError, NetworkError, PreflightValidationError
from ledgersync.models import Receipt, Stream, TokenBalance, Transfer
from ledgersync.utils import parse_iso_timestamp, shorten_id

logger = logging.getLogger(__name__)


class LedgerClient:
    """
    ## Args:
    - `base_url` (str): Indexer API root
    - `client` (httpx.AsyncClient, optional): Preconfigured client (transport,
      timeouts, auth); one is created from `base_url` when omitted
    - `receipt_poll_interval` (float): Seconds between receipt polls
    """

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        receipt_poll_interval: float = RECEIPT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = (
            client if client is not None else httpx.AsyncClient(base_url=self.base_url)
        )
        self.receipt_poll_interval = receipt_poll_interval

    async def __aenter__(self) -> "LedgerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e
        return response

    async def _get_json(self, path: str) -> Dict[str, Any]:
        response = await self._request("GET", path)
        self._raise_for_status(response, path)
        data = self._json(response, path)
        if not isinstance(data, dict):
            raise NetworkError(f"Expected a JSON object from {path}")
        return data

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        if response.is_success:
            return
        raise NetworkError(
            f"HTTP {response.status_code} for {path}",
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {path}: {e}") from e

    @staticmethod
    def _parse(model: Any, raw: Any, path: str) -> Any:
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise NetworkError(f"Unexpected payload from {path}: {e}") from e

    async def fetch_token_balances(self, account: str) -> List[TokenBalance]:
        path = f"/accounts/{account}/balances"
        data = await self._get_json(path)
        return [self._parse(TokenBalance, item, path) for item in data.get("balances", [])]

    async def fetch_transfers(
        self, account: str
    ) -> Tuple[List[Transfer], List[Transfer]]:
        path = f"/accounts/{account}/transfers"
        data = await self._get_json(path)
        sent = [
            self._parse(Transfer, _normalize_transfer(item), path)
            for item in data.get("sent", [])
        ]
        received = [
            self._parse(Transfer, _normalize_transfer(item), path)
            for item in data.get("received", [])
        ]
        return sent, received

    async def fetch_streams(self, account: str) -> List[Stream]:
        path = f"/accounts/{account}/streams"
        data = await self._get_json(path)
        return [self._parse(Stream, item, path) for item in data.get("streams", [])]

    async def simulate(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Dry-run a write before it is signed.

        ## Raises
        - `PreflightValidationError`: the ledger rejected the write
        - `NetworkError`: transport failure or unexpected status
        """
        path = "/transactions/simulate"
        response = await self._request("POST", path, json=payload)
        if response.status_code in (400, 422):
            body = self._json(response, path)
            error = body.get("error") if isinstance(body, dict) else None
            raise PreflightValidationError(str(error or "Simulation rejected"))
        self._raise_for_status(response, path)
        body = self._json(response, path)
        if not isinstance(body, dict):
            raise NetworkError(f"Expected a JSON object from {path}")
        if not body.get("ok", False):
            raise PreflightValidationError(str(body.get("error") or "Simulation failed"))
        return body

    async def get_receipt(self, tx_hash: str) -> Receipt | None:
        path = f"/transactions/{tx_hash}/receipt"
        response = await self._request("GET", path)
        if response.status_code == 404:
            return None
        self._raise_for_status(response, path)
        return self._parse(Receipt, self._json(response, path), path)

    async def wait_for_receipt(self, tx_hash: str) -> Receipt:
        """
        Poll until the receipt of `tx_hash` exists.

        ## Returns
        - The successful receipt

        ## Raises
        - `ConfirmationError`: the receipt reports a reverted write
        - `NetworkError`: a poll failed
        """
        while True:
            receipt = await self.get_receipt(tx_hash)
            if receipt is not None:
                break
            await asyncio.sleep(self.receipt_poll_interval)

        if not receipt.succeeded:
            raise ConfirmationError(
                f"Transaction {shorten_id(tx_hash)} reverted", tx_hash=tx_hash
            )
        logger.info(
            f"Receipt for {shorten_id(tx_hash)} confirmed in block {receipt.block_number}"
        )
        return receipt


def _normalize_transfer(item: Dict[str, Any]) -> Dict[str, Any]:
    # Some indexers report createdAt as an ISO string instead of unix seconds
    created_at = item.get("createdAt")
    if isinstance(created_at, str) and not created_at.isdigit():
        parsed = parse_iso_timestamp(created_at)
        if parsed is not None:
            return {**item, "createdAt": int(parsed)}
    return item

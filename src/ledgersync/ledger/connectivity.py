"""
# Ledger Event Socket Watcher

Keeps a WebSocket open to the ledger's event endpoint and turns its life
cycle into the edges the rest of ledgersync reacts to:

- **disconnect**: the socket closed or failed; consumers mark themselves offline
- **reconnect**: the socket came back after a drop; consumers revalidate
- **newHead**: a new ledger head was announced; consumers may refresh early

## Message Encoding
Text frames are JSON. Binary frames are msgpack, with a UTF-8 JSON
fallback. Frames that decode to something other than a mapping are ignored.

## Example
```python
watcher = ConnectivityWatcher("wss://indexer.example.org/events")
watcher.on_reconnect(registry.handle_reconnect)
watcher.on_new_head(on_head)
await watcher.run()  # blocks until close() or reconnection gives up
```
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List

import msgpack
import websockets

from ledgersync.config import MAX_RECONNECT_ATTEMPTS, RECONNECT_DELAY_SECONDS

logger = logging.getLogger(__name__)

EVENT_NEW_HEAD = "newHead"
SUBSCRIBE_MESSAGE = {"action": "subscribe", "channel": "newHeads"}

EdgeCallback = Callable[[], Awaitable[None]]
HeadCallback = Callable[[Dict[str, Any]], Awaitable[None]]


def decode_frame(message: Any) -> Any:
    """Decode a WebSocket frame: msgpack or UTF-8 JSON for bytes, JSON for text."""
    if isinstance(message, (bytes, bytearray)):
        try:
            return msgpack.unpackb(bytes(message), raw=False)
        except Exception:
            return json.loads(bytes(message).decode("utf-8"))
    return json.loads(message)


class ConnectivityWatcher:
    """
    ## Args:
    - `ws_url` (str): Event socket URL
    - `max_reconnect_attempts` (int): Attempts per drop before giving up
    - `reconnect_delay_seconds` (float): Base delay, doubled after each failed attempt
    - `connect` (callable): Socket factory, `websockets.connect` by default
    """

    def __init__(
        self,
        ws_url: str,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        reconnect_delay_seconds: float = RECONNECT_DELAY_SECONDS,
        connect: Callable[[str], Awaitable[Any]] = websockets.connect,
    ) -> None:
        self.ws_url = ws_url
        self.ws: Any = None
        self._connect = connect
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_delay_seconds = reconnect_delay_seconds
        self._closing = False
        self._reconnect_callbacks: List[EdgeCallback] = []
        self._disconnect_callbacks: List[EdgeCallback] = []
        self._head_callbacks: List[HeadCallback] = []

    def on_reconnect(self, callback: EdgeCallback) -> None:
        self._reconnect_callbacks.append(callback)

    def on_disconnect(self, callback: EdgeCallback) -> None:
        self._disconnect_callbacks.append(callback)

    def on_new_head(self, callback: HeadCallback) -> None:
        self._head_callbacks.append(callback)

    @property
    def connected(self) -> bool:
        return self.ws is not None

    async def connect(self) -> bool:
        """
        Open the socket and subscribe to head announcements.

        ## Returns:
        - `bool`: True if connected, False on any connection error
        """
        try:
            logger.info(f"Connecting to ledger event socket: {self.ws_url}")
            self.ws = await self._connect(self.ws_url)
            await self.ws.send(json.dumps(SUBSCRIBE_MESSAGE))
            logger.info("✅ Connected to ledger event socket")
            return True
        except Exception as e:
            logger.error(f"❌ Failed to connect to ledger event socket: {e}")
            self.ws = None
            return False

    async def run(self) -> None:
        """
        Process events until :meth:`close` is called or reconnection gives up.

        Each drop fires the disconnect callbacks; each successful reconnection
        fires the reconnect callbacks.
        """
        if self._closing:
            return

        if not self.ws and not await self.connect():
            if not await self._reconnect():
                logger.error("Cannot watch ledger events: connection failed")
                return

        while not self._closing:
            await self._message_handler()
            if self._closing:
                break

            self.ws = None
            await self._fire(self._disconnect_callbacks, "disconnect")

            if not await self._reconnect():
                logger.error("❌ Giving up on ledger event socket")
                break
            await self._fire(self._reconnect_callbacks, "reconnect")

    async def close(self) -> None:
        self._closing = True
        if self.ws:
            await self.ws.close()
            self.ws = None
            logger.info("✅ Ledger event socket closed")

    async def _message_handler(self) -> None:
        if not self.ws:
            return

        try:
            async for message in self.ws:
                try:
                    data = decode_frame(message)
                except (ValueError, UnicodeDecodeError) as e:
                    logger.error(f"Failed to decode ledger event: {str(message)[:100]}...")
                    logger.debug(f"Decode error: {e}")
                    continue

                if not isinstance(data, dict):
                    logger.debug(f"Ignoring non-object ledger event: {data!r}")
                    continue

                try:
                    await self._route_message(data)
                except Exception as e:
                    logger.error(f"Error handling ledger event: {e}", exc_info=True)

        except websockets.exceptions.ConnectionClosed as e:
            logger.warning(f"⚠️ Ledger event socket closed: {e}")

        except Exception as e:
            logger.error(f"❌ Ledger event handler error: {e}", exc_info=True)

    async def _route_message(self, data: Dict[str, Any]) -> None:
        if data.get("type") == EVENT_NEW_HEAD:
            for callback in list(self._head_callbacks):
                await callback(data)
        else:
            logger.debug(f"Unhandled ledger event type: {data.get('type')}")

    async def _reconnect(self) -> bool:
        """
        Reconnect with exponential backoff.

        ## Returns
        - `bool`: True once connected, False after `max_reconnect_attempts`
          failures or when closing
        """
        for attempt in range(1, self._max_reconnect_attempts + 1):
            if self._closing:
                return False

            if attempt > 1:
                delay = self._reconnect_delay_seconds * (2 ** (attempt - 2))
                logger.info(f"Waiting {delay} seconds before retry...")
                await asyncio.sleep(delay)

            logger.info(
                f"🔄 Reconnection attempt {attempt}/{self._max_reconnect_attempts}"
            )
            if await self.connect():
                return True

        return False

    async def _fire(self, callbacks: List[EdgeCallback], edge: str) -> None:
        for callback in list(callbacks):
            try:
                await callback()
            except Exception as e:
                logger.error(f"Error in {edge} callback: {e}", exc_info=True)

"""
Generic fetch-or-get entry point with subscriber-driven revalidation.

A :class:`FetchClient` combines a :class:`CacheStore` with a
:class:`RequestCoalescer` and keeps a registry of subscriptions per key.
When the host signals that the window regained focus or the network came
back (a False -> True edge on :meth:`FetchClient.notify_focus` or
:meth:`FetchClient.notify_online`) every key with at least one live
subscriber is re-fetched with ``skip_cache=True``. Keys nobody subscribes to
are left alone.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ledgersync.cache.coalescer import Fetcher, RequestCoalescer
from ledgersync.cache.store import CacheStore

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(eq=False)
class Subscription:
    """Live interest in one cache key."""

    id: int
    key: str
    fetcher: Fetcher
    ttl: float | None = None
    on_success: Optional[Callable[[Any], None]] = None
    on_error: Optional[Callable[[Exception], None]] = None
    _client: Optional["FetchClient"] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._client is not None

    def unsubscribe(self) -> None:
        if self._client is not None:
            self._client._remove(self)
            self._client = None


class FetchClient:
    """
    ## Parameters
    - `store`: Cache backing this client (one per owner, never shared implicitly)
    - `default_ttl`: TTL for fetches that do not pass one; defaults to the store's
    """

    def __init__(
        self, store: CacheStore | None = None, default_ttl: float | None = None
    ) -> None:
        self.store = store if store is not None else CacheStore()
        self.coalescer = RequestCoalescer(self.store)
        self.default_ttl = (
            default_ttl if default_ttl is not None else self.store.default_ttl
        )
        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._ids = itertools.count(1)
        self._focused = True
        self._online = True

    async def fetch(
        self,
        key: str,
        fetcher: Fetcher,
        ttl: float | None = None,
        dedupe: bool = True,
        skip_cache: bool = False,
    ) -> Any:
        return await self.coalescer.fetch_or_get(
            key,
            fetcher,
            ttl=ttl if ttl is not None else self.default_ttl,
            dedupe=dedupe,
            skip_cache=skip_cache,
        )

    def get(self, key: str) -> Any | None:
        return self.store.get(key)

    def subscribe(
        self,
        key: str,
        fetcher: Fetcher,
        ttl: float | None = None,
        on_success: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Subscription:
        """
        Register interest in `key` so it is revalidated on focus/reconnect edges.

        The subscription does not fetch by itself; call :meth:`load` or
        :meth:`fetch` for the initial value.
        """
        sub = Subscription(
            id=next(self._ids),
            key=key,
            fetcher=fetcher,
            ttl=ttl,
            on_success=on_success,
            on_error=on_error,
            _client=self,
        )
        self._subscriptions.setdefault(key, []).append(sub)
        return sub

    async def load(self, sub: Subscription, skip_cache: bool = False) -> Any:
        """Fetch the subscription's key and report the outcome to its callbacks."""
        try:
            payload = await self.fetch(
                sub.key, sub.fetcher, ttl=sub.ttl, skip_cache=skip_cache
            )
        except Exception as e:
            if sub.on_error is not None:
                sub.on_error(e)
            raise
        if sub.on_success is not None:
            sub.on_success(payload)
        return payload

    def subscriber_count(self, key: str) -> int:
        return len(self._subscriptions.get(key, ()))

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.key)
        if not subs:
            return
        if sub in subs:
            subs.remove(sub)
        if not subs:
            del self._subscriptions[sub.key]

    async def mutate(self, key: str, payload: Any = _MISSING) -> Any:
        """
        Optimistically write `payload`, or refetch when no payload is given.

        Subscribers of `key` are notified with the new value either way.
        """
        if payload is not _MISSING:
            self.store.set(key, payload)
            self._notify_success(key, payload)
            return payload
        return await self.refetch(key)

    async def refetch(self, key: str) -> Any:
        subs = self._subscriptions.get(key)
        if not subs:
            raise KeyError(f"No subscription registered for {key}")
        return await self._revalidate_key(key)

    def notify_focus(self, focused: bool) -> Optional[asyncio.Task]:
        """Record window focus; returns the revalidation task on a focus-gained edge."""
        gained = focused and not self._focused
        self._focused = focused
        if gained:
            logger.debug("Focus regained, revalidating subscribed keys")
            return asyncio.create_task(self.revalidate(), name="revalidate:focus")
        return None

    def notify_online(self, online: bool) -> Optional[asyncio.Task]:
        """Record connectivity; returns the revalidation task on a reconnect edge."""
        reconnected = online and not self._online
        self._online = online
        if reconnected:
            logger.info("Network reconnected, revalidating subscribed keys")
            return asyncio.create_task(self.revalidate(), name="revalidate:online")
        return None

    async def revalidate(self) -> Dict[str, Any]:
        """
        Re-fetch every key that has at least one subscriber.

        ## Returns
        - Mapping of key to payload, or to the exception the fetch raised
        """
        keys = [key for key, subs in self._subscriptions.items() if subs]
        results = await asyncio.gather(
            *(self._revalidate_key(key) for key in keys), return_exceptions=True
        )
        outcome: Dict[str, Any] = {}
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.warning(f"Revalidation of {key} failed: {result}")
            outcome[key] = result
        return outcome

    async def _revalidate_key(self, key: str) -> Any:
        subs = self._subscriptions.get(key)
        if not subs:
            return None
        # Latest subscriber's fetcher wins; all subscribers share the result.
        lead = subs[-1]
        try:
            payload = await self.fetch(key, lead.fetcher, ttl=lead.ttl, skip_cache=True)
        except Exception as e:
            self._notify_error(key, e)
            raise
        self._notify_success(key, payload)
        return payload

    def _notify_success(self, key: str, payload: Any) -> None:
        for sub in list(self._subscriptions.get(key, ())):
            if sub.on_success is not None:
                sub.on_success(payload)

    def _notify_error(self, key: str, error: Exception) -> None:
        for sub in list(self._subscriptions.get(key, ())):
            if sub.on_error is not None:
                sub.on_error(error)

"""
TTL cache, request coalescing and the generic fetch client.
"""

from .store import CacheEntry, CacheStore
from .coalescer import Fetcher, RequestCoalescer
from .fetch_client import FetchClient, Subscription

__all__ = [
    "CacheEntry",
    "CacheStore",
    "Fetcher",
    "RequestCoalescer",
    "FetchClient",
    "Subscription",
]

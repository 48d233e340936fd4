"""
Keyed TTL cache.

Entries carry the time they were written and the sequence number of the
write. Sequence numbers grow monotonically per store; a write tagged with an
older sequence than the stored entry is dropped, so a slow fetch issued
before a newer write can never overwrite the newer value.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator

from ledgersync.config import DEFAULT_CACHE_TTL
from ledgersync.utils import is_older_than

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    written_at: float
    ttl: float
    sequence: int

    def is_fresh(self, now: float) -> bool:
        return not is_older_than(self.written_at, now, self.ttl)


class CacheStore:
    """
    In-memory TTL cache.

    ## Parameters
    - `default_ttl`: TTL applied when a write does not specify one
    - `clock`: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._sequence = itertools.count(1)

    def next_sequence(self) -> int:
        """Reserve a sequence number, taken when a fetch is issued."""
        return next(self._sequence)

    def fresh_entry(self, key: str) -> CacheEntry | None:
        """Entry for `key` if it is still fresh; a stored `None` payload is a hit."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self.clock()):
            return None
        return entry

    def get(self, key: str) -> Any | None:
        entry = self.fresh_entry(key)
        return entry.payload if entry is not None else None

    def entry(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def set(
        self,
        key: str,
        payload: Any,
        ttl: float | None = None,
        sequence: int | None = None,
    ) -> bool:
        """
        Write `payload` under `key`.

        ## Parameters
        - `ttl`: Entry TTL, falls back to the existing entry's TTL, then the default
        - `sequence`: Issue sequence of the producing fetch; omitted for direct
          writes, which always win

        ## Returns
        - `True` if the entry was written, `False` if a newer entry was kept
        """
        current = self._entries.get(key)
        if sequence is None:
            sequence = self.next_sequence()
        elif current is not None and sequence < current.sequence:
            logger.debug(
                f"Dropped stale write for {key}: seq {sequence} < {current.sequence}"
            )
            return False

        if ttl is None:
            ttl = current.ttl if current is not None else self.default_ttl

        self._entries[key] = CacheEntry(
            key=key,
            payload=payload,
            written_at=self.clock(),
            ttl=ttl,
            sequence=sequence,
        )
        return True

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

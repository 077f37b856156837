"""Process-wide, time-expiring store for assembled query results."""

from __future__ import annotations

import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger


Clock = Callable[[], float]


def cache_key(kind: str, *parts: Any) -> str:
    """Build the cache key for a query kind and its effective parameters.

    The key is the JSON encoding of ``[kind, *parts]`` so values containing
    separators cannot make two distinct parameter sets collide.
    """

    return json.dumps([kind, *parts], separators=(",", ":"), ensure_ascii=False)


@dataclass(slots=True)
class CacheEntry:
    key: str
    value: Any
    stored_at: float


class QueryCache:
    """Key to (value, stored_at) map with a fixed TTL and optional LRU bound.

    Expired entries are never swept; ``get`` treats them as absent and the
    next ``set`` for the key overwrites them. Reads and writes are single
    dictionary operations, so interleaved coroutines only ever observe whole
    entries.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 60.0,
        max_entries: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries or None
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Query cache miss for {}", key)
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            logger.debug("Query cache entry for {} expired", key)
            return None
        self._entries.move_to_end(key)
        logger.debug("Query cache hit for {}", key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock())
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted least recently used query cache entry {}", evicted)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

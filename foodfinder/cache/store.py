from __future__ import annotations

import hashlib
import json
import time
from collections import OrderedDict
from collections.abc import Callable
from threading import Lock
from typing import Any

from .config import DEFAULT_CACHE_CONFIG, CacheConfig


def make_key(parts: Any) -> str:
    """Stable short key for any JSON-serialisable value."""
    normalized = json.dumps(parts, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


class TTLStore:
    """Bounded key-value store whose entries expire ``ttl`` seconds after write.

    Reads past expiry behave exactly like a miss. Writes are last-write-wins;
    when ``capacity`` is reached the least recently written entry is evicted.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        capacity: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.name = name
        self.ttl = ttl
        self.capacity = capacity
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry and self._clock() - entry[0] < self.ttl:
                self._hits += 1
                return entry[1]
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), value)
            if self.capacity is not None:
                while len(self._entries) > self.capacity:
                    self._entries.popitem(last=False)
                    self._evictions += 1

    def sweep(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (created, _) in self._entries.items() if now - created >= self.ttl]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            hits, misses, evictions = self._hits, self._misses, self._evictions
            size = len(self._entries)
        total = hits + misses
        return {
            "size": size,
            "capacity": self.capacity,
            "ttl_seconds": self.ttl,
            "hits": hits,
            "misses": misses,
            "evictions": evictions,
            "hit_rate": round(hits / total * 100, 1) if total > 0 else 0.0,
        }


class CacheRegistry:
    """The three independently configured stores used by the service."""

    def __init__(
        self,
        config: CacheConfig = DEFAULT_CACHE_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.descriptions = TTLStore(
            "descriptions", config.description_ttl, config.description_capacity, clock
        )
        self.profiles = TTLStore("profiles", config.profile_ttl, config.profile_capacity, clock)
        self.conversations = TTLStore(
            "conversations", config.conversation_ttl, config.conversation_capacity, clock
        )

    def stores(self) -> list[TTLStore]:
        return [self.descriptions, self.profiles, self.conversations]

    def sweep(self) -> int:
        return sum(store.sweep() for store in self.stores())

    def clear(self) -> None:
        for store in self.stores():
            store.clear()

    def stats(self) -> dict[str, dict]:
        return {store.name: store.stats() for store in self.stores()}

"""
Decision cache for derived scheduler output.

The cache is an explicitly injected object rather than module state:
callers construct a DecisionCache (optionally over their own backend) and
hand it to the engine. Entries expire after a TTL and the in-memory backend
evicts the oldest entry once full.
"""
from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from loguru import logger


class CacheBackend(Protocol):
    """Storage used by DecisionCache."""

    def get(self, key: str) -> Optional[tuple[float, Any]]: ...

    def set(self, key: str, expires_at: float, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...

    def clear(self) -> None: ...


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class MemoryCacheBackend:
    """Bounded in-process backend (oldest entry evicted first)."""

    def __init__(self, max_size: int = 100):
        self.max_size = max_size
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self.evictions = 0

    def get(self, key: str) -> Optional[tuple[float, Any]]:
        return self._entries.get(key)

    def set(self, key: str, expires_at: float, value: Any) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (expires_at, value)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self.evictions += 1

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class DecisionCache:
    """
    get/set/invalidate cache over a pluggable backend.

    Args:
        backend: Storage implementation (in-memory by default)
        ttl_seconds: Lifetime of each entry
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.stats = CacheStats()

    def get(self, key: str) -> Optional[Any]:
        entry = self.backend.get(key)
        if entry is None:
            self.stats.misses += 1
            return None

        expires_at, value = entry
        if self.clock() >= expires_at:
            self.backend.delete(key)
            self.stats.misses += 1
            return None

        self.stats.hits += 1
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self.backend.set(key, self.clock() + ttl, value)

    def invalidate(self, prefix: Optional[str] = None) -> int:
        """
        Drop entries whose key starts with ``prefix`` (all entries when None).

        Returns:
            Number of entries removed
        """
        if prefix is None:
            removed = len(self.backend.keys())
            self.backend.clear()
        else:
            matching = [k for k in self.backend.keys() if k.startswith(prefix)]
            for key in matching:
                self.backend.delete(key)
            removed = len(matching)

        if removed:
            logger.debug(f"Invalidated {removed} cached decision(s) for prefix={prefix!r}")
        return removed

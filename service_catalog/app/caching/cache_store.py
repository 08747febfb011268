"""
Bounded, TTL-expiring in-memory store backing one cache region.
"""

import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Set, TYPE_CHECKING

from cachetools import TTLCache

from shared.errors import CacheKeyError
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time statistics for a cache region."""
    region: str
    size: int
    max_size: int
    ttl_seconds: float
    hits: int
    misses: int
    evictions: int
    expirations: int
    invalidations: int
    distinct_keys: int

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hit_ratio"] = round(self.hit_ratio, 4)
        return data


class _RegionTTLCache(TTLCache):
    """TTLCache that reports capacity evictions and TTL expirations."""

    def __init__(self, maxsize: int, ttl: float, timer: Callable[[], float]):
        super().__init__(maxsize=maxsize, ttl=ttl, timer=timer)
        self.evictions = 0
        self.expirations = 0

    def popitem(self):
        # Only called by cachetools when an insert would exceed maxsize.
        key, value = super().popitem()
        self.evictions += 1
        return key, value

    def expire(self, time=None):
        expired = super().expire(time)
        if expired:
            self.expirations += len(expired)
        return expired


class CacheStore:
    """Thread-safe TTL/LRU store for a single named region.

    Entries expire ``ttl_seconds`` after they were written and are never
    returned once expired, even though purging is lazy. When the region is
    full the least recently used entry is evicted. Keys are restricted to
    ``fixed_keys`` so the key space cannot grow with request volume.

    Every key carries a generation counter that ``invalidate`` bumps. A
    read-through loader captures the generation before it loads and passes it
    to ``put``; a put whose generation is stale is dropped, so a load racing
    a write can never repopulate the region with pre-write data.
    """

    def __init__(
        self,
        region: str,
        ttl_seconds: float,
        max_entries: int,
        fixed_keys: Iterable[str],
        *,
        timer: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.region = region
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.fixed_keys: FrozenSet[str] = frozenset(fixed_keys)
        self.metrics = metrics
        self.logger = get_logger("catalog.cache_store")

        self._cache = _RegionTTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=timer)
        self._lock = threading.RLock()
        self._generations: Dict[str, int] = {key: 0 for key in self.fixed_keys}
        self._keys_stored: Set[str] = set()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def _check_key(self, key: str) -> None:
        if key not in self.fixed_keys:
            raise CacheKeyError(self.region, key)

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key`` or None when absent or expired."""
        self._check_key(key)
        with self._lock:
            value = self._cache.get(key)
            if value is None:
                self._misses += 1
            else:
                self._hits += 1

        if self.metrics:
            metric = "cache_hits_total" if value is not None else "cache_misses_total"
            self.metrics.increment_counter(metric, region=self.region)
        return value

    def put(self, key: str, value: Any, generation: Optional[int] = None) -> bool:
        """Store ``value``; returns False when ``generation`` is stale."""
        self._check_key(key)
        if value is None:
            raise ValueError("None cannot be cached; absence is represented by a miss")

        with self._lock:
            if generation is not None and generation != self._generations[key]:
                self.logger.debug(
                    "Discarding stale cache fill",
                    region=self.region,
                    key=key,
                    loaded_generation=generation,
                    current_generation=self._generations[key],
                )
                return False

            evictions_before = self._cache.evictions
            self._cache[key] = value
            self._keys_stored.add(key)
            evicted = self._cache.evictions - evictions_before
            self._publish_size()

        if evicted and self.metrics:
            for _ in range(evicted):
                self.metrics.increment_counter("cache_evictions_total", region=self.region)
        return True

    def invalidate(self, key: str) -> bool:
        """Evict ``key``; returns True when an entry was present."""
        self._check_key(key)
        with self._lock:
            self._generations[key] += 1
            removed = self._cache.pop(key, None) is not None
            self._invalidations += 1
            self._publish_size()

        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", region=self.region)
        self.logger.info("Cache key invalidated", region=self.region, key=key, removed=removed)
        return removed

    def invalidate_all(self) -> int:
        """Evict every entry in the region; returns the number removed."""
        with self._lock:
            for key in self._generations:
                self._generations[key] += 1
            self._cache.expire()
            removed = 0
            # clear() would route through popitem and count as evictions
            for key in list(self._cache.keys()):
                if self._cache.pop(key, None) is not None:
                    removed += 1
            self._invalidations += 1
            self._publish_size()

        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", region=self.region)
        self.logger.info("Cache region cleared", region=self.region, removed=removed)
        return removed

    def generation(self, key: str) -> int:
        self._check_key(key)
        with self._lock:
            return self._generations[key]

    def stored_keys(self) -> FrozenSet[str]:
        """Every distinct key ever written to this region."""
        with self._lock:
            return frozenset(self._keys_stored)

    def stats(self) -> CacheStats:
        with self._lock:
            self._cache.expire()
            return CacheStats(
                region=self.region,
                size=len(self._cache),
                max_size=self.max_entries,
                ttl_seconds=self.ttl_seconds,
                hits=self._hits,
                misses=self._misses,
                evictions=self._cache.evictions,
                expirations=self._cache.expirations,
                invalidations=self._invalidations,
                distinct_keys=len(self._keys_stored),
            )

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def _publish_size(self) -> None:
        if self.metrics:
            self.metrics.set_gauge("cache_entries", len(self._cache), region=self.region)

"""
Read-through access to fixed-key cache regions.
"""

import threading
import time
from typing import Callable, Dict, Generic, Optional, TypeVar, TYPE_CHECKING

from shared.logging import get_logger
from .cache_store import CacheStats, CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


T = TypeVar("T")

PUBLIC_KEY = "public"


class SingleFlight:
    """Per-key locks so concurrent misses trigger a single load."""

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


def get_or_load(
    store: CacheStore,
    key: str,
    loader: Callable[[], T],
    *,
    single_flight: Optional[SingleFlight] = None,
    metrics: Optional["MetricsCollector"] = None,
) -> T:
    """Return the cached value for ``key``, loading and caching it on a miss.

    Loader exceptions propagate unchanged and leave the store untouched. A
    loaded value is handed back to the caller even when an invalidation
    raced the load, but it is only cached if the key's generation did not
    move while loading.
    """
    cached = store.get(key)
    if cached is not None:
        return cached

    if single_flight is None:
        return _load_and_store(store, key, loader, metrics)

    with single_flight.lock_for(key):
        # Another thread may have filled the entry while we waited.
        cached = store.get(key)
        if cached is not None:
            return cached
        return _load_and_store(store, key, loader, metrics)


def _load_and_store(
    store: CacheStore,
    key: str,
    loader: Callable[[], T],
    metrics: Optional["MetricsCollector"],
) -> T:
    logger = get_logger("catalog.read_through")
    generation = store.generation(key)
    start = time.perf_counter()
    try:
        value = loader()
    except Exception as exc:
        if metrics:
            metrics.increment_counter("cache_loads_total", region=store.region, result="error")
        logger.warning("Read-through load failed", region=store.region, key=key, error=str(exc))
        raise
    finally:
        if metrics:
            metrics.observe_histogram(
                "cache_load_duration_seconds", time.perf_counter() - start, region=store.region
            )

    if value is None:
        if metrics:
            metrics.increment_counter("cache_loads_total", region=store.region, result="empty")
        return value

    stored = store.put(key, value, generation=generation)
    if metrics:
        metrics.increment_counter(
            "cache_loads_total", region=store.region, result="stored" if stored else "stale"
        )
    logger.debug("Read-through load completed", region=store.region, key=key, cached=stored)
    return value


class FixedKeyCache(Generic[T]):
    """Typed handle on a region that only ever uses one fixed key."""

    def __init__(
        self,
        store: CacheStore,
        key: str = PUBLIC_KEY,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.store = store
        self.key = key
        self.metrics = metrics
        self._single_flight = SingleFlight()

    @property
    def region(self) -> str:
        return self.store.region

    def get(self) -> Optional[T]:
        return self.store.get(self.key)

    def put(self, value: T) -> bool:
        return self.store.put(self.key, value)

    def get_or_load(self, loader: Callable[[], T]) -> T:
        return get_or_load(
            self.store,
            self.key,
            loader,
            single_flight=self._single_flight,
            metrics=self.metrics,
        )

    def invalidate(self) -> bool:
        return self.store.invalidate(self.key)

    def stats(self) -> CacheStats:
        return self.store.stats()

"""
Unit tests for read-through cache access.
"""

import threading
import time

import pytest

from shared.errors import DataSourceError
from shared.test_helpers import FakeClock, RecordingMetrics
from service_catalog.app.caching.cache_store import CacheStore
from service_catalog.app.caching.read_through import FixedKeyCache, PUBLIC_KEY, get_or_load


class CountingLoader:
    """Loader that records how often it ran."""

    def __init__(self, *values, delay: float = 0.0):
        self.values = list(values)
        self.delay = delay
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            index = min(self.calls, len(self.values)) - 1
        if self.delay:
            time.sleep(self.delay)
        return self.values[index]


class TestReadThrough:
    """Test cases for get_or_load and FixedKeyCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def metrics(self):
        return RecordingMetrics()

    @pytest.fixture
    def store(self, clock):
        return CacheStore("categories", ttl_seconds=300, max_entries=10, fixed_keys={PUBLIC_KEY}, timer=clock)

    @pytest.fixture
    def cache(self, store, metrics):
        return FixedKeyCache(store, metrics=metrics)

    def test_loads_once_then_serves_from_cache(self, cache, metrics):
        """A miss loads and stores; later reads hit."""
        loader = CountingLoader(("dresses",))

        assert cache.get_or_load(loader) == ("dresses",)
        assert cache.get_or_load(loader) == ("dresses",)

        assert loader.calls == 1
        assert metrics.count("cache_loads_total", region="categories", result="stored") == 1

    def test_reload_after_ttl(self, cache, clock):
        """An expired entry is reloaded from the source."""
        loader = CountingLoader("v1", "v2")
        cache.get_or_load(loader)

        clock.advance(301)

        assert cache.get_or_load(loader) == "v2"
        assert loader.calls == 2

    def test_reload_after_invalidate(self, cache):
        loader = CountingLoader("v1", "v2")
        cache.get_or_load(loader)

        cache.invalidate()

        assert cache.get_or_load(loader) == "v2"

    def test_loader_failure_propagates_and_leaves_cache_untouched(self, cache, metrics):
        """Failures are never cached and do not disturb the prior state."""
        def failing():
            raise DataSourceError("database unavailable")

        with pytest.raises(DataSourceError):
            cache.get_or_load(failing)
        assert cache.get() is None
        assert metrics.count("cache_loads_total", region="categories", result="error") == 1

        cache.put("cached")
        cache.invalidate()
        generation = cache.store.generation(PUBLIC_KEY)
        with pytest.raises(DataSourceError):
            cache.get_or_load(failing)
        assert cache.store.generation(PUBLIC_KEY) == generation

    def test_none_result_returned_but_not_cached(self, cache, metrics):
        """Absence is not cached."""
        loader = CountingLoader(None, "later")

        assert cache.get_or_load(loader) is None
        assert cache.get() is None
        assert cache.get_or_load(loader) == "later"
        assert metrics.count("cache_loads_total", region="categories", result="empty") == 1

    def test_load_racing_invalidation_is_not_cached(self, store, metrics):
        """A value loaded across an invalidation is returned but dropped."""
        def loader():
            # A write lands while the load is in flight
            store.invalidate(PUBLIC_KEY)
            return "pre-write"

        assert get_or_load(store, PUBLIC_KEY, loader, metrics=metrics) == "pre-write"
        assert store.get(PUBLIC_KEY) is None
        assert metrics.count("cache_loads_total", region="categories", result="stale") == 1

    def test_concurrent_misses_load_once(self, cache):
        """Single-flight: concurrent misses share one load."""
        loader = CountingLoader(("dresses",), delay=0.05)
        start = threading.Barrier(8)
        results = []

        def worker():
            start.wait()
            results.append(cache.get_or_load(loader))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert loader.calls == 1
        assert results == [("dresses",)] * 8

    def test_load_duration_observed(self, cache, metrics):
        cache.get_or_load(CountingLoader("v1"))
        assert [name for name, _, _ in metrics.histograms] == ["cache_load_duration_seconds"]

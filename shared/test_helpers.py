"""
Test helper functions and factory methods for the Storefront Catalog service.
"""

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from shared.config import ServiceConfig, get_config


class FakeClock:
    """Controllable monotonic timer for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds


class FakeWallClock:
    """Controllable UTC wall clock for data-side timestamps.

    Does not move unless advanced, which makes same-millisecond writes easy
    to reproduce.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 23, 12, 0, 0, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, **delta: float) -> None:
        with self._lock:
            self._now += timedelta(**delta)


class RecordingMetrics:
    """Minimal metrics collector stub that records calls."""

    def __init__(self):
        self.counters: List[Tuple[str, Dict[str, Any]]] = []
        self.gauges: List[Tuple[str, float, Dict[str, Any]]] = []
        self.histograms: List[Tuple[str, float, Dict[str, Any]]] = []

    def increment_counter(self, metric_name: str, **labels):
        self.counters.append((metric_name, labels))

    def set_gauge(self, metric_name: str, value: float, **labels):
        self.gauges.append((metric_name, value, labels))

    def observe_histogram(self, metric_name: str, value: float, **labels):
        self.histograms.append((metric_name, value, labels))

    def count(self, metric_name: str, **labels) -> int:
        return sum(
            1 for name, recorded in self.counters
            if name == metric_name and all(recorded.get(k) == v for k, v in labels.items())
        )


class CatalogDataFactory:
    """Factory for creating catalog test data."""

    @staticmethod
    def variant(sku: str, price: str, **fields: Any) -> Dict[str, Any]:
        """Variant kwargs for ``CatalogStore.insert_product``."""
        data: Dict[str, Any] = {"sku": sku, "price": Decimal(price), "stock_quantity": 5}
        data.update(fields)
        return data

    @classmethod
    def populate(cls, store) -> Dict[str, Any]:
        """Insert a small catalog and return the created records by name."""
        with store.transaction():
            shoes = store.insert_category("Shoes", "shoes")
            bags = store.insert_category("Bags", "bags")
            hidden = store.insert_category("Hidden", "hidden", active=False)

            sneaker = store.insert_product(
                shoes.id,
                "Canvas Sneaker",
                "canvas-sneaker",
                [cls.variant("SN-40", "30.00", size="40"), cls.variant("SN-41", "32.00", size="41")],
                description="Lightweight everyday sneaker.",
            )
            boot = store.insert_product(
                shoes.id,
                "Leather Boot",
                "leather-boot",
                [cls.variant("LB-40", "80.00", size="40")],
                description="Ankle boot in full-grain leather.",
                original_price=Decimal("95.00"),
            )
            tote = store.insert_product(
                bags.id,
                "Market Tote",
                "market-tote",
                [
                    cls.variant("MT-1", "20.00", color="Sand"),
                    cls.variant("MT-2", "5.00", color="Black", active=False),
                ],
            )
            retired = store.insert_product(
                bags.id,
                "Retired Clutch",
                "retired-clutch",
                [cls.variant("RC-1", "15.00")],
                active=False,
            )
            orphan = store.insert_product(
                hidden.id,
                "Hidden Scarf",
                "hidden-scarf",
                [cls.variant("HS-1", "12.00")],
            )

        return {
            "shoes": shoes,
            "bags": bags,
            "hidden": hidden,
            "sneaker": sneaker,
            "boot": boot,
            "tote": tote,
            "retired": retired,
            "orphan": orphan,
        }


def make_test_config(**overrides: Any) -> ServiceConfig:
    """Catalog configuration isolated from the environment's demo seeding."""
    settings: Dict[str, Any] = {"env": "test", "log_level": "debug", "seed_demo_data": False}
    settings.update(overrides)
    return get_config("catalog", 8080, **settings)

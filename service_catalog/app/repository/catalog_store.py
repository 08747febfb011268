"""
In-memory catalog data source.

Stands in for the relational store: rows live in dicts guarded by a single
re-entrant lock. ``transaction()`` holds that lock for the duration of a
unit of work, so callers can couple a mutation with its cache invalidation
before the new state becomes visible to readers.
"""

import copy
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Optional

from shared.logging import get_logger
from ..domain.models import CategoryRecord, HeroRecord, ProductRecord, VariantRecord

HERO_ID = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogStore:
    """Thread-safe in-memory store for categories, products and hero settings."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.logger = get_logger("catalog.repository")
        self._clock = clock
        self._lock = threading.RLock()
        self._categories: Dict[int, CategoryRecord] = {}
        self._products: Dict[int, ProductRecord] = {}
        self._hero: Optional[HeroRecord] = None
        self._next_ids = {"category": 1, "product": 1, "variant": 1}
        self._last_stamp: Optional[datetime] = None

    @contextmanager
    def transaction(self) -> Iterator["CatalogStore"]:
        """Hold the store lock; changes become visible to others on exit."""
        with self._lock:
            yield self

    def stamp(self) -> datetime:
        """Millisecond-precision update timestamp, strictly increasing."""
        with self._lock:
            now = self._clock().astimezone(timezone.utc)
            now = now.replace(microsecond=(now.microsecond // 1000) * 1000)
            if self._last_stamp is not None and now <= self._last_stamp:
                now = self._last_stamp + timedelta(milliseconds=1)
            self._last_stamp = now
            return now

    def _next_id(self, kind: str) -> int:
        value = self._next_ids[kind]
        self._next_ids[kind] = value + 1
        return value

    def ping(self) -> bool:
        with self._lock:
            return True

    # Categories

    def list_active_categories(self) -> List[CategoryRecord]:
        with self._lock:
            return [
                copy.deepcopy(c)
                for c in sorted(self._categories.values(), key=lambda c: c.id)
                if c.active
            ]

    def get_category(self, category_id: int) -> Optional[CategoryRecord]:
        with self._lock:
            record = self._categories.get(category_id)
            return copy.deepcopy(record) if record else None

    def find_category_by_name(self, name: str) -> Optional[CategoryRecord]:
        """Case-insensitive lookup by name."""
        wanted = name.strip().casefold()
        with self._lock:
            for record in self._categories.values():
                if record.name.casefold() == wanted:
                    return copy.deepcopy(record)
        return None

    def find_category_by_slug(self, slug: str) -> Optional[CategoryRecord]:
        with self._lock:
            for record in self._categories.values():
                if record.slug == slug:
                    return copy.deepcopy(record)
        return None

    def insert_category(self, name: str, slug: str, active: bool = True) -> CategoryRecord:
        with self._lock:
            now = self.stamp()
            record = CategoryRecord(
                id=self._next_id("category"),
                name=name,
                slug=slug,
                active=active,
                created_at=now,
                updated_at=now,
            )
            self._categories[record.id] = record
            return copy.deepcopy(record)

    def save_category(self, record: CategoryRecord) -> CategoryRecord:
        with self._lock:
            stored = copy.deepcopy(record)
            stored.updated_at = self.stamp()
            self._categories[stored.id] = stored
            return copy.deepcopy(stored)

    def delete_category(self, category_id: int) -> bool:
        with self._lock:
            return self._categories.pop(category_id, None) is not None

    def count_products_in_category(self, category_id: int) -> int:
        with self._lock:
            return sum(
                1 for p in self._products.values()
                if p.category_id == category_id and not p.deleted
            )

    # Products

    def list_products(self) -> List[ProductRecord]:
        with self._lock:
            return [copy.deepcopy(p) for p in self._products.values()]

    def find_product_by_slug(self, slug: str) -> Optional[ProductRecord]:
        with self._lock:
            for record in self._products.values():
                if record.slug == slug:
                    return copy.deepcopy(record)
        return None

    def get_product(self, product_id: int) -> Optional[ProductRecord]:
        with self._lock:
            record = self._products.get(product_id)
            return copy.deepcopy(record) if record else None

    def insert_product(
        self,
        category_id: int,
        name: str,
        slug: str,
        variants: List[Dict[str, object]],
        **fields,
    ) -> ProductRecord:
        with self._lock:
            now = self.stamp()
            record = ProductRecord(
                id=self._next_id("product"),
                category_id=category_id,
                name=name,
                slug=slug,
                variants=[
                    VariantRecord(id=self._next_id("variant"), **variant)  # type: ignore[arg-type]
                    for variant in variants
                ],
                created_at=now,
                updated_at=now,
                **fields,
            )
            self._products[record.id] = record
            return copy.deepcopy(record)

    def save_product(self, record: ProductRecord) -> ProductRecord:
        with self._lock:
            stored = copy.deepcopy(record)
            stored.updated_at = self.stamp()
            self._products[stored.id] = stored
            return copy.deepcopy(stored)

    # Hero

    def get_hero(self) -> Optional[HeroRecord]:
        with self._lock:
            return copy.deepcopy(self._hero) if self._hero else None

    def save_hero(self, record: HeroRecord) -> HeroRecord:
        with self._lock:
            stored = copy.deepcopy(record)
            stored.updated_at = self.stamp()
            self._hero = stored
            return copy.deepcopy(stored)


def seed_demo_catalog(store: CatalogStore) -> None:
    """Populate an empty store with a small storefront catalog."""
    with store.transaction():
        dresses = store.insert_category("Dresses", "dresses")
        abayas = store.insert_category("Abayas", "abayas")
        store.insert_category("Accessories", "accessories")
        store.insert_category("Archive", "archive", active=False)

        store.insert_product(
            dresses.id,
            "Rose Satin Dress",
            "rose-satin-dress",
            [
                {"sku": "RSD-S-ROSE", "price": Decimal("45.00"), "color": "Rose", "size": "S", "stock_quantity": 4},
                {"sku": "RSD-M-ROSE", "price": Decimal("45.00"), "color": "Rose", "size": "M", "stock_quantity": 2},
            ],
            description="Flowing satin midi dress.",
            primary_image_url="/uploads/products/rose-satin-dress.jpg",
            original_price=Decimal("60.00"),
        )
        store.insert_product(
            abayas.id,
            "Classic Black Abaya",
            "classic-black-abaya",
            [
                {"sku": "CBA-52", "price": Decimal("38.50"), "color": "Black", "size": "52", "stock_quantity": 7},
                {"sku": "CBA-54", "price": Decimal("39.50"), "color": "Black", "size": "54", "stock_quantity": 0},
            ],
            description="Everyday crepe abaya with a relaxed cut.",
            primary_image_url="/uploads/products/classic-black-abaya.jpg",
        )

        store.save_hero(HeroRecord(
            id=HERO_ID,
            badge_text="New collection",
            title_line1="Modern elegance",
            title_line2="with a distinctive touch",
            description="Fast delivery, try before you pay, cash on delivery.",
            cta_text="Shop now",
            cta_link="/products",
            hero_image_url="/uploads/hero/hero.jpg",
        ))

    store.logger.info("Seeded demo catalog")

"""
Product detail and search.

Neither path is cached in-process: detail responses are revalidated through
their ETag and search results vary with the query, so only HTTP caching
applies to them.
"""

import math
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger
from ..domain.models import ProductDetailDto, ProductPage, ProductRecord, ProductSummaryDto
from ..repository.catalog_store import CatalogStore

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_SORT = "createdAt,desc"

PRODUCT_FIELDS = frozenset({
    "name",
    "description",
    "primary_image_url",
    "original_price",
    "active",
    "deleted",
})

_SORT_KEYS: Dict[str, Callable[[ProductRecord], Any]] = {
    "createdAt": lambda p: p.created_at,
    "name": lambda p: p.name.casefold(),
    "price": lambda p: p.min_variant_price() if p.min_variant_price() is not None else Decimal("Infinity"),
}


def parse_sort(sort: Optional[str]) -> Tuple[str, bool]:
    """Parse ``field[,asc|desc]`` into (field, descending)."""
    field_name, _, direction = (sort or DEFAULT_SORT).partition(",")
    field_name = field_name.strip()
    direction = direction.strip().lower() or "asc"
    if field_name not in _SORT_KEYS:
        raise ValidationError("Unsupported sort field", {"sort": field_name, "allowed": sorted(_SORT_KEYS)})
    if direction not in ("asc", "desc"):
        raise ValidationError("Unsupported sort direction", {"direction": direction})
    return field_name, direction == "desc"


class ProductService:
    """Public product lookups."""

    def __init__(self, store: CatalogStore):
        self.store = store
        self.logger = get_logger("catalog.products")

    def get_by_slug(self, slug: str) -> ProductDetailDto:
        with self.store.transaction():
            product = self.store.find_product_by_slug(slug)
            category = self.store.get_category(product.category_id) if product else None

        if product is None or not product.active or product.deleted:
            raise NotFoundError("Product", slug)
        if category is None or not category.active:
            raise NotFoundError("Product", slug)
        return ProductDetailDto.from_record(product, category)

    def search(
        self,
        q: Optional[str] = None,
        category_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        sort: Optional[str] = None,
    ) -> ProductPage:
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError(
                "minPrice must not exceed maxPrice",
                {"minPrice": str(min_price), "maxPrice": str(max_price)},
            )
        if page < 0:
            raise ValidationError("page must not be negative", {"page": page})
        size = max(1, min(size, MAX_PAGE_SIZE))
        sort_field, descending = parse_sort(sort)

        with self.store.transaction():
            active_categories = {c.id for c in self.store.list_active_categories()}
            products = self.store.list_products()

        needle = q.strip().casefold() if q and q.strip() else None
        matches: List[ProductRecord] = []
        for product in products:
            if not product.active or product.deleted or product.category_id not in active_categories:
                continue
            if category_id is not None and product.category_id != category_id:
                continue
            if needle and not self._matches_text(product, needle):
                continue
            price = product.min_variant_price()
            if min_price is not None and (price is None or price < min_price):
                continue
            if max_price is not None and (price is None or price > max_price):
                continue
            matches.append(product)

        matches.sort(key=lambda p: p.id)
        matches.sort(key=_SORT_KEYS[sort_field], reverse=descending)

        total = len(matches)
        start = page * size
        content = tuple(ProductSummaryDto.from_record(p) for p in matches[start:start + size])
        total_pages = math.ceil(total / size) if total else 0

        self.logger.debug("Product search", q=q, category_id=category_id, total=total, page=page)
        return ProductPage(
            content=content,
            total_elements=total,
            total_pages=total_pages,
            number=page,
            size=size,
            number_of_elements=len(content),
            first=page == 0,
            last=page >= total_pages - 1,
            empty=not content,
        )

    @staticmethod
    def _matches_text(product: ProductRecord, needle: str) -> bool:
        if needle in product.name.casefold():
            return True
        return bool(product.description) and needle in product.description.casefold()

    def update_product(self, product_id: int, **changes: Any) -> ProductDetailDto:
        """Apply partial changes; the new timestamp moves the product ETag."""
        unknown = sorted(set(changes) - PRODUCT_FIELDS)
        if unknown:
            raise ValidationError("Unknown product fields", {"fields": unknown})

        with self.store.transaction():
            record = self.store.get_product(product_id)
            if record is None:
                raise NotFoundError("Product", product_id)
            for field_name, value in changes.items():
                setattr(record, field_name, value)
            saved = self.store.save_product(record)
            category = self.store.get_category(saved.category_id)

        if category is None:
            raise NotFoundError("Category", saved.category_id)
        self.logger.info("Product updated", product_id=product_id, fields=sorted(changes))
        return ProductDetailDto.from_record(saved, category)

"""
Category reads (cached) and writes (with invalidation).
"""

import re
from typing import Optional, Tuple

from shared.errors import ConflictError, NotFoundError, ValidationError
from shared.logging import get_logger
from ..caching.registry import CacheRegistry
from ..domain.models import CategoryDto
from ..repository.catalog_store import CatalogStore

_SLUG_SEPARATORS = re.compile(r"[\W_]+", re.UNICODE)


def slugify(value: str) -> str:
    slug = _SLUG_SEPARATORS.sub("-", value.strip().lower()).strip("-")
    if not slug:
        raise ValidationError("Cannot derive a slug", {"value": value})
    return slug


class CategoryService:
    """Public category listing backed by the ``categories`` cache region."""

    def __init__(self, store: CatalogStore, cache: CacheRegistry):
        self.store = store
        self.cache = cache
        self.logger = get_logger("catalog.categories")

    def list_public(self) -> Tuple[CategoryDto, ...]:
        """Active categories ordered by id."""
        return self.cache.categories.get_or_load(self._load_public)

    def _load_public(self) -> Tuple[CategoryDto, ...]:
        records = self.store.list_active_categories()
        self.logger.debug("Loaded public categories", count=len(records))
        return tuple(CategoryDto.from_record(r) for r in records)

    def create_category(self, name: str, slug: Optional[str] = None, active: bool = True) -> CategoryDto:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        slug = slugify(slug or name)

        with self.store.transaction():
            self._ensure_unique(name, slug)
            record = self.store.insert_category(name, slug, active)
            self.cache.categories.invalidate()

        self.logger.info("Category created", category_id=record.id, slug=record.slug)
        return CategoryDto.from_record(record)

    def update_category(
        self,
        category_id: int,
        *,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> CategoryDto:
        with self.store.transaction():
            record = self.store.get_category(category_id)
            if record is None:
                raise NotFoundError("Category", category_id)

            if name is not None:
                name = name.strip()
                if not name:
                    raise ValidationError("Category name is required")
                record.name = name
            if slug is not None:
                record.slug = slugify(slug)
            if active is not None:
                record.active = active

            self._ensure_unique(record.name, record.slug, exclude_id=category_id)
            saved = self.store.save_category(record)
            self.cache.categories.invalidate()

        self.logger.info("Category updated", category_id=category_id)
        return CategoryDto.from_record(saved)

    def delete_category(self, category_id: int) -> None:
        with self.store.transaction():
            if self.store.get_category(category_id) is None:
                raise NotFoundError("Category", category_id)
            in_use = self.store.count_products_in_category(category_id)
            if in_use:
                raise ConflictError(
                    "Category still has products",
                    {"category_id": category_id, "products": in_use},
                )
            self.store.delete_category(category_id)
            self.cache.categories.invalidate()

        self.logger.info("Category deleted", category_id=category_id)

    def _ensure_unique(self, name: str, slug: str, exclude_id: Optional[int] = None) -> None:
        by_name = self.store.find_category_by_name(name)
        if by_name is not None and by_name.id != exclude_id:
            raise ConflictError("Category name already exists", {"name": name})
        by_slug = self.store.find_category_by_slug(slug)
        if by_slug is not None and by_slug.id != exclude_id:
            raise ConflictError("Category slug already exists", {"slug": slug})

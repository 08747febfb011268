"""
Catalog service for the Storefront public read API.
"""

import time
from decimal import Decimal
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import CatalogException

from .caching import CacheRegion, CacheRegistry
from .domain.conditional import (
    CATEGORIES_POLICY,
    HERO_POLICY,
    PRODUCT_DETAIL_POLICY,
    PRODUCT_SEARCH_POLICY,
    cacheable_response,
    conditional_response,
)
from .domain.etag import category_list_etag, hero_etag, product_etag
from .repository import CatalogStore, seed_demo_catalog
from .services import CategoryService, HeroSettingsService, ProductService
from .services.product_service import DEFAULT_PAGE_SIZE


class CatalogService(BaseService):
    """Catalog service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional[CatalogStore] = None,
        cache_timer: Callable[[], float] = time.monotonic,
    ):
        super().__init__("catalog", 8080, config)

        if store is None:
            store = CatalogStore()
            if self.config.seed_demo_data:
                seed_demo_catalog(store)
        self.store = store

        self.cache = CacheRegistry.from_config(self.config, timer=cache_timer, metrics=self.metrics)
        self.categories = CategoryService(self.store, self.cache)
        self.hero = HeroSettingsService(self.store, self.cache)
        self.products = ProductService(self.store)

        self._setup_catalog_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.catalog_service = self

    def _setup_catalog_routes(self):
        """Set up public catalog routes."""
        router = APIRouter(prefix=self.config.api_prefix)

        @router.get("/categories")
        def list_categories(request: Request):
            """Active categories, revalidated through a collection ETag."""
            categories = self.categories.list_public()
            return conditional_response(
                request,
                [c.to_json() for c in categories],
                category_list_etag(categories),
                CATEGORIES_POLICY,
                resource="categories",
                metrics=self.metrics,
            )

        @router.get("/products/{slug}")
        def get_product(request: Request, slug: str):
            """Product detail by slug."""
            product = self.products.get_by_slug(slug)
            return conditional_response(
                request,
                product.to_json(),
                product_etag(product),
                PRODUCT_DETAIL_POLICY,
                resource="product",
                metrics=self.metrics,
            )

        @router.get("/products")
        def search_products(
            q: Optional[str] = Query(None),
            category_id: Optional[int] = Query(None, alias="categoryId"),
            min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
            max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
            page: int = Query(0, ge=0),
            size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
            sort: Optional[str] = Query(None),
        ):
            """Filtered, paginated product search."""
            result = self.products.search(
                q=q,
                category_id=category_id,
                min_price=min_price,
                max_price=max_price,
                page=page,
                size=size,
                sort=sort,
            )
            return cacheable_response(result.to_json(), PRODUCT_SEARCH_POLICY)

        @router.get("/hero")
        def get_hero(request: Request):
            """Hero banner settings, or built-in defaults when none are stored."""
            hero = self.hero.get_public_hero()
            return conditional_response(
                request,
                hero.to_json(),
                hero_etag(hero),
                HERO_POLICY,
                resource="hero",
                metrics=self.metrics,
            )

        self.app.include_router(router)

        @self.app.get("/internal/cache/stats")
        def cache_stats():
            """Per-region cache statistics."""
            return {"service": self.service_name, "regions": self.cache.stats()}

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check catalog dependencies."""
        dependencies = {}

        try:
            dependencies["data_source"] = "ok" if self.store.ping() else "error"
        except CatalogException as e:
            self.logger.warning("Data source check failed", error=e.message)
            dependencies["data_source"] = "error"

        dependencies["cache_registry"] = "ok" if len(self.cache.stats()) == len(CacheRegion) else "error"
        return dependencies


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = CatalogService(config)
    return service.app


if __name__ == "__main__":
    service = CatalogService()
    service.run()

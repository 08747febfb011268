"""
Catalog use cases.
"""

from .category_service import CategoryService
from .hero_service import HeroSettingsService
from .product_service import ProductService

__all__ = ["CategoryService", "HeroSettingsService", "ProductService"]

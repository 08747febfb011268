"""
Catalog data source.
"""

from .catalog_store import CatalogStore, HERO_ID, seed_demo_catalog

__all__ = ["CatalogStore", "HERO_ID", "seed_demo_catalog"]

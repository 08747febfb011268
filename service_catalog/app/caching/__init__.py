"""
Catalog caching package.

Fixed-key, TTL- and size-bounded regions for public read models. Reads go
through ``FixedKeyCache.get_or_load``; every write path invalidates its
region explicitly.
"""

from .cache_store import CacheStats, CacheStore
from .read_through import FixedKeyCache, PUBLIC_KEY, get_or_load
from .registry import CacheRegion, CacheRegistry, RegionPolicy, region_policies

__all__ = [
    "CacheStats",
    "CacheStore",
    "FixedKeyCache",
    "PUBLIC_KEY",
    "get_or_load",
    "CacheRegion",
    "CacheRegistry",
    "RegionPolicy",
    "region_policies",
]

"""
Registry of the catalog's named cache regions.

| Region      | TTL (default) | Max size | Key      | Invalidated by                |
|-------------|---------------|----------|----------|-------------------------------|
| categories  | 5 min         | 10       | "public" | create/update/delete category |
| hero        | 5 min         | 10       | "public" | update hero                   |

Only public, user-independent snapshots are cached, always under the fixed
key, so region cardinality stays at one entry.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union, TYPE_CHECKING

from shared.errors import CacheConfigurationError, UnknownCacheRegionError
from shared.logging import get_logger
from .cache_store import CacheStore
from .read_through import FixedKeyCache, PUBLIC_KEY

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.config import BaseConfig
    from shared.metrics import MetricsCollector
    from ..domain.models import CategoryDto, HeroSettingsDto


class CacheRegion(str, Enum):
    """The closed set of cache regions."""
    CATEGORIES = "categories"
    HERO = "hero"


FIXED_KEYS = frozenset({PUBLIC_KEY})


@dataclass(frozen=True)
class RegionPolicy:
    """TTL and capacity for a region, fixed for the process lifetime."""
    ttl_seconds: float
    max_entries: int


def region_policies(config: "BaseConfig") -> Dict[CacheRegion, RegionPolicy]:
    """Build region policies from service configuration."""
    return {
        CacheRegion.CATEGORIES: RegionPolicy(
            ttl_seconds=config.cache_categories_ttl_minutes * 60,
            max_entries=config.cache_categories_max_entries,
        ),
        CacheRegion.HERO: RegionPolicy(
            ttl_seconds=config.cache_hero_ttl_minutes * 60,
            max_entries=config.cache_hero_max_entries,
        ),
    }


def _coerce_region(region: Union[CacheRegion, str]) -> CacheRegion:
    try:
        return CacheRegion(region)
    except ValueError:
        raise UnknownCacheRegionError(region) from None


class CacheRegistry:
    """Owns one CacheStore per declared region.

    Construction validates the full region set and every policy, so a typo or
    an ad-hoc region fails at startup rather than on a request.
    """

    def __init__(
        self,
        policies: Mapping[Union[CacheRegion, str], RegionPolicy],
        *,
        timer: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.logger = get_logger("catalog.cache_registry")
        self._policies = self._validate(policies)
        self._stores: Dict[CacheRegion, CacheStore] = {
            region: CacheStore(
                region.value,
                ttl_seconds=policy.ttl_seconds,
                max_entries=policy.max_entries,
                fixed_keys=FIXED_KEYS,
                timer=timer,
                metrics=metrics,
            )
            for region, policy in self._policies.items()
        }
        self.categories: "FixedKeyCache[Tuple[CategoryDto, ...]]" = FixedKeyCache(
            self._stores[CacheRegion.CATEGORIES], metrics=metrics
        )
        self.hero: "FixedKeyCache[HeroSettingsDto]" = FixedKeyCache(
            self._stores[CacheRegion.HERO], metrics=metrics
        )

        self.logger.info(
            "Cache registry initialized",
            regions={
                region.value: {"ttl_seconds": p.ttl_seconds, "max_entries": p.max_entries}
                for region, p in self._policies.items()
            },
        )

    @classmethod
    def from_config(
        cls,
        config: "BaseConfig",
        *,
        timer: Callable[[], float] = time.monotonic,
        metrics: Optional["MetricsCollector"] = None,
    ) -> "CacheRegistry":
        return cls(region_policies(config), timer=timer, metrics=metrics)

    @staticmethod
    def _validate(policies: Mapping[Union[CacheRegion, str], RegionPolicy]) -> Dict[CacheRegion, RegionPolicy]:
        validated: Dict[CacheRegion, RegionPolicy] = {}
        for name, policy in policies.items():
            try:
                region = CacheRegion(name)
            except ValueError:
                raise CacheConfigurationError(
                    f"Undeclared cache region {name!r}",
                    {"region": str(name), "allowed": [r.value for r in CacheRegion]},
                ) from None
            if region in validated:
                raise CacheConfigurationError(
                    f"Cache region {region.value!r} declared more than once",
                    {"region": region.value},
                )
            if policy.ttl_seconds <= 0:
                raise CacheConfigurationError(
                    f"TTL for region {region.value!r} must be positive",
                    {"region": region.value, "ttl_seconds": policy.ttl_seconds},
                )
            if policy.max_entries < len(FIXED_KEYS):
                raise CacheConfigurationError(
                    f"Region {region.value!r} cannot hold its fixed keys",
                    {"region": region.value, "max_entries": policy.max_entries},
                )
            validated[region] = policy

        missing = [region.value for region in CacheRegion if region not in validated]
        if missing:
            raise CacheConfigurationError("Cache regions missing a policy", {"missing": missing})
        return validated

    def store(self, region: Union[CacheRegion, str]) -> CacheStore:
        return self._stores[_coerce_region(region)]

    def policy(self, region: Union[CacheRegion, str]) -> RegionPolicy:
        return self._policies[_coerce_region(region)]

    def get(self, region: Union[CacheRegion, str], key: str) -> Optional[Any]:
        return self.store(region).get(key)

    def put(self, region: Union[CacheRegion, str], key: str, value: Any) -> bool:
        return self.store(region).put(key, value)

    def invalidate(self, region: Union[CacheRegion, str], key: str) -> bool:
        return self.store(region).invalidate(key)

    def invalidate_all(self, region: Union[CacheRegion, str]) -> int:
        return self.store(region).invalidate_all()

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return {region.value: store.stats().to_dict() for region, store in self._stores.items()}

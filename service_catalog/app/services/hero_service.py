"""
Hero banner settings.
"""

from typing import Any

from shared.errors import ValidationError
from shared.logging import get_logger
from ..caching.registry import CacheRegistry
from ..domain.models import DEFAULT_HERO, HERO_FIELDS, HeroRecord, HeroSettingsDto
from ..repository.catalog_store import CatalogStore, HERO_ID


class HeroSettingsService:
    """Public hero read backed by the ``hero`` cache region."""

    def __init__(self, store: CatalogStore, cache: CacheRegistry):
        self.store = store
        self.cache = cache
        self.logger = get_logger("catalog.hero")

    def get_public_hero(self) -> HeroSettingsDto:
        return self.cache.hero.get_or_load(self._load_public)

    def _load_public(self) -> HeroSettingsDto:
        record = self.store.get_hero()
        if record is None:
            return DEFAULT_HERO
        return HeroSettingsDto.from_record(record)

    def update_hero(self, **changes: Any) -> HeroSettingsDto:
        """Apply partial changes; creates the settings row on first write."""
        unknown = sorted(set(changes) - HERO_FIELDS)
        if unknown:
            raise ValidationError("Unknown hero fields", {"fields": unknown})

        with self.store.transaction():
            record = self.store.get_hero() or HeroRecord(id=HERO_ID)
            for field_name, value in changes.items():
                setattr(record, field_name, value)
            saved = self.store.save_hero(record)
            self.cache.hero.invalidate()

        self.logger.info("Hero settings updated", fields=sorted(changes))
        return HeroSettingsDto.from_record(saved)

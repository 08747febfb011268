"""
ETag derivation for public read models.

Validators are built from data-side timestamps so they survive restarts and
agree across processes:

- collection:  ``"c{count}-{maxUpdatedAtMs}"``  e.g. ``"c3-1706012345678"``
- product:     ``"p{id}-{updatedAtMs}"``        e.g. ``"p42-1706012345678"``
               (latest of the product and its embedded category)
- hero:        ``"h{id}-{updatedAtMs}"``

A single resource without a timestamp falls back to a SHA-256 over its
canonical JSON, never to object identity.
"""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from .models import CategoryDto, HeroSettingsDto, ProductDetailDto, ReadModel

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
CONTENT_HASH_LENGTH = 16


def epoch_millis(value: datetime) -> int:
    """Exact epoch milliseconds (naive datetimes are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def quote(opaque: str) -> str:
    return f'"{opaque}"'


def content_hash(model: ReadModel) -> str:
    """Deterministic digest of a model's serialized content."""
    canonical = json.dumps(model.to_json(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:CONTENT_HASH_LENGTH]


def _single_resource_etag(prefix: str, identifier: Optional[int], updated_at: Optional[datetime], model: ReadModel) -> str:
    if updated_at is None or identifier is None:
        return quote(f"{prefix}-{content_hash(model)}")
    return quote(f"{prefix}{identifier}-{epoch_millis(updated_at)}")


def category_list_etag(categories: Iterable[CategoryDto]) -> str:
    """Changes on add/remove (count) and on any update (max timestamp)."""
    items: List[CategoryDto] = list(categories)
    max_updated = max(
        (epoch_millis(c.updated_at) for c in items if c.updated_at is not None),
        default=0,
    )
    return quote(f"c{len(items)}-{max_updated}")


def product_etag(product: ProductDetailDto) -> str:
    """Tracks the product row and the category embedded in its body."""
    stamps = [t for t in (product.updated_at, product.category.updated_at) if t is not None]
    latest = max(stamps, key=epoch_millis) if stamps else None
    return _single_resource_etag("p", product.id, latest, product)


def hero_etag(hero: HeroSettingsDto) -> str:
    return _single_resource_etag("h", hero.id, hero.updated_at, hero)


def parse_if_none_match(header: Optional[str]) -> List[str]:
    """Split an If-None-Match header into opaque tags (weakness stripped)."""
    if not header:
        return []
    tags = []
    for part in header.split(","):
        tag = part.strip()
        if not tag:
            continue
        if tag.startswith("W/"):
            tag = tag[2:]
        tags.append(tag)
    return tags


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """Weak comparison of a request's If-None-Match against the current ETag."""
    current = etag[2:] if etag.startswith("W/") else etag
    for tag in parse_if_none_match(if_none_match):
        if tag == "*" or tag == current:
            return True
        # Some clients drop the quotes
        if quote(tag) == current:
            return True
    return False

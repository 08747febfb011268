"""
Catalog entities (data-source rows) and public read models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Prices stay Decimal internally but render as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# --- Data-source entities -------------------------------------------------


@dataclass
class CategoryRecord:
    """Category row."""
    id: int
    name: str
    slug: str
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class VariantRecord:
    """Product variant row; each variant has exactly one color and one size."""
    id: int
    sku: str
    price: Decimal
    color: Optional[str] = None
    size: Optional[str] = None
    stock_quantity: int = 0
    active: bool = True
    deleted: bool = False


@dataclass
class ProductRecord:
    """Product row."""
    id: int
    category_id: int
    name: str
    slug: str
    description: Optional[str] = None
    primary_image_url: Optional[str] = None
    original_price: Optional[Decimal] = None
    active: bool = True
    deleted: bool = False
    variants: List[VariantRecord] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def live_variants(self) -> List[VariantRecord]:
        return [v for v in self.variants if v.active and not v.deleted]

    def min_variant_price(self) -> Optional[Decimal]:
        prices = [v.price for v in self.live_variants()]
        return min(prices) if prices else None


@dataclass
class HeroRecord:
    """Singleton hero banner settings row."""
    id: int
    badge_text: Optional[str] = None
    title_line1: Optional[str] = None
    title_line2: Optional[str] = None
    description: Optional[str] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None
    hero_image_url: Optional[str] = None
    updated_at: Optional[datetime] = None


HERO_FIELDS = frozenset({
    "badge_text",
    "title_line1",
    "title_line2",
    "description",
    "cta_text",
    "cta_link",
    "hero_image_url",
})


# --- Read models -----------------------------------------------------------


class ReadModel(BaseModel):
    """Immutable snapshot serialized with camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CategoryDto(ReadModel):
    id: int
    name: str
    slug: str
    active: bool
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: CategoryRecord) -> "CategoryDto":
        return cls(
            id=record.id,
            name=record.name,
            slug=record.slug,
            active=record.active,
            updated_at=record.updated_at,
        )


class CategoryRef(ReadModel):
    id: int
    name: str
    slug: str
    # Feeds the product validator only; not part of the response body
    updated_at: Optional[datetime] = Field(default=None, exclude=True)


class VariantDto(ReadModel):
    id: int
    sku: str
    color: Optional[str] = None
    size: Optional[str] = None
    price: Money
    stock_quantity: int
    active: bool

    @classmethod
    def from_record(cls, record: VariantRecord) -> "VariantDto":
        return cls(
            id=record.id,
            sku=record.sku,
            color=record.color,
            size=record.size,
            price=record.price,
            stock_quantity=record.stock_quantity,
            active=record.active,
        )


class ProductDetailDto(ReadModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    category: CategoryRef
    primary_image_url: Optional[str] = None
    min_variant_price: Optional[Money] = None
    original_price: Optional[Money] = None
    variants: Tuple[VariantDto, ...] = ()
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: ProductRecord, category: CategoryRecord) -> "ProductDetailDto":
        return cls(
            id=record.id,
            name=record.name,
            slug=record.slug,
            description=record.description,
            category=CategoryRef(
                id=category.id,
                name=category.name,
                slug=category.slug,
                updated_at=category.updated_at,
            ),
            primary_image_url=record.primary_image_url,
            min_variant_price=record.min_variant_price(),
            original_price=record.original_price,
            variants=tuple(VariantDto.from_record(v) for v in record.live_variants()),
            updated_at=record.updated_at,
        )


class ProductSummaryDto(ReadModel):
    id: int
    name: str
    slug: str
    category_id: int
    primary_image_url: Optional[str] = None
    min_variant_price: Optional[Money] = None
    original_price: Optional[Money] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductSummaryDto":
        return cls(
            id=record.id,
            name=record.name,
            slug=record.slug,
            category_id=record.category_id,
            primary_image_url=record.primary_image_url,
            min_variant_price=record.min_variant_price(),
            original_price=record.original_price,
            updated_at=record.updated_at,
        )


class ProductPage(ReadModel):
    """One page of search results, shaped like a Spring Data page."""
    content: Tuple[ProductSummaryDto, ...]
    total_elements: int
    total_pages: int
    number: int
    size: int
    number_of_elements: int
    first: bool
    last: bool
    empty: bool


class HeroSettingsDto(ReadModel):
    id: Optional[int] = None
    badge_text: Optional[str] = None
    title_line1: Optional[str] = None
    title_line2: Optional[str] = None
    description: Optional[str] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None
    hero_image_url: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: HeroRecord) -> "HeroSettingsDto":
        return cls(
            id=record.id,
            badge_text=record.badge_text,
            title_line1=record.title_line1,
            title_line2=record.title_line2,
            description=record.description,
            cta_text=record.cta_text,
            cta_link=record.cta_link,
            hero_image_url=record.hero_image_url,
            updated_at=record.updated_at,
        )


DEFAULT_HERO = HeroSettingsDto(
    badge_text="New collection",
    title_line1="Modern elegance",
    title_line2="with a distinctive touch",
    description="Discover the latest arrivals, delivered to your door.",
    cta_text="Shop now",
    cta_link="/products",
)

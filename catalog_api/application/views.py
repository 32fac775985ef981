"""Read models returned by the catalog services.

Services assemble these from ORM rows; the HTTP layer validates them
into response schemas with ``from_attributes``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from catalog_api.catalog.queries import PaginatedResult


# ============================================================================
# Categories
# ============================================================================


@dataclass
class CategoryRef:
    """Category with its direct parent, as embedded in products."""

    id: int
    name: str
    parent: "CategoryRef | None" = None


@dataclass
class CategoryNode:
    """Category with its visible subtree."""

    id: int
    name: str
    description: str
    parent_id: int | None
    is_global: bool
    seller_id: int | None
    created_at: datetime
    updated_at: datetime
    children: list["CategoryNode"] = field(default_factory=list)

    @classmethod
    def from_model(cls, category: Any) -> "CategoryNode":
        """Build a node without children from a Category row."""
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            parent_id=category.parent_id,
            is_global=category.is_global,
            seller_id=category.seller_id,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )


# ============================================================================
# Options and variants
# ============================================================================


@dataclass
class OptionValueView:
    """Option value with the number of variants using it."""

    value_id: int
    value: str
    value_display_name: str
    color_code: str
    position: int
    variant_count: int = 0


@dataclass
class OptionView:
    """Product option with its values."""

    option_id: int
    product_id: int
    option_name: str
    option_display_name: str
    position: int
    values: list[OptionValueView]
    created_at: datetime
    updated_at: datetime


@dataclass
class SelectedOption:
    """One option value chosen by a variant."""

    option_id: int
    option_name: str
    option_display_name: str
    value_id: int
    value: str
    value_display_name: str
    color_code: str


@dataclass
class ProductRef:
    """Minimal product reference embedded in variant responses."""

    id: int
    name: str
    brand: str


@dataclass
class VariantView:
    """Variant with its option selection."""

    id: int
    product_id: int
    sku: str
    price: Decimal
    stock: int
    in_stock: bool
    allow_purchase: bool
    is_default: bool
    is_popular: bool
    images: list[str]
    selected_options: list[SelectedOption]
    created_at: datetime
    updated_at: datetime
    product: ProductRef | None = None


@dataclass
class StockView:
    """Result of a stock update."""

    variant_id: int
    sku: str
    stock: int
    in_stock: bool


# ============================================================================
# Product attributes
# ============================================================================


@dataclass
class ProductAttributeView:
    """Attribute value joined with its definition."""

    id: int
    product_id: int
    attribute_definition_id: int
    attribute_key: str
    attribute_name: str
    value: str
    unit: str
    allowed_values: list[str]
    sort_order: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, attribute: Any) -> "ProductAttributeView":
        """Build from a ProductAttribute with its definition loaded."""
        definition = attribute.attribute_definition
        return cls(
            id=attribute.id,
            product_id=attribute.product_id,
            attribute_definition_id=attribute.attribute_definition_id,
            attribute_key=definition.key,
            attribute_name=definition.name,
            value=attribute.value,
            unit=definition.unit,
            allowed_values=list(definition.allowed_values or []),
            sort_order=attribute.sort_order,
            created_at=attribute.created_at,
            updated_at=attribute.updated_at,
        )


# ============================================================================
# Products
# ============================================================================


@dataclass
class PriceRange:
    """Lowest and highest variant price."""

    min: Decimal
    max: Decimal


@dataclass
class OptionPreview:
    """Option name with its values for listing cards."""

    name: str
    display_name: str
    available_values: list[str]


@dataclass
class VariantPreview:
    """Summary of a product's variants for listing cards."""

    total_variants: int
    options: list[OptionPreview]


@dataclass
class ProductSummary:
    """Product listing item with variant aggregates."""

    id: int
    name: str
    category_id: int
    category: CategoryRef | None
    brand: str
    sku: str
    short_description: str
    long_description: str
    tags: list[str]
    seller_id: int
    has_variants: bool
    price_range: PriceRange | None
    allow_purchase: bool
    created_at: datetime
    updated_at: datetime
    images: list[str] = field(default_factory=list)
    variant_preview: VariantPreview | None = None


@dataclass
class ProductDetail(ProductSummary):
    """Product with every owned collection."""

    attributes: list[ProductAttributeView] = field(default_factory=list)
    package_options: list[Any] = field(default_factory=list)
    options: list[OptionView] = field(default_factory=list)
    variants: list[VariantView] = field(default_factory=list)


@dataclass
class SearchHit(ProductSummary):
    """Search result with its relevance."""

    relevance_score: float = 0.0
    matched_fields: list[str] = field(default_factory=list)


@dataclass
class SearchResult:
    """Paged search results."""

    query: str
    page: PaginatedResult[SearchHit]
    search_time: str


@dataclass
class RelatedHit(ProductSummary):
    """Related product as scored by the store."""

    relation_reason: str = ""
    score: int = 0
    strategy_used: str = ""


@dataclass
class RelatedResult:
    """Paged related products with scoring metadata."""

    page: PaginatedResult[RelatedHit]
    strategies_used: list[str]
    avg_score: float
    total_strategies: int


# ============================================================================
# Facets
# ============================================================================


@dataclass
class CategoryFacet:
    """Category with product count and counted subcategories."""

    id: int
    name: str
    product_count: int
    children: list["CategoryFacet"] = field(default_factory=list)


@dataclass
class BrandFacet:
    brand: str
    product_count: int


@dataclass
class AttributeFacet:
    key: str
    name: str
    allowed_values: list[str]
    product_count: int


@dataclass
class PriceRangeFacet:
    min: Decimal
    max: Decimal
    product_count: int


@dataclass
class VariantTypeValue:
    value: str
    display_name: str
    color_code: str
    product_count: int


@dataclass
class VariantTypeFacet:
    """Option name aggregated across products."""

    name: str
    display_name: str
    values: list[VariantTypeValue]
    product_count: int


@dataclass
class StockStatusFacet:
    in_stock: int
    out_of_stock: int
    total_products: int


@dataclass
class ProductFacets:
    """Everything the storefront filter sidebar needs."""

    categories: list[CategoryFacet]
    brands: list[BrandFacet]
    attributes: list[AttributeFacet]
    price_range: PriceRangeFacet
    variant_types: list[VariantTypeFacet]
    stock_status: StockStatusFacet

"""API schemas for the catalog API.

Pydantic models for request/response validation and serialization.
All JSON keys are camelCase; timestamps are ISO-8601 UTC with a trailing Z.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from catalog_api.catalog.queries import PaginatedResult

T = TypeVar("T")


def _utc_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


UtcDateTime = Annotated[datetime, PlainSerializer(_utc_iso, return_type=str)]
Money = Annotated[Decimal, PlainSerializer(float, return_type=float)]


class CamelModel(BaseModel):
    """Base model with camelCase aliases that also accepts snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(CamelModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    success: bool = Field(default=False, description="Always false for errors")
    message: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")
    details: dict[str, Any] = Field(default_factory=dict, description="Additional error context")
    request_id: str | None = Field(default=None, description="Request ID for correlation")


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class PaginationResponse(CamelModel):
    """Pagination block of list responses."""

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_result(cls, result: PaginatedResult) -> "PaginationResponse":
        return cls(
            current_page=result.page,
            total_pages=result.total_pages,
            total_items=result.total,
            items_per_page=result.page_size,
            has_next=result.has_next,
            has_prev=result.has_prev,
        )


# ============================================================================
# Category Schemas
# ============================================================================


class CategoryCreateRequest(CamelModel):
    """Request to create a category."""

    name: str = Field(..., description="Category name (3-100 chars)")
    description: str = Field(default="", description="Category description")
    parent_id: int | None = Field(default=None, description="Parent category ID")


class CategoryUpdateRequest(CamelModel):
    """Partial category update; absent fields are unchanged."""

    name: str | None = None
    description: str | None = None
    parent_id: int | None = None


class CategoryResponse(CamelModel):
    """Category with its (visible) children."""

    id: int
    name: str
    description: str
    parent_id: int | None
    is_global: bool
    seller_id: int | None
    created_at: UtcDateTime
    updated_at: UtcDateTime
    children: list["CategoryResponse"] = Field(default_factory=list)


class CategoriesResponse(CamelModel):
    categories: list[CategoryResponse]


# ============================================================================
# Attribute Definition Schemas
# ============================================================================


class AttributeDefinitionCreateRequest(CamelModel):
    """Request to create an attribute definition."""

    key: str = Field(..., description="Lowercase key matching ^[a-z0-9_]+$")
    name: str = Field(..., description="Display name")
    description: str = ""
    unit: str = ""
    allowed_values: list[str] = Field(default_factory=list, description="Empty for free text")


class AttributeDefinitionUpdateRequest(CamelModel):
    """Partial attribute definition update."""

    key: str | None = None
    name: str | None = None
    description: str | None = None
    unit: str | None = None
    allowed_values: list[str] | None = None


class AttributeDefinitionResponse(CamelModel):
    id: int
    key: str
    name: str
    description: str
    unit: str
    allowed_values: list[str]
    created_at: UtcDateTime
    updated_at: UtcDateTime


class AttributeDefinitionsResponse(CamelModel):
    attributes: list[AttributeDefinitionResponse]


# ============================================================================
# Option Schemas
# ============================================================================


class OptionValueRequest(CamelModel):
    """Option value; ``id`` addresses an existing value on product update."""

    id: int | None = None
    value: str
    display_name: str
    color_code: str = ""
    position: int = 0


class OptionValueUpdateRequest(CamelModel):
    value: str | None = None
    display_name: str | None = None
    color_code: str | None = None
    position: int | None = None


class OptionValuesBulkAddRequest(CamelModel):
    values: list[OptionValueRequest]


class OptionRequest(CamelModel):
    """Product option with its values."""

    id: int | None = None
    name: str = Field(..., description="Normalised to lower snake case")
    display_name: str
    position: int = 0
    values: list[OptionValueRequest] = Field(default_factory=list)


class OptionUpdateRequest(CamelModel):
    display_name: str | None = None
    position: int | None = None


class OptionBulkUpdateItem(CamelModel):
    option_id: int
    display_name: str | None = None
    position: int | None = None


class OptionBulkUpdateRequest(CamelModel):
    options: list[OptionBulkUpdateItem]


class OptionValueResponse(CamelModel):
    value_id: int
    value: str
    value_display_name: str
    color_code: str
    position: int
    variant_count: int


class OptionResponse(CamelModel):
    option_id: int
    product_id: int
    option_name: str
    option_display_name: str
    position: int
    values: list[OptionValueResponse]
    created_at: UtcDateTime
    updated_at: UtcDateTime


class OptionsListResponse(CamelModel):
    product_id: int
    options: list[OptionResponse]


# ============================================================================
# Variant Schemas
# ============================================================================


class VariantOptionInput(CamelModel):
    option_name: str
    value: str


class VariantRequest(CamelModel):
    """Variant; ``id`` addresses an existing variant on product update."""

    id: int | None = None
    sku: str
    price: Decimal = Field(..., description="Must be 0 or greater")
    stock: int = 0
    images: list[str] = Field(default_factory=list)
    in_stock: bool | None = None
    is_popular: bool = False
    is_default: bool = False
    allow_purchase: bool = True
    options: list[VariantOptionInput] = Field(default_factory=list)


class VariantUpdateRequest(CamelModel):
    """Partial variant update."""

    sku: str | None = None
    price: Decimal | None = None
    stock: int | None = None
    images: list[str] | None = None
    in_stock: bool | None = None
    is_popular: bool | None = None
    is_default: bool | None = None
    allow_purchase: bool | None = None
    options: list[VariantOptionInput] | None = None


class VariantBulkUpdateItem(VariantUpdateRequest):
    id: int


class VariantBulkUpdateRequest(CamelModel):
    variants: list[VariantBulkUpdateItem]


class StockUpdateRequest(CamelModel):
    operation: str = Field(..., description="set, add or subtract")
    stock: int = Field(..., description="Quantity to apply")


class SelectedOptionResponse(CamelModel):
    option_id: int
    option_name: str
    option_display_name: str
    value_id: int
    value: str
    value_display_name: str
    color_code: str


class ProductRefResponse(CamelModel):
    id: int
    name: str
    brand: str


class VariantResponse(CamelModel):
    id: int
    product_id: int
    product: ProductRefResponse | None = None
    sku: str
    price: Money
    stock: int
    in_stock: bool
    allow_purchase: bool
    is_default: bool
    is_popular: bool
    images: list[str]
    selected_options: list[SelectedOptionResponse]
    created_at: UtcDateTime
    updated_at: UtcDateTime


class VariantBulkUpdateResponse(CamelModel):
    updated_count: int
    variants: list[VariantResponse]


class StockResponse(CamelModel):
    variant_id: int
    sku: str
    stock: int
    in_stock: bool


# ============================================================================
# Product Attribute Schemas
# ============================================================================


class ProductAttributeRequest(CamelModel):
    id: int | None = None
    attribute_definition_id: int
    value: str
    sort_order: int = 0


class ProductAttributeUpdateRequest(CamelModel):
    value: str | None = None
    sort_order: int | None = None


class ProductAttributeBulkItem(ProductAttributeUpdateRequest):
    attribute_id: int


class ProductAttributeBulkRequest(CamelModel):
    attributes: list[ProductAttributeBulkItem]


class ProductAttributeResponse(CamelModel):
    id: int
    product_id: int
    attribute_definition_id: int
    attribute_key: str
    attribute_name: str
    value: str
    unit: str
    allowed_values: list[str]
    sort_order: int
    created_at: UtcDateTime
    updated_at: UtcDateTime


class ProductAttributesListResponse(CamelModel):
    product_id: int
    attributes: list[ProductAttributeResponse]
    total: int


class ProductAttributeBulkResponse(CamelModel):
    updated_count: int
    attributes: list[ProductAttributeResponse]


# ============================================================================
# Package Option Schemas
# ============================================================================


class PackageOptionRequest(CamelModel):
    id: int | None = None
    name: str
    description: str = ""
    price: Decimal
    quantity: int


class PackageOptionUpdateRequest(CamelModel):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    quantity: int | None = None


class PackageOptionResponse(CamelModel):
    id: int
    product_id: int
    name: str
    description: str
    price: Money
    quantity: int
    created_at: UtcDateTime
    updated_at: UtcDateTime


class PackageOptionsResponse(CamelModel):
    package_options: list[PackageOptionResponse]


# ============================================================================
# Product Schemas
# ============================================================================


class ProductCreateRequest(CamelModel):
    """Request to create a product with its whole graph."""

    name: str
    category_id: int
    brand: str = ""
    base_sku: str = ""
    short_description: str = ""
    long_description: str = ""
    tags: list[str] = Field(default_factory=list)
    seller_id: int | None = Field(default=None, description="Required when an admin creates")
    options: list[OptionRequest] = Field(default_factory=list)
    variants: list[VariantRequest] = Field(default_factory=list)
    attributes: list[ProductAttributeRequest] = Field(default_factory=list)
    package_options: list[PackageOptionRequest] = Field(default_factory=list)


class ProductUpdateRequest(CamelModel):
    """Partial product update; supplied collections are reconciled."""

    name: str | None = None
    category_id: int | None = None
    brand: str | None = None
    base_sku: str | None = None
    short_description: str | None = None
    long_description: str | None = None
    tags: list[str] | None = None
    options: list[OptionRequest] | None = None
    variants: list[VariantRequest] | None = None
    attributes: list[ProductAttributeRequest] | None = None
    package_options: list[PackageOptionRequest] | None = None


class CategoryInfo(CamelModel):
    id: int
    name: str


class CategoryHierarchyInfo(CategoryInfo):
    parent: CategoryInfo | None = None


class PriceRangeResponse(CamelModel):
    min: Money
    max: Money


class OptionPreviewResponse(CamelModel):
    name: str
    display_name: str
    available_values: list[str]


class VariantPreviewResponse(CamelModel):
    total_variants: int
    options: list[OptionPreviewResponse]


class ProductResponse(CamelModel):
    """Listing item."""

    id: int
    name: str
    category_id: int
    category: CategoryHierarchyInfo | None
    brand: str
    sku: str
    short_description: str
    long_description: str
    tags: list[str]
    seller_id: int
    has_variants: bool
    price_range: PriceRangeResponse | None = None
    allow_purchase: bool
    images: list[str]
    variant_preview: VariantPreviewResponse | None = None
    created_at: UtcDateTime
    updated_at: UtcDateTime


class ProductDetailResponse(ProductResponse):
    attributes: list[ProductAttributeResponse] = Field(default_factory=list)
    package_options: list[PackageOptionResponse] = Field(default_factory=list)
    options: list[OptionResponse] = Field(default_factory=list)
    variants: list[VariantResponse] = Field(default_factory=list)


class ProductsResponse(CamelModel):
    products: list[ProductResponse]
    pagination: PaginationResponse


class SearchResultResponse(ProductResponse):
    relevance_score: float
    matched_fields: list[str]


class SearchResponse(CamelModel):
    query: str
    results: list[SearchResultResponse]
    pagination: PaginationResponse
    search_time: str


class RelatedProductResponse(ProductResponse):
    relation_reason: str
    score: int
    strategy_used: str


class RelatedProductsMeta(CamelModel):
    strategies_used: list[str]
    avg_score: float
    total_strategies: int


class RelatedProductsResponse(CamelModel):
    related_products: list[RelatedProductResponse]
    pagination: PaginationResponse
    meta: RelatedProductsMeta


# ============================================================================
# Facet Schemas
# ============================================================================


class CategoryFacetResponse(CamelModel):
    id: int
    name: str
    product_count: int
    children: list["CategoryFacetResponse"] = Field(default_factory=list)


class BrandFacetResponse(CamelModel):
    brand: str
    product_count: int


class AttributeFacetResponse(CamelModel):
    key: str
    name: str
    allowed_values: list[str]
    product_count: int


class PriceRangeFacetResponse(CamelModel):
    min: Money
    max: Money
    product_count: int


class VariantTypeValueResponse(CamelModel):
    value: str
    display_name: str
    color_code: str
    product_count: int


class VariantTypeFacetResponse(CamelModel):
    name: str
    display_name: str
    values: list[VariantTypeValueResponse]
    product_count: int


class StockStatusFacetResponse(CamelModel):
    in_stock: int
    out_of_stock: int
    total_products: int


class ProductFiltersResponse(CamelModel):
    categories: list[CategoryFacetResponse]
    brands: list[BrandFacetResponse]
    attributes: list[AttributeFacetResponse]
    price_range: PriceRangeFacetResponse
    variant_types: list[VariantTypeFacetResponse]
    stock_status: StockStatusFacetResponse

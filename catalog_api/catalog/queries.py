"""Product listing predicates.

Filters are expressed as SQLAlchemy expression trees. Price, stock and
popularity filters are answered by ``EXISTS`` sub-queries over variants,
so a product matches when *any* of its variants satisfies the condition.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Generic, TypeVar

from sqlalchemy import and_, exists, func, not_, or_, select

from catalog_api.catalog.models import (
    Product,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)

T = TypeVar("T")

SORT_COLUMNS = {
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
    "name": Product.name,
    "brand": Product.brand,
    "id": Product.id,
}
DEFAULT_SORT = "created_at"


@dataclass
class ProductFilter:
    """Closed set of product listing filters.

    Attributes:
        category_ids: Products listed under any of these categories.
        brands: Products of any of these brands.
        product_ids: Restrict to these products.
        min_price: Some variant costs at least this much.
        max_price: Some variant costs at most this much.
        in_stock: True = some variant is in stock; False = none is.
        is_popular: Some variant has this popularity flag.
        option_facets: Option name -> value; some variant uses each value.
        query: Case-insensitive text search over name, short description
            and tags.
    """

    category_ids: list[int] = field(default_factory=list)
    brands: list[str] = field(default_factory=list)
    product_ids: list[int] = field(default_factory=list)
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    in_stock: bool | None = None
    is_popular: bool | None = None
    option_facets: dict[str, str] = field(default_factory=dict)
    query: str | None = None


@dataclass
class PaginationParams:
    """Pagination parameters.

    Attributes:
        page: Page number (1-indexed).
        page_size: Items per page.
        sort_by: Sort field.
        sort_order: Sort order (asc/desc).
    """

    page: int = 1
    page_size: int = 10
    sort_by: str = DEFAULT_SORT
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        """Get limit (alias for page_size)."""
        return self.page_size


@dataclass
class PaginatedResult(Generic[T]):
    """Paginated result container.

    Attributes:
        items: List of items.
        total: Total count.
        page: Current page.
        page_size: Items per page.
    """

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1


def variant_exists(*criteria: Any):
    """``EXISTS`` over the product's variants matching all criteria."""
    return exists().where(ProductVariant.product_id == Product.id, *criteria)


def in_stock_clause():
    """Variant-level in-stock condition."""
    return and_(ProductVariant.in_stock.is_(True), ProductVariant.stock > 0)


def option_facet_clause(option_name: str, option_value: str):
    """Some variant of the product uses ``option_value`` of ``option_name``."""
    return exists().where(
        ProductVariant.product_id == Product.id,
        VariantOptionValue.variant_id == ProductVariant.id,
        ProductOption.id == VariantOptionValue.option_id,
        ProductOption.product_id == Product.id,
        ProductOptionValue.id == VariantOptionValue.option_value_id,
        ProductOption.name == option_name,
        ProductOptionValue.value == option_value,
    )


def search_clause(query: str):
    """Case-insensitive substring match on name, short description or any tag."""
    tag = func.unnest(Product.tags).column_valued("tag")
    return or_(
        Product.name.icontains(query, autoescape=True),
        Product.short_description.icontains(query, autoescape=True),
        exists(select(tag).where(tag.icontains(query, autoescape=True))),
    )


def build_product_conditions(filters: ProductFilter, seller_id: int | None) -> list[Any]:
    """Compose the conjunctive predicate for a product listing.

    Args:
        filters: Listing filters.
        seller_id: Tenant filter; None for unrestricted (admin) callers.

    Returns:
        List of SQL conditions to be combined with AND.
    """
    conditions: list[Any] = []

    if seller_id is not None:
        conditions.append(Product.seller_id == seller_id)

    if filters.category_ids:
        conditions.append(Product.category_id.in_(filters.category_ids))

    if filters.brands:
        conditions.append(Product.brand.in_(filters.brands))

    if filters.product_ids:
        conditions.append(Product.id.in_(filters.product_ids))

    if filters.min_price is not None:
        conditions.append(variant_exists(ProductVariant.price >= filters.min_price))

    if filters.max_price is not None:
        conditions.append(variant_exists(ProductVariant.price <= filters.max_price))

    if filters.in_stock is True:
        conditions.append(variant_exists(in_stock_clause()))
    elif filters.in_stock is False:
        conditions.append(not_(variant_exists(in_stock_clause())))

    if filters.is_popular is not None:
        conditions.append(variant_exists(ProductVariant.is_popular.is_(filters.is_popular)))

    for option_name, option_value in filters.option_facets.items():
        conditions.append(option_facet_clause(option_name, option_value))

    if filters.query:
        conditions.append(search_clause(filters.query))

    return conditions


def sort_clause(sort_by: str, sort_order: str):
    """ORDER BY clause for a product listing.

    Unknown sort keys fall back to ``created_at``. Ties are broken by ID so
    pagination is stable.
    """
    column = SORT_COLUMNS.get(sort_by, SORT_COLUMNS[DEFAULT_SORT])
    if sort_order.lower() == "asc":
        return [column.asc(), Product.id.asc()]
    return [column.desc(), Product.id.desc()]

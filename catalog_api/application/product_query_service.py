"""Storefront product queries: listing, search, facets and related products."""

import time
from collections import OrderedDict
from dataclasses import replace

import structlog

from catalog_api.application.assembler import ProductViewBuilder
from catalog_api.application.hierarchy import build_category_facets
from catalog_api.application.product_support import load_product
from catalog_api.application.views import (
    AttributeFacet,
    BrandFacet,
    PriceRange,
    PriceRangeFacet,
    ProductFacets,
    ProductSummary,
    RelatedHit,
    RelatedResult,
    SearchHit,
    SearchResult,
    StockStatusFacet,
    VariantTypeFacet,
    VariantTypeValue,
)
from catalog_api.catalog.models import Product
from catalog_api.catalog.queries import (
    PaginatedResult,
    PaginationParams,
    ProductFilter,
    build_product_conditions,
)
from catalog_api.catalog.repositories import (
    FacetRepository,
    ProductRepository,
    RelatedProductRepository,
)
from catalog_api.domain.exceptions import ValidationError
from catalog_api.domain.tenancy import CallerScope
from catalog_api.infrastructure.config import settings

logger = structlog.get_logger()

ALL_STRATEGIES = "all"
STRATEGY_COUNT = 8
NAME_WEIGHT = 3
SHORT_DESCRIPTION_WEIGHT = 2
TAG_WEIGHT = 1


def check_pagination(page: int, page_size: int) -> None:
    """Reject out-of-range paging parameters.

    Raises:
        ValidationError: If page < 1 or page_size is outside 1..max.
    """
    if page < 1:
        raise ValidationError("page must be at least 1", field="page")
    if page_size < 1 or page_size > settings.max_page_size:
        raise ValidationError(
            f"limit must be between 1 and {settings.max_page_size}",
            field="limit",
        )


def score_match(product: Product, query: str) -> tuple[int, list[str]]:
    """Relevance of a product for a search term and the fields it matched."""
    needle = query.lower()
    score = 0
    matched: list[str] = []
    if needle in (product.name or "").lower():
        score += NAME_WEIGHT
        matched.append("name")
    if needle in (product.short_description or "").lower():
        score += SHORT_DESCRIPTION_WEIGHT
        matched.append("shortDescription")
    if any(needle in tag.lower() for tag in product.tags or []):
        score += TAG_WEIGHT
        matched.append("tags")
    return score, matched


def count_strategies(strategies: str) -> int:
    """Number of strategies a request attempts."""
    if strategies.strip().lower() == ALL_STRATEGIES:
        return STRATEGY_COUNT
    return len([token for token in strategies.split(",") if token.strip()])


class ProductQueryService:
    """Read-only product queries scoped to the caller's tenant."""

    def __init__(
        self,
        products: ProductRepository,
        facets: FacetRepository,
        related: RelatedProductRepository,
        views: ProductViewBuilder,
    ) -> None:
        self.products = products
        self.facets = facets
        self.related = related
        self.views = views

    async def list_products(
        self,
        scope: CallerScope,
        filters: ProductFilter,
        pagination: PaginationParams,
    ) -> PaginatedResult[ProductSummary]:
        """List products matching the filters, one page at a time.

        Raises:
            ValidationError: If paging parameters are out of range.
        """
        check_pagination(pagination.page, pagination.page_size)
        conditions = build_product_conditions(filters, scope.tenant_id)
        total = await self.products.count(conditions)
        products = await self.products.find_all(
            conditions,
            sort_by=pagination.sort_by,
            sort_order=pagination.sort_order,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        items = await self.views.summaries(products)
        return PaginatedResult(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        )

    async def search_products(
        self,
        scope: CallerScope,
        query: str | None,
        filters: ProductFilter,
        pagination: PaginationParams,
    ) -> SearchResult:
        """Text search combined with the listing filters.

        Hits on a page are ordered by relevance; ties keep the requested
        sort order.

        Raises:
            ValidationError: If the query is empty.
        """
        started = time.perf_counter()
        term = (query or "").strip()
        if not term:
            raise ValidationError("Search query is required", field="q")
        check_pagination(pagination.page, pagination.page_size)

        conditions = build_product_conditions(replace(filters, query=term), scope.tenant_id)
        total = await self.products.count(conditions)
        products = await self.products.find_all(
            conditions,
            sort_by=pagination.sort_by,
            sort_order=pagination.sort_order,
            limit=pagination.limit,
            offset=pagination.offset,
        )

        extras = {}
        for product in products:
            score, matched = score_match(product, term)
            extras[product.id] = {"relevance_score": float(score), "matched_fields": matched}
        hits = await self.views.summaries(products, view_type=SearchHit, extras=extras)
        hits.sort(key=lambda hit: hit.relevance_score, reverse=True)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("Product search", query=term, total=total, elapsed_ms=round(elapsed_ms, 2))
        return SearchResult(
            query=term,
            page=PaginatedResult(
                items=hits,
                total=total,
                page=pagination.page,
                page_size=pagination.page_size,
            ),
            search_time=f"{elapsed_ms:.0f}ms",
        )

    async def get_facets(self, scope: CallerScope) -> ProductFacets:
        """Aggregates for the storefront filter sidebar."""
        seller_id = scope.tenant_id

        brand_rows = await self.facets.brands(seller_id)
        category_rows = await self.facets.categories(seller_id)
        attribute_rows = await self.facets.attributes(seller_id)
        price = await self.facets.price_range(seller_id)
        option_rows = await self.facets.variant_options(seller_id)
        stock = await self.facets.stock_status(seller_id)

        return ProductFacets(
            categories=build_category_facets(category_rows),
            brands=[
                BrandFacet(brand=row.brand, product_count=row.product_count) for row in brand_rows
            ],
            attributes=[
                AttributeFacet(
                    key=row.key,
                    name=row.name,
                    allowed_values=list(row.allowed_values or []),
                    product_count=row.product_count,
                )
                for row in attribute_rows
            ],
            price_range=PriceRangeFacet(
                min=price.min_price or 0,
                max=price.max_price or 0,
                product_count=price.product_count or 0,
            ),
            variant_types=self._variant_types(option_rows),
            stock_status=StockStatusFacet(
                in_stock=stock.in_stock or 0,
                out_of_stock=(stock.total_products or 0) - (stock.in_stock or 0),
                total_products=stock.total_products or 0,
            ),
        )

    async def get_related(
        self,
        scope: CallerScope,
        product_id: int,
        page: int = 1,
        limit: int = 10,
        strategies: str = ALL_STRATEGIES,
    ) -> RelatedResult:
        """Related products scored by the store procedure.

        Raises:
            ProductNotFoundError: If the caller cannot see the product.
            ValidationError: If paging parameters are out of range.
        """
        await load_product(self.products, scope, product_id)
        check_pagination(page, limit)
        strategies = strategies or ALL_STRATEGIES
        seller_id = scope.tenant_id

        rows = await self.related.find_related(
            product_id, seller_id, limit, (page - 1) * limit, strategies
        )
        total = await self.related.count_related(product_id, seller_id, strategies)
        hits = await self._related_hits(rows)

        used = list(OrderedDict.fromkeys(row.strategy_used for row in rows if row.strategy_used))
        avg_score = round(sum(hit.score for hit in hits) / len(hits), 2) if hits else 0.0

        logger.info(
            "Related products fetched",
            product_id=product_id,
            seller_id=seller_id,
            strategies=strategies,
            total=total,
        )
        return RelatedResult(
            page=PaginatedResult(items=hits, total=total, page=page, page_size=limit),
            strategies_used=used,
            avg_score=avg_score,
            total_strategies=count_strategies(strategies),
        )

    async def _related_hits(self, rows) -> list[RelatedHit]:
        """Map procedure rows to listing views, reusing their aggregates."""
        if not rows:
            return []
        categories = await self.views.category_refs({row.category_id for row in rows})
        hits: list[RelatedHit] = []
        for row in rows:
            hits.append(
                RelatedHit(
                    id=row.product_id,
                    name=row.product_name,
                    category_id=row.category_id,
                    category=categories.get(row.category_id),
                    brand=row.brand or "",
                    sku=row.sku or "",
                    short_description=row.short_description or "",
                    long_description=row.long_description or "",
                    tags=list(row.tags or []),
                    seller_id=row.seller_id,
                    has_variants=bool(row.has_variants),
                    price_range=(
                        PriceRange(min=row.min_price, max=row.max_price)
                        if row.min_price is not None
                        else None
                    ),
                    allow_purchase=bool(row.allow_purchase),
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                    relation_reason=row.relation_reason or "",
                    score=int(row.final_score or 0),
                    strategy_used=row.strategy_used or "",
                )
            )
        return hits

    @staticmethod
    def _variant_types(rows) -> list[VariantTypeFacet]:
        """Group option value rows by option name across products."""
        types: OrderedDict[str, dict] = OrderedDict()
        for row in rows:
            entry = types.setdefault(
                row.option_name,
                {"display_name": row.option_display_name, "products": set(), "values": OrderedDict()},
            )
            entry["products"].add(row.product_id)
            value = entry["values"].setdefault(
                row.value,
                {
                    "display_name": row.value_display_name,
                    "color_code": row.color_code or "",
                    "products": set(),
                },
            )
            value["products"].add(row.product_id)

        return [
            VariantTypeFacet(
                name=name,
                display_name=entry["display_name"],
                values=[
                    VariantTypeValue(
                        value=value,
                        display_name=data["display_name"],
                        color_code=data["color_code"],
                        product_count=len(data["products"]),
                    )
                    for value, data in entry["values"].items()
                ],
                product_count=len(entry["products"]),
            )
            for name, entry in types.items()
        ]

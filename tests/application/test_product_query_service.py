"""Tests for product listing, search, facet and related-product queries."""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_api.application.product_query_service import (
    ProductQueryService,
    check_pagination,
    count_strategies,
    score_match,
)
from catalog_api.catalog.queries import PaginationParams, ProductFilter
from catalog_api.domain import CallerScope
from catalog_api.domain.exceptions import ProductNotFoundError, ValidationError
from catalog_api.infrastructure.config import settings

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
SELLER = CallerScope.seller(7)


def make_product(**overrides) -> SimpleNamespace:
    fields = {
        "id": 1,
        "seller_id": 7,
        "name": "Cotton Shirt",
        "short_description": "Soft everyday shirt",
        "tags": ["summer", "cotton"],
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def related_row(product_id: int, score: int, strategy: str) -> SimpleNamespace:
    return SimpleNamespace(
        product_id=product_id,
        product_name=f"Product {product_id}",
        category_id=3,
        brand="Acme",
        sku="",
        short_description="",
        long_description="",
        tags=[],
        seller_id=7,
        has_variants=True,
        min_price=Decimal("10.00"),
        max_price=Decimal("12.00"),
        allow_purchase=True,
        created_at=NOW,
        updated_at=NOW,
        relation_reason="Same category",
        final_score=score,
        strategy_used=strategy,
    )


def make_service(product: SimpleNamespace | None = None) -> ProductQueryService:
    products = MagicMock()
    products.get_by_id = AsyncMock(return_value=product)
    products.count = AsyncMock(return_value=0)
    products.find_all = AsyncMock(return_value=[])
    facets = MagicMock()
    related = MagicMock()
    views = MagicMock()
    views.summaries = AsyncMock(return_value=[])
    views.category_refs = AsyncMock(return_value={})
    return ProductQueryService(products, facets, related, views)


class TestScoreMatch:
    """Tests for search relevance scoring."""

    def test_all_fields(self) -> None:
        """Should weight name above short description above tags."""
        product = make_product(name="Cotton", short_description="cotton", tags=["cotton"])
        assert score_match(product, "COTTON") == (6, ["name", "shortDescription", "tags"])

    def test_tag_only(self) -> None:
        """Should match tags on substring."""
        assert score_match(make_product(), "summ") == (1, ["tags"])

    def test_no_match(self) -> None:
        """Should score zero without matches."""
        assert score_match(make_product(tags=None), "wool") == (0, [])


class TestCountStrategies:
    """Tests for strategy counting."""

    def test_all(self) -> None:
        """Should count every strategy for 'all'."""
        assert count_strategies("ALL") == 8

    def test_list(self) -> None:
        """Should count listed tokens, ignoring blanks."""
        assert count_strategies("same_brand, same_category,") == 2


class TestCheckPagination:
    """Tests for paging bounds."""

    def test_page_below_one(self) -> None:
        """Should reject page 0."""
        with pytest.raises(ValidationError):
            check_pagination(0, 10)

    def test_limit_above_max(self) -> None:
        """Should reject limits above the configured maximum."""
        with pytest.raises(ValidationError) as exc_info:
            check_pagination(1, settings.max_page_size + 1)
        assert exc_info.value.details["field"] == "limit"


class TestSearchProducts:
    """Tests for text search."""

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self) -> None:
        """Should require a non-blank query."""
        service = make_service()
        with pytest.raises(ValidationError):
            await service.search_products(SELLER, "   ", ProductFilter(), PaginationParams())
        service.products.count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hits_ordered_by_relevance(self) -> None:
        """Should sort hits on the page by relevance score."""
        service = make_service()
        low = SimpleNamespace(id=1, relevance_score=1.0)
        high = SimpleNamespace(id=2, relevance_score=5.0)
        service.views.summaries.return_value = [low, high]
        service.products.count.return_value = 2

        result = await service.search_products(
            SELLER, " shirt ", ProductFilter(), PaginationParams()
        )

        assert result.query == "shirt"
        assert [hit.id for hit in result.page.items] == [2, 1]
        assert result.page.total == 2
        assert result.search_time.endswith("ms")


class TestGetFacets:
    """Tests for facet aggregation."""

    @pytest.mark.asyncio
    async def test_stock_status_and_empty_price(self) -> None:
        """Should derive out-of-stock counts and zero an empty price range."""
        service = make_service()
        service.facets.brands = AsyncMock(
            return_value=[SimpleNamespace(brand="Acme", product_count=3)]
        )
        service.facets.categories = AsyncMock(return_value=[])
        service.facets.attributes = AsyncMock(return_value=[])
        service.facets.price_range = AsyncMock(
            return_value=SimpleNamespace(min_price=None, max_price=None, product_count=0)
        )
        service.facets.variant_options = AsyncMock(
            return_value=[
                SimpleNamespace(
                    option_name="color",
                    option_display_name="Color",
                    value="red",
                    value_display_name="Red",
                    color_code="#FF0000",
                    product_id=1,
                ),
                SimpleNamespace(
                    option_name="color",
                    option_display_name="Color",
                    value="red",
                    value_display_name="Red",
                    color_code="#FF0000",
                    product_id=2,
                ),
            ]
        )
        service.facets.stock_status = AsyncMock(
            return_value=SimpleNamespace(in_stock=4, total_products=6)
        )

        facets = await service.get_facets(SELLER)

        service.facets.brands.assert_awaited_once_with(7)
        assert facets.brands[0].brand == "Acme"
        assert facets.price_range.min == 0
        assert facets.stock_status.out_of_stock == 2
        assert facets.variant_types[0].name == "color"
        assert facets.variant_types[0].product_count == 2


class TestGetRelated:
    """Tests for related products."""

    @pytest.mark.asyncio
    async def test_invisible_product(self) -> None:
        """Should report a product of another seller as missing."""
        service = make_service(make_product(seller_id=8))
        with pytest.raises(ProductNotFoundError):
            await service.get_related(SELLER, 1)

    @pytest.mark.asyncio
    async def test_scoring_metadata(self) -> None:
        """Should report the strategies used and the average score."""
        service = make_service(make_product())
        service.related.find_related = AsyncMock(
            return_value=[
                related_row(2, 150, "same_category"),
                related_row(3, 95, "same_brand"),
                related_row(4, 100, "same_category"),
            ]
        )
        service.related.count_related = AsyncMock(return_value=3)

        result = await service.get_related(SELLER, 1, page=2, limit=3, strategies="")

        service.related.find_related.assert_awaited_once_with(1, 7, 3, 3, "all")
        assert result.strategies_used == ["same_category", "same_brand"]
        assert result.avg_score == 115.0
        assert result.total_strategies == 8
        assert result.page.items[0].price_range.min == Decimal("10.00")

"""Tests for product listing predicates and pagination."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from catalog_api.catalog.models import Product
from catalog_api.catalog.queries import (
    PaginatedResult,
    PaginationParams,
    ProductFilter,
    build_product_conditions,
    search_clause,
    sort_clause,
)


def compile_where(conditions) -> str:
    statement = select(Product.id).where(*conditions)
    return str(statement.compile(dialect=postgresql.dialect()))


class TestBuildProductConditions:
    """Tests for build_product_conditions."""

    def test_no_filters_admin(self) -> None:
        """Admins without filters get no predicate at all."""
        assert build_product_conditions(ProductFilter(), None) == []

    def test_tenant_filter(self) -> None:
        """Non-admin callers are restricted to their seller id."""
        conditions = build_product_conditions(ProductFilter(), 7)
        assert len(conditions) == 1
        assert "product.seller_id" in compile_where(conditions)

    def test_price_filters_use_variant_exists(self) -> None:
        """Price bounds are answered by variants."""
        filters = ProductFilter(min_price=Decimal("13"), max_price=Decimal("21"))
        sql = compile_where(build_product_conditions(filters, None))
        assert sql.count("EXISTS") == 2
        assert "product_variant.price >=" in sql
        assert "product_variant.price <=" in sql

    def test_out_of_stock_is_negated_exists(self) -> None:
        """inStock=false means no variant is in stock."""
        sql = compile_where(build_product_conditions(ProductFilter(in_stock=False), None))
        assert "NOT (EXISTS" in sql

    def test_option_facets_one_clause_each(self) -> None:
        """Each option facet adds its own predicate."""
        filters = ProductFilter(option_facets={"color": "red", "size": "m"})
        conditions = build_product_conditions(filters, None)
        assert len(conditions) == 2
        assert "product_option_value.value" in compile_where(conditions)

    def test_all_filters_combined(self) -> None:
        """Every filter contributes one conjunct."""
        filters = ProductFilter(
            category_ids=[1, 2],
            brands=["Acme"],
            product_ids=[5],
            min_price=Decimal("1"),
            max_price=Decimal("2"),
            in_stock=True,
            is_popular=True,
            option_facets={"color": "red"},
            query="shirt",
        )
        assert len(build_product_conditions(filters, 7)) == 10

    def test_search_matches_tags(self) -> None:
        """Text search covers name, short description and tags."""
        sql = compile_where(build_product_conditions(ProductFilter(query="shirt"), None))
        assert "product.name" in sql
        assert "product.short_description" in sql
        assert "LIKE" in sql
        assert "unnest(product.tags)" in sql

    def test_search_escapes_wildcards(self) -> None:
        """LIKE wildcards in the query match literally."""
        statement = select(Product.id).where(search_clause("100%_off"))
        compiled = statement.compile(dialect=postgresql.dialect())
        assert str(compiled).count("ESCAPE '/'") == 3
        assert set(compiled.params.values()) == {"100/%/_off"}


def compile_order(clauses) -> str:
    statement = select(Product.id).order_by(*clauses)
    return str(statement.compile(dialect=postgresql.dialect())).split("ORDER BY")[1]


class TestSortClause:
    """Tests for listing order."""

    def test_brand_ascending(self) -> None:
        """Sort keys map to columns with an id tiebreak."""
        assert compile_order(sort_clause("brand", "ASC")).strip() == (
            "product.brand ASC, product.id ASC"
        )

    def test_unknown_key_uses_created_at(self) -> None:
        """Unsupported keys such as price fall back to creation time."""
        assert compile_order(sort_clause("price", "desc")).strip() == (
            "product.created_at DESC, product.id DESC"
        )


class TestPagination:
    """Tests for pagination containers."""

    def test_offset(self) -> None:
        """Offset is derived from the 1-based page."""
        assert PaginationParams(page=3, page_size=10).offset == 20

    def test_result_pages(self) -> None:
        """Totals round up to whole pages."""
        result = PaginatedResult(items=[], total=21, page=2, page_size=10)
        assert result.total_pages == 3
        assert result.has_next
        assert result.has_prev

    def test_empty_result(self) -> None:
        """An empty listing has no pages."""
        result = PaginatedResult(items=[], total=0, page=1, page_size=10)
        assert result.total_pages == 0
        assert not result.has_next
        assert not result.has_prev

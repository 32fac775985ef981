"""Facet aggregates for the storefront filter sidebar.

Every query takes the tenant filter (``seller_id``); None aggregates over
the whole catalog.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import case, distinct, func, select
from sqlalchemy.engine import Row

from catalog_api.catalog.models import (
    AttributeDefinition,
    Category,
    Product,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)
from catalog_api.catalog.queries import in_stock_clause
from catalog_api.catalog.repositories.category import category_visibility


def _tenant(query: Any, seller_id: int | None) -> Any:
    if seller_id is None:
        return query
    return query.where(Product.seller_id == seller_id)


class FacetRepository:
    """Read-only aggregate queries over products and variants."""

    def __init__(self, session) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def brands(self, seller_id: int | None) -> Sequence[Row]:
        """Product count per non-empty brand.

        Returns:
            Rows of (brand, product_count) by count desc, then brand.
        """
        product_count = func.count(Product.id).label("product_count")
        query = (
            select(Product.brand, product_count)
            .where(Product.brand != "")
            .group_by(Product.brand)
            .order_by(product_count.desc(), Product.brand.asc())
        )
        result = await self.session.execute(_tenant(query, seller_id))
        return result.all()

    async def categories(self, seller_id: int | None) -> Sequence[Row]:
        """Every visible category with its direct product count.

        Returns:
            Rows of (id, name, parent_id, product_count) ordered by name.
        """
        join_on = Product.category_id == Category.id
        if seller_id is not None:
            join_on = join_on & (Product.seller_id == seller_id)
        query = (
            select(
                Category.id,
                Category.name,
                Category.parent_id,
                func.count(Product.id).label("product_count"),
            )
            .outerjoin(Product, join_on)
            .where(category_visibility(seller_id))
            .group_by(Category.id, Category.name, Category.parent_id)
            .order_by(Category.name, Category.id)
        )
        result = await self.session.execute(query)
        return result.all()

    async def attributes(self, seller_id: int | None) -> Sequence[Row]:
        """Attribute definitions used by products, with product counts.

        Returns:
            Rows of (key, name, allowed_values, product_count).
        """
        product_count = func.count(distinct(ProductAttribute.product_id)).label("product_count")
        query = (
            select(
                AttributeDefinition.key,
                AttributeDefinition.name,
                AttributeDefinition.allowed_values,
                product_count,
            )
            .join(
                ProductAttribute,
                ProductAttribute.attribute_definition_id == AttributeDefinition.id,
            )
            .join(Product, Product.id == ProductAttribute.product_id)
            .group_by(
                AttributeDefinition.id,
                AttributeDefinition.key,
                AttributeDefinition.name,
                AttributeDefinition.allowed_values,
            )
            .order_by(product_count.desc(), AttributeDefinition.name)
        )
        result = await self.session.execute(_tenant(query, seller_id))
        return result.all()

    async def price_range(self, seller_id: int | None) -> Row:
        """Minimum and maximum variant price and distinct product count."""
        query = select(
            func.min(ProductVariant.price).label("min_price"),
            func.max(ProductVariant.price).label("max_price"),
            func.count(distinct(Product.id)).label("product_count"),
        ).join(Product, Product.id == ProductVariant.product_id)
        result = await self.session.execute(_tenant(query, seller_id))
        return result.one()

    async def variant_options(self, seller_id: int | None) -> Sequence[Row]:
        """Option values actually used by variants, with product counts.

        Returns:
            Rows of (option_name, option_display_name, value,
            value_display_name, color_code, product_id) ordered by option
            position then value position. Grouping by option name across
            products happens in the service.
        """
        query = (
            select(
                ProductOption.name.label("option_name"),
                ProductOption.display_name.label("option_display_name"),
                ProductOption.position.label("option_position"),
                ProductOptionValue.value,
                ProductOptionValue.display_name.label("value_display_name"),
                ProductOptionValue.color_code,
                ProductOptionValue.position.label("value_position"),
                Product.id.label("product_id"),
            )
            .join(ProductOptionValue, ProductOptionValue.option_id == ProductOption.id)
            .join(Product, Product.id == ProductOption.product_id)
            .join(ProductVariant, ProductVariant.product_id == Product.id)
            .join(
                VariantOptionValue,
                (VariantOptionValue.variant_id == ProductVariant.id)
                & (VariantOptionValue.option_value_id == ProductOptionValue.id),
            )
            .distinct()
            .order_by(
                ProductOption.position,
                ProductOption.name,
                ProductOptionValue.position,
                ProductOptionValue.value,
                Product.id,
            )
        )
        result = await self.session.execute(_tenant(query, seller_id))
        return result.all()

    async def stock_status(self, seller_id: int | None) -> Row:
        """Products with and without an in-stock variant.

        Returns:
            Row of (in_stock, total_products) over products having variants.
        """
        query = select(
            func.count(distinct(case((in_stock_clause(), Product.id)))).label("in_stock"),
            func.count(distinct(Product.id)).label("total_products"),
        ).join(ProductVariant, ProductVariant.product_id == Product.id)
        result = await self.session.execute(_tenant(query, seller_id))
        return result.one()

"""Product repository for database operations.

Provides CRUD operations for products, filtered listing, and the ordered
cascade used when a product is deleted.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import and_, delete, func, select

from catalog_api.catalog.models import (
    PackageOption,
    Product,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)
from catalog_api.catalog.queries import sort_clause
from catalog_api.catalog.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Repository for Product database operations.

    Handles all database interactions for products including
    filtering, sorting, and pagination.

    Example usage:
        repo = ProductRepository(session)
        conditions = build_product_conditions(ProductFilter(brands=["Acme"]), seller_id=3)
        products = await repo.find_all(conditions, limit=20)
    """

    async def get_by_id(self, product_id: int, for_update: bool = False) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.
            for_update: Lock the row until the transaction ends.

        Returns:
            Product if found, None otherwise.
        """
        query = select(Product).where(Product.id == product_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_all(
        self,
        conditions: Sequence[Any],
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 10,
        offset: int = 0,
    ) -> Sequence[Product]:
        """Find products matching conditions with sorting and pagination.

        Args:
            conditions: SQL conditions combined with AND.
            sort_by: Sort field (created_at, updated_at, name, brand, id).
            sort_order: Sort order (asc, desc).
            limit: Maximum results.
            offset: Result offset for pagination.

        Returns:
            Sequence of matching products.
        """
        query = select(Product)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(*sort_clause(sort_by, sort_order)).limit(limit).offset(offset)

        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, conditions: Sequence[Any]) -> int:
        """Count products matching conditions.

        Args:
            conditions: SQL conditions combined with AND.

        Returns:
            Count of matching products.
        """
        query = select(func.count(Product.id))
        if conditions:
            query = query.where(and_(*conditions))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def delete_cascade(self, product: Product) -> None:
        """Delete a product and everything it owns.

        Rows are removed child-first: variant selections, variants, option
        values, options, product attributes, package options, then the
        product itself.

        Args:
            product: Product to delete.
        """
        product_id = product.id
        variant_ids = select(ProductVariant.id).where(ProductVariant.product_id == product_id)
        option_ids = select(ProductOption.id).where(ProductOption.product_id == product_id)

        await self.session.execute(
            delete(VariantOptionValue).where(VariantOptionValue.variant_id.in_(variant_ids))
        )
        await self.session.execute(
            delete(ProductVariant).where(ProductVariant.product_id == product_id)
        )
        await self.session.execute(
            delete(ProductOptionValue).where(ProductOptionValue.option_id.in_(option_ids))
        )
        await self.session.execute(
            delete(ProductOption).where(ProductOption.product_id == product_id)
        )
        await self.session.execute(
            delete(ProductAttribute).where(ProductAttribute.product_id == product_id)
        )
        await self.session.execute(
            delete(PackageOption).where(PackageOption.product_id == product_id)
        )
        await self.remove(product)

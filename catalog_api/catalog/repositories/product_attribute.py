"""Product attribute repository."""

from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import and_, select
from sqlalchemy.orm import selectinload

from catalog_api.catalog.models import ProductAttribute
from catalog_api.catalog.repositories.base import BaseRepository


class ProductAttributeRepository(BaseRepository[ProductAttribute]):
    """Repository for attribute values set on products."""

    async def list_by_product(self, product_id: int) -> Sequence[ProductAttribute]:
        """List a product's attributes with their definitions.

        Ordered by ``sort_order`` then ID.
        """
        result = await self.session.execute(
            select(ProductAttribute)
            .where(ProductAttribute.product_id == product_id)
            .options(selectinload(ProductAttribute.attribute_definition))
            .order_by(ProductAttribute.sort_order, ProductAttribute.id)
        )
        return result.scalars().all()

    async def list_by_products(
        self,
        product_ids: Sequence[int],
    ) -> dict[int, list[ProductAttribute]]:
        """List attributes for several products, grouped by product."""
        grouped: dict[int, list[ProductAttribute]] = defaultdict(list)
        if not product_ids:
            return grouped
        result = await self.session.execute(
            select(ProductAttribute)
            .where(ProductAttribute.product_id.in_(set(product_ids)))
            .options(selectinload(ProductAttribute.attribute_definition))
            .order_by(ProductAttribute.product_id, ProductAttribute.sort_order, ProductAttribute.id)
        )
        for attribute in result.scalars().all():
            grouped[attribute.product_id].append(attribute)
        return grouped

    async def get(self, product_id: int, attribute_id: int) -> ProductAttribute | None:
        """Get an attribute of a product with its definition."""
        result = await self.session.execute(
            select(ProductAttribute)
            .where(
                and_(
                    ProductAttribute.id == attribute_id,
                    ProductAttribute.product_id == product_id,
                )
            )
            .options(selectinload(ProductAttribute.attribute_definition))
        )
        return result.scalar_one_or_none()

    async def find_by_definition(
        self,
        product_id: int,
        attribute_definition_id: int,
    ) -> ProductAttribute | None:
        """Find the product's value for an attribute definition."""
        result = await self.session.execute(
            select(ProductAttribute).where(
                and_(
                    ProductAttribute.product_id == product_id,
                    ProductAttribute.attribute_definition_id == attribute_definition_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def reload(self, attribute: ProductAttribute) -> ProductAttribute:
        """Re-read an attribute so its definition is loaded."""
        result = await self.session.execute(
            select(ProductAttribute)
            .where(ProductAttribute.id == attribute.id)
            .options(selectinload(ProductAttribute.attribute_definition))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

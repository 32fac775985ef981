"""Attribute definition and category link repository."""

from collections.abc import Sequence

from sqlalchemy import and_, delete, func, select

from catalog_api.catalog.models import (
    AttributeDefinition,
    Category,
    CategoryAttribute,
    ProductAttribute,
)
from catalog_api.catalog.repositories.base import BaseRepository


class AttributeDefinitionRepository(BaseRepository[AttributeDefinition]):
    """Repository for attribute definitions and their category links."""

    async def get_by_id(self, attribute_id: int) -> AttributeDefinition | None:
        """Get attribute definition by ID."""
        return await self.session.get(AttributeDefinition, attribute_id)

    async def get_by_key(self, key: str) -> AttributeDefinition | None:
        """Get attribute definition by its unique key."""
        result = await self.session.execute(
            select(AttributeDefinition).where(AttributeDefinition.key == key)
        )
        return result.scalar_one_or_none()

    async def get_many(self, attribute_ids: Sequence[int]) -> dict[int, AttributeDefinition]:
        """Get attribute definitions keyed by ID."""
        if not attribute_ids:
            return {}
        result = await self.session.execute(
            select(AttributeDefinition).where(AttributeDefinition.id.in_(set(attribute_ids)))
        )
        return {definition.id: definition for definition in result.scalars().all()}

    async def list_all(self) -> Sequence[AttributeDefinition]:
        """List every attribute definition ordered by name."""
        result = await self.session.execute(
            select(AttributeDefinition).order_by(AttributeDefinition.name, AttributeDefinition.id)
        )
        return result.scalars().all()

    async def count_product_usages(self, attribute_id: int) -> int:
        """Count product attribute rows referencing a definition."""
        result = await self.session.execute(
            select(func.count(ProductAttribute.id)).where(
                ProductAttribute.attribute_definition_id == attribute_id
            )
        )
        return result.scalar_one()

    async def delete_definition(self, definition: AttributeDefinition) -> None:
        """Delete a definition together with its category links."""
        await self.session.execute(
            delete(CategoryAttribute).where(
                CategoryAttribute.attribute_definition_id == definition.id
            )
        )
        await self.remove(definition)

    # ------------------------------------------------------------------
    # Category links
    # ------------------------------------------------------------------

    async def get_link(self, category_id: int, attribute_id: int) -> CategoryAttribute | None:
        """Get the link between a category and an attribute definition."""
        result = await self.session.execute(
            select(CategoryAttribute).where(
                and_(
                    CategoryAttribute.category_id == category_id,
                    CategoryAttribute.attribute_definition_id == attribute_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def add_link(self, category_id: int, attribute_id: int) -> CategoryAttribute:
        """Link an attribute definition to a category."""
        link = CategoryAttribute(category_id=category_id, attribute_definition_id=attribute_id)
        self.session.add(link)
        await self.session.flush()
        return link

    async def remove_link(self, link: CategoryAttribute) -> None:
        """Remove a category link."""
        await self.session.delete(link)
        await self.session.flush()

    async def list_for_category(
        self,
        category_id: int,
        include_inherited: bool = True,
    ) -> Sequence[AttributeDefinition]:
        """List attribute definitions applicable to a category.

        With inheritance, a recursive CTE walks from the category up to its
        root and the union of every level's links is returned.

        Args:
            category_id: Category ID.
            include_inherited: Whether to include ancestors' attributes.

        Returns:
            Distinct definitions ordered by name.
        """
        if include_inherited:
            hierarchy = (
                select(Category.id, Category.parent_id)
                .where(Category.id == category_id)
                .cte("category_hierarchy", recursive=True)
            )
            ancestors = select(Category.id, Category.parent_id).join(
                hierarchy, Category.id == hierarchy.c.parent_id
            )
            hierarchy = hierarchy.union(ancestors)
            category_filter = CategoryAttribute.category_id.in_(select(hierarchy.c.id))
        else:
            category_filter = CategoryAttribute.category_id == category_id

        query = (
            select(AttributeDefinition)
            .join(
                CategoryAttribute,
                CategoryAttribute.attribute_definition_id == AttributeDefinition.id,
            )
            .where(category_filter)
            .distinct()
            .order_by(AttributeDefinition.name, AttributeDefinition.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

"""Category repository."""

from collections.abc import Sequence

from sqlalchemy import and_, exists, literal, or_, select

from catalog_api.catalog.models import Category, Product
from catalog_api.catalog.repositories.base import BaseRepository


def category_visibility(seller_id: int | None):
    """SQL predicate for categories a tenant may see (None = everything)."""
    if seller_id is None:
        return literal(True)
    return or_(Category.is_global.is_(True), Category.seller_id == seller_id)


class CategoryRepository(BaseRepository[Category]):
    """Repository for the category forest."""

    async def get_by_id(self, category_id: int) -> Category | None:
        """Get category by ID.

        Args:
            category_id: Category ID.

        Returns:
            Category if found, None otherwise.
        """
        return await self.session.get(Category, category_id)

    async def get_many(self, category_ids: Sequence[int]) -> dict[int, Category]:
        """Get categories by IDs keyed by ID."""
        if not category_ids:
            return {}
        result = await self.session.execute(
            select(Category).where(Category.id.in_(set(category_ids)))
        )
        return {category.id: category for category in result.scalars().all()}

    async def list_visible(self, seller_id: int | None = None) -> Sequence[Category]:
        """List all categories visible to a tenant, ordered by name.

        Args:
            seller_id: Tenant filter; None lists every category.

        Returns:
            Visible categories.
        """
        query = (
            select(Category)
            .where(category_visibility(seller_id))
            .order_by(Category.name.asc(), Category.id.asc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_by_parent(
        self,
        parent_id: int | None,
        seller_id: int | None = None,
    ) -> Sequence[Category]:
        """List direct children of a category (roots when parent_id is None).

        Args:
            parent_id: Parent category ID.
            seller_id: Tenant filter; None lists every category.

        Returns:
            Visible child categories ordered by name.
        """
        parent_clause = (
            Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
        )
        query = (
            select(Category)
            .where(and_(parent_clause, category_visibility(seller_id)))
            .order_by(Category.name.asc(), Category.id.asc())
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def find_sibling_by_name(
        self,
        name: str,
        parent_id: int | None,
        is_global: bool,
        seller_id: int | None,
        exclude_id: int | None = None,
    ) -> Category | None:
        """Find a category with the same name, parent and owning scope.

        Args:
            name: Exact (case-sensitive) name.
            parent_id: Parent category ID, None for roots.
            is_global: Owning scope is the global catalog.
            seller_id: Owning seller for seller scope.
            exclude_id: Category to ignore (the one being updated).

        Returns:
            Conflicting category if any.
        """
        conditions = [Category.name == name]
        if parent_id is None:
            conditions.append(Category.parent_id.is_(None))
        else:
            conditions.append(Category.parent_id == parent_id)
        if is_global:
            conditions.append(Category.is_global.is_(True))
        else:
            conditions.append(Category.seller_id == seller_id)
        if exclude_id is not None:
            conditions.append(Category.id != exclude_id)

        result = await self.session.execute(select(Category).where(and_(*conditions)).limit(1))
        return result.scalar_one_or_none()

    async def get_ancestry(self, category_id: int) -> list[int]:
        """Return the category ID together with all its ancestor IDs.

        Uses a recursive CTE walking ``parent_id`` pointers. ``UNION``
        (not ``UNION ALL``) stops the walk if stored data ever contains
        a loop.

        Args:
            category_id: Starting category.

        Returns:
            IDs of the category and every ancestor up to its root.
        """
        hierarchy = (
            select(Category.id, Category.parent_id)
            .where(Category.id == category_id)
            .cte("category_hierarchy", recursive=True)
        )
        parent = select(Category.id, Category.parent_id).join(
            hierarchy, Category.id == hierarchy.c.parent_id
        )
        hierarchy = hierarchy.union(parent)

        result = await self.session.execute(select(hierarchy.c.id))
        return list(result.scalars().all())

    async def has_children(self, category_id: int) -> bool:
        """Check whether any category has this one as parent."""
        result = await self.session.execute(
            select(exists().where(Category.parent_id == category_id))
        )
        return bool(result.scalar())

    async def has_products(self, category_id: int) -> bool:
        """Check whether any product is listed under this category."""
        result = await self.session.execute(
            select(exists().where(Product.category_id == category_id))
        )
        return bool(result.scalar())

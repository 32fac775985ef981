"""Category application service.

Handles the category forest: hierarchical listing, ownership-aware writes,
cycle prevention on re-parenting, and attribute links with inheritance.
"""

from typing import Any

import structlog

from catalog_api.application.commands import CategoryInput
from catalog_api.application.hierarchy import build_category_tree
from catalog_api.application.views import CategoryNode
from catalog_api.catalog.models import AttributeDefinition, Category
from catalog_api.catalog.repositories import AttributeDefinitionRepository, CategoryRepository
from catalog_api.domain.exceptions import (
    AttributeAlreadyLinkedError,
    AttributeDefinitionNotFoundError,
    AttributeNotLinkedError,
    CategoryExistsError,
    CategoryHasChildrenError,
    CategoryHasProductsError,
    InvalidParentCategoryError,
)
from catalog_api.domain.tenancy import (
    CallerScope,
    category_ownership,
    ensure_category_visible,
    ensure_category_writable,
)
from catalog_api.domain.validators import (
    check_parent_not_descendant,
    require_changes,
    validate_category,
)

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("name", "description", "parent_id")


class CategoryService:
    """Application service for categories and their attribute links."""

    def __init__(
        self,
        categories: CategoryRepository,
        attributes: AttributeDefinitionRepository,
    ) -> None:
        """Initialize service.

        Args:
            categories: Category repository.
            attributes: Attribute definition repository (for links).
        """
        self.categories = categories
        self.attributes = attributes

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_tree(self, scope: CallerScope) -> list[CategoryNode]:
        """Visible categories as a forest ordered by name."""
        categories = await self.categories.list_visible(scope.tenant_id)
        return build_category_tree(categories)

    async def list_by_parent(self, scope: CallerScope, parent_id: int | None) -> list[Category]:
        """Visible direct children of a category, or roots."""
        return list(await self.categories.list_by_parent(parent_id, scope.tenant_id))

    async def get_category(self, scope: CallerScope, category_id: int) -> CategoryNode:
        """Get a visible category with its visible direct children.

        Raises:
            CategoryNotFoundError: If missing or invisible to the caller.
        """
        category = ensure_category_visible(
            scope, await self.categories.get_by_id(category_id), category_id
        )
        node = CategoryNode.from_model(category)
        children = await self.categories.list_by_parent(category_id, scope.tenant_id)
        node.children = [CategoryNode.from_model(child) for child in children]
        return node

    async def list_attributes(
        self,
        scope: CallerScope,
        category_id: int,
        include_inherited: bool = True,
    ) -> list[AttributeDefinition]:
        """Attribute definitions applicable to a category.

        Args:
            scope: Caller scope.
            category_id: Category ID.
            include_inherited: Whether ancestors' links count.
        """
        ensure_category_visible(scope, await self.categories.get_by_id(category_id), category_id)
        return list(await self.attributes.list_for_category(category_id, include_inherited))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_category(self, scope: CallerScope, data: CategoryInput) -> Category:
        """Create a category owned by the caller's scope.

        Admins create global categories, sellers create their own. A seller
        may attach a category under a global parent.

        Raises:
            ForbiddenError: If the caller is read-only.
            ValidationError: If fields are out of bounds.
            InvalidParentCategoryError: If the parent is missing, invisible
                or has an incompatible owner.
            CategoryExistsError: If a sibling in the same scope has the name.
        """
        is_global, seller_id = category_ownership(scope)
        validate_category({"name": data.name, "description": data.description})

        if data.parent_id is not None:
            await self._check_parent(scope, data.parent_id, is_global, seller_id)

        clash = await self.categories.find_sibling_by_name(
            data.name, data.parent_id, is_global, seller_id
        )
        if clash:
            raise CategoryExistsError(details={"name": data.name, "parent_id": data.parent_id})

        category = await self.categories.save(
            Category(
                name=data.name,
                description=data.description,
                parent_id=data.parent_id,
                is_global=is_global,
                seller_id=seller_id,
            )
        )

        logger.info(
            "Category created",
            category_id=category.id,
            parent_id=category.parent_id,
            is_global=is_global,
            seller_id=seller_id,
        )
        return category

    async def update_category(
        self,
        scope: CallerScope,
        category_id: int,
        changes: dict[str, Any],
    ) -> Category:
        """Apply a partial update.

        Raises:
            ValidationError: If nothing was supplied or fields are invalid.
            CategoryNotFoundError: If the category is missing or foreign.
            UnauthorizedCategoryUpdateError: If a seller targets a global
                category.
            InvalidParentCategoryError: If the new parent would create a cycle.
            CategoryExistsError: If the new name clashes with a sibling.
        """
        changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        category = ensure_category_writable(
            scope, await self.categories.get_by_id(category_id), category_id
        )
        require_changes(changes)
        validate_category(changes)

        if "parent_id" in changes and changes["parent_id"] != category.parent_id:
            new_parent_id = changes["parent_id"]
            if new_parent_id is not None:
                if new_parent_id == category_id:
                    check_parent_not_descendant(category_id, new_parent_id, [])
                await self._check_parent(
                    scope, new_parent_id, category.is_global, category.seller_id
                )
                ancestry = await self.categories.get_ancestry(new_parent_id)
                check_parent_not_descendant(category_id, new_parent_id, ancestry)

        name = changes.get("name", category.name)
        parent_id = changes.get("parent_id", category.parent_id)
        if name != category.name or parent_id != category.parent_id:
            clash = await self.categories.find_sibling_by_name(
                name,
                parent_id,
                category.is_global,
                category.seller_id,
                exclude_id=category_id,
            )
            if clash:
                raise CategoryExistsError(details={"name": name, "parent_id": parent_id})

        for key, value in changes.items():
            setattr(category, key, value)
        category = await self.categories.save(category)

        logger.info("Category updated", category_id=category_id, fields=sorted(changes))
        return category

    async def delete_category(self, scope: CallerScope, category_id: int) -> None:
        """Delete a category without children or products.

        Raises:
            CategoryHasChildrenError: If subcategories exist.
            CategoryHasProductsError: If products are listed under it.
        """
        category = ensure_category_writable(
            scope, await self.categories.get_by_id(category_id), category_id
        )
        if await self.categories.has_children(category_id):
            raise CategoryHasChildrenError(details={"category_id": category_id})
        if await self.categories.has_products(category_id):
            raise CategoryHasProductsError(details={"category_id": category_id})

        await self.categories.remove(category)
        logger.info("Category deleted", category_id=category_id, seller_id=scope.seller_id)

    async def link_attribute(
        self,
        scope: CallerScope,
        category_id: int,
        attribute_id: int,
    ) -> AttributeDefinition:
        """Make an attribute definition applicable to a category.

        Raises:
            AttributeDefinitionNotFoundError: If the definition is missing.
            AttributeAlreadyLinkedError: If already linked.
        """
        ensure_category_writable(scope, await self.categories.get_by_id(category_id), category_id)
        definition = await self.attributes.get_by_id(attribute_id)
        if definition is None:
            raise AttributeDefinitionNotFoundError(attribute_id)
        if await self.attributes.get_link(category_id, attribute_id):
            raise AttributeAlreadyLinkedError(
                details={"category_id": category_id, "attribute_id": attribute_id}
            )

        await self.attributes.add_link(category_id, attribute_id)
        logger.info("Attribute linked", category_id=category_id, attribute_id=attribute_id)
        return definition

    async def unlink_attribute(self, scope: CallerScope, category_id: int, attribute_id: int) -> None:
        """Remove an attribute link from a category.

        Raises:
            AttributeNotLinkedError: If the attribute is not linked directly.
        """
        ensure_category_writable(scope, await self.categories.get_by_id(category_id), category_id)
        link = await self.attributes.get_link(category_id, attribute_id)
        if link is None:
            raise AttributeNotLinkedError(attribute_id)

        await self.attributes.remove_link(link)
        logger.info("Attribute unlinked", category_id=category_id, attribute_id=attribute_id)

    async def _check_parent(
        self,
        scope: CallerScope,
        parent_id: int,
        is_global: bool,
        seller_id: int | None,
    ) -> Category:
        """Check that a category with the given owner may sit under ``parent_id``.

        Seller categories may sit under global ones or under the same
        seller's categories; global categories only under global ones.
        """
        parent = await self.categories.get_by_id(parent_id)
        if parent is None or not scope.can_see_category(parent):
            raise InvalidParentCategoryError(
                "Parent category does not exist",
                details={"parent_id": parent_id},
            )
        if parent.is_global:
            return parent
        if is_global or parent.seller_id != seller_id:
            raise InvalidParentCategoryError(
                "Parent category belongs to a different owner",
                details={"parent_id": parent_id},
            )
        return parent

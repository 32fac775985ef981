"""Tests for the category service with mocked repositories."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_api.application.category_service import CategoryService
from catalog_api.application.commands import CategoryInput
from catalog_api.domain import CallerScope
from catalog_api.domain.exceptions import (
    AttributeAlreadyLinkedError,
    CategoryExistsError,
    CategoryHasChildrenError,
    CategoryHasProductsError,
    CategoryNotFoundError,
    ForbiddenError,
    InvalidParentCategoryError,
)

ADMIN = CallerScope.admin()
SELLER = CallerScope.seller(7)


def category(id: int, parent_id: int | None = None, seller_id: int | None = 7) -> SimpleNamespace:
    return SimpleNamespace(
        id=id,
        name=f"Category {id}",
        description="",
        parent_id=parent_id,
        is_global=seller_id is None,
        seller_id=seller_id,
    )


def make_service(*rows: SimpleNamespace) -> CategoryService:
    by_id = {row.id: row for row in rows}
    categories = MagicMock()
    categories.get_by_id = AsyncMock(side_effect=lambda category_id: by_id.get(category_id))
    categories.find_sibling_by_name = AsyncMock(return_value=None)
    categories.save = AsyncMock(side_effect=lambda row: row)
    categories.get_ancestry = AsyncMock(return_value=[])
    categories.has_children = AsyncMock(return_value=False)
    categories.has_products = AsyncMock(return_value=False)
    categories.remove = AsyncMock()
    attributes = MagicMock()
    return CategoryService(categories, attributes)


class TestCreateCategory:
    """Tests for category creation."""

    @pytest.mark.asyncio
    async def test_seller_category_under_global_parent(self) -> None:
        """Should let sellers hang their categories under global ones."""
        service = make_service(category(1, seller_id=None))
        created = await service.create_category(SELLER, CategoryInput(name="Shirts", parent_id=1))
        assert created.seller_id == 7
        assert created.is_global is False

    @pytest.mark.asyncio
    async def test_admin_cannot_nest_under_seller_category(self) -> None:
        """Should keep global categories under global parents."""
        service = make_service(category(1, seller_id=7))
        with pytest.raises(InvalidParentCategoryError):
            await service.create_category(ADMIN, CategoryInput(name="Global", parent_id=1))

    @pytest.mark.asyncio
    async def test_foreign_parent_looks_missing(self) -> None:
        """Should not reveal another seller's category as a parent."""
        service = make_service(category(1, seller_id=8))
        with pytest.raises(InvalidParentCategoryError) as exc_info:
            await service.create_category(SELLER, CategoryInput(name="Shirts", parent_id=1))
        assert exc_info.value.message == "Parent category does not exist"

    @pytest.mark.asyncio
    async def test_sibling_name_clash(self) -> None:
        """Should reject a duplicate name under the same parent."""
        service = make_service()
        service.categories.find_sibling_by_name.return_value = category(3)
        with pytest.raises(CategoryExistsError):
            await service.create_category(SELLER, CategoryInput(name="Shirts"))

    @pytest.mark.asyncio
    async def test_storefront_cannot_create(self) -> None:
        """Should refuse writes from read-only callers."""
        service = make_service()
        with pytest.raises(ForbiddenError):
            await service.create_category(CallerScope.public(7), CategoryInput(name="Shirts"))


class TestUpdateCategory:
    """Tests for partial updates and re-parenting."""

    @pytest.mark.asyncio
    async def test_reparent_under_descendant(self) -> None:
        """Should reject moving a category below its own grandchild."""
        service = make_service(category(1), category(2, 1), category(3, 2))
        service.categories.get_ancestry.return_value = [3, 2, 1]
        with pytest.raises(InvalidParentCategoryError):
            await service.update_category(SELLER, 1, {"parent_id": 3})
        service.categories.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_category_looks_missing(self) -> None:
        """Should not reveal that another seller's category exists."""
        service = make_service(category(1, seller_id=8))
        with pytest.raises(CategoryNotFoundError):
            await service.update_category(SELLER, 1, {"name": "Outerwear"})
        service.categories.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rename(self) -> None:
        """Should apply supplied fields and ignore unknown ones."""
        row = category(1)
        service = make_service(row)
        await service.update_category(SELLER, 1, {"name": "Outerwear", "seller_id": 99})
        assert row.name == "Outerwear"
        assert row.seller_id == 7


class TestDeleteCategory:
    """Tests for deletion guards."""

    @pytest.mark.asyncio
    async def test_has_children(self) -> None:
        """Should refuse to delete a category with subcategories."""
        service = make_service(category(1))
        service.categories.has_children.return_value = True
        with pytest.raises(CategoryHasChildrenError):
            await service.delete_category(SELLER, 1)

    @pytest.mark.asyncio
    async def test_has_products(self) -> None:
        """Should refuse to delete a category with products."""
        service = make_service(category(1))
        service.categories.has_products.return_value = True
        with pytest.raises(CategoryHasProductsError):
            await service.delete_category(SELLER, 1)
        service.categories.remove.assert_not_awaited()


class TestAttributeLinks:
    """Tests for linking attribute definitions."""

    @pytest.mark.asyncio
    async def test_already_linked(self) -> None:
        """Should reject a second link to the same definition."""
        service = make_service(category(1))
        service.attributes.get_by_id = AsyncMock(return_value=SimpleNamespace(id=8))
        service.attributes.get_link = AsyncMock(return_value=SimpleNamespace(attribute_id=8))
        with pytest.raises(AttributeAlreadyLinkedError):
            await service.link_attribute(SELLER, 1, 8)

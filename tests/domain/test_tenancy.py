"""Tests for caller scopes and the tenancy gate."""

from types import SimpleNamespace

import pytest

from catalog_api.domain import CallerScope, Role
from catalog_api.domain.exceptions import (
    CategoryNotFoundError,
    ForbiddenError,
    ProductNotFoundError,
    UnauthorizedCategoryUpdateError,
    ValidationError,
)
from catalog_api.domain.tenancy import (
    category_ownership,
    ensure_category_visible,
    ensure_category_writable,
    ensure_product_visible,
    ensure_product_writable,
    require_admin,
    resolve_product_owner,
)

ADMIN = CallerScope.admin(user_id=1)
SELLER = CallerScope.seller(7, user_id=2)
OTHER_SELLER = CallerScope.seller(8)
PUBLIC = CallerScope.public(7)


def product(seller_id: int) -> SimpleNamespace:
    return SimpleNamespace(id=101, seller_id=seller_id)


def category(is_global: bool, seller_id: int | None) -> SimpleNamespace:
    return SimpleNamespace(id=5, is_global=is_global, seller_id=seller_id)


class TestCallerScope:
    """Tests for CallerScope construction."""

    def test_admin_is_unrestricted(self) -> None:
        """Admins have no tenant filter."""
        assert ADMIN.role == Role.ADMIN
        assert ADMIN.tenant_id is None
        assert ADMIN.can_write

    def test_seller_tenant(self) -> None:
        """Sellers read and write their own tenant."""
        assert SELLER.tenant_id == 7
        assert SELLER.can_write

    def test_public_is_read_only(self) -> None:
        """Storefront callers cannot write."""
        assert PUBLIC.tenant_id == 7
        assert not PUBLIC.can_write

    def test_seller_requires_seller_id(self) -> None:
        """Non-admin scopes need a seller id."""
        with pytest.raises(ValueError):
            CallerScope(role=Role.SELLER)


class TestProductGate:
    """Tests for product visibility and write checks."""

    def test_foreign_product_reported_missing(self) -> None:
        """Another tenant's product looks like a missing one."""
        with pytest.raises(ProductNotFoundError):
            ensure_product_visible(OTHER_SELLER, product(7), 101)

    def test_missing_product(self) -> None:
        """None means not found."""
        with pytest.raises(ProductNotFoundError):
            ensure_product_visible(SELLER, None, 101)

    def test_admin_sees_everything(self) -> None:
        """Admins see every tenant's products."""
        assert ensure_product_visible(ADMIN, product(9), 101).seller_id == 9

    def test_public_cannot_write(self) -> None:
        """Storefront callers are forbidden from writes even on visible products."""
        with pytest.raises(ForbiddenError):
            ensure_product_writable(PUBLIC, product(7), 101)

    def test_owner_can_write(self) -> None:
        """The owning seller may write."""
        assert ensure_product_writable(SELLER, product(7), 101)


class TestCategoryGate:
    """Tests for category visibility and write checks."""

    def test_global_visible_to_sellers(self) -> None:
        """Global categories are visible to everyone."""
        assert ensure_category_visible(OTHER_SELLER, category(True, None), 5)

    def test_foreign_seller_category_hidden(self) -> None:
        """A seller cannot see another seller's category."""
        with pytest.raises(CategoryNotFoundError):
            ensure_category_visible(OTHER_SELLER, category(False, 7), 5)

    def test_seller_cannot_modify_global(self) -> None:
        """Global categories belong to admins."""
        with pytest.raises(UnauthorizedCategoryUpdateError):
            ensure_category_writable(SELLER, category(True, None), 5)

    def test_foreign_seller_category_write_looks_missing(self) -> None:
        """Writing another seller's category reports it as missing."""
        with pytest.raises(CategoryNotFoundError) as exc_info:
            ensure_category_writable(OTHER_SELLER, category(False, 7), 5)
        assert exc_info.value.details == {"id": 5}

    def test_owner_can_modify(self) -> None:
        """Sellers may modify their own categories."""
        assert ensure_category_writable(SELLER, category(False, 7), 5)

    def test_admin_can_modify_seller_category(self) -> None:
        """Admins may modify any category."""
        assert ensure_category_writable(ADMIN, category(False, 7), 5)

    def test_new_category_ownership(self) -> None:
        """Admins create global categories, sellers their own."""
        assert category_ownership(ADMIN) == (True, None)
        assert category_ownership(SELLER) == (False, 7)


class TestProductOwner:
    """Tests for resolving the owner of a new product."""

    def test_seller_creates_for_self(self) -> None:
        """A requested seller id is ignored for sellers."""
        assert resolve_product_owner(SELLER, 99) == 7

    def test_admin_must_name_seller(self) -> None:
        """Admins must pass sellerId."""
        with pytest.raises(ValidationError):
            resolve_product_owner(ADMIN, None)
        assert resolve_product_owner(ADMIN, 3) == 3

    def test_require_admin(self) -> None:
        """Only admins pass the admin gate."""
        require_admin(ADMIN)
        with pytest.raises(ForbiddenError):
            require_admin(SELLER)

"""Caller roles, visibility scope and write authorisation.

Every service call receives a ``CallerScope`` resolved by the HTTP layer.
The helpers here decide what the caller may see and what it may change;
they never touch the store.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from catalog_api.domain.exceptions import (
    CategoryNotFoundError,
    ForbiddenError,
    ProductNotFoundError,
    UnauthorizedCategoryUpdateError,
    ValidationError,
)

if TYPE_CHECKING:
    from catalog_api.catalog.models import Category, Product


class Role(str, Enum):
    """Caller roles."""

    ADMIN = "ADMIN"
    SELLER = "SELLER"
    PUBLIC = "PUBLIC"


@dataclass(frozen=True)
class CallerScope:
    """Effective visibility scope of a caller.

    Attributes:
        role: Caller role.
        seller_id: Tenant the caller acts for. None only for admins.
        user_id: Authenticated user, if a token was supplied.
    """

    role: Role
    seller_id: int | None = None
    user_id: int | None = None

    def __post_init__(self) -> None:
        if self.role != Role.ADMIN and not self.seller_id:
            raise ValueError(f"{self.role.value} scope requires a seller id")

    @classmethod
    def admin(cls, user_id: int | None = None) -> "CallerScope":
        """Create an unrestricted admin scope."""
        return cls(role=Role.ADMIN, user_id=user_id)

    @classmethod
    def seller(cls, seller_id: int, user_id: int | None = None) -> "CallerScope":
        """Create a seller scope."""
        return cls(role=Role.SELLER, seller_id=seller_id, user_id=user_id)

    @classmethod
    def public(cls, seller_id: int, user_id: int | None = None) -> "CallerScope":
        """Create a read-only storefront scope."""
        return cls(role=Role.PUBLIC, seller_id=seller_id, user_id=user_id)

    @property
    def is_admin(self) -> bool:
        """Whether the caller bypasses tenant filtering."""
        return self.role == Role.ADMIN

    @property
    def can_write(self) -> bool:
        """Whether the caller may perform any write."""
        return self.role in (Role.ADMIN, Role.SELLER)

    @property
    def tenant_id(self) -> int | None:
        """Seller id to filter reads by, None when unrestricted."""
        return None if self.is_admin else self.seller_id

    def can_see_product(self, product: "Product") -> bool:
        """Check product visibility."""
        return self.is_admin or product.seller_id == self.seller_id

    def can_see_category(self, category: "Category") -> bool:
        """Check category visibility."""
        return self.is_admin or category.is_global or category.seller_id == self.seller_id


# ============================================================================
# Gate checks
# ============================================================================


def require_writer(scope: CallerScope) -> None:
    """Reject read-only callers.

    Raises:
        ForbiddenError: If the caller is a storefront (public) caller.
    """
    if not scope.can_write:
        raise ForbiddenError("Storefront callers cannot modify the catalog")


def require_admin(scope: CallerScope) -> None:
    """Reject anyone but administrators.

    Raises:
        ForbiddenError: If the caller is not an admin.
    """
    if not scope.is_admin:
        raise ForbiddenError("Only administrators can perform this action")


def ensure_product_visible(
    scope: CallerScope,
    product: "Product | None",
    product_id: int,
) -> "Product":
    """Return the product if the caller may see it.

    Products of other tenants are reported as missing so that their
    existence does not leak across sellers.

    Raises:
        ProductNotFoundError: If the product is missing or foreign.
    """
    if product is None or not scope.can_see_product(product):
        raise ProductNotFoundError(product_id)
    return product


def ensure_product_writable(
    scope: CallerScope,
    product: "Product | None",
    product_id: int,
) -> "Product":
    """Return the product if the caller may modify it.

    Raises:
        ForbiddenError: If the caller is read-only.
        ProductNotFoundError: If the product is missing or foreign.
    """
    require_writer(scope)
    return ensure_product_visible(scope, product, product_id)


def ensure_category_visible(
    scope: CallerScope,
    category: "Category | None",
    category_id: int,
) -> "Category":
    """Return the category if the caller may see it.

    Raises:
        CategoryNotFoundError: If the category is missing or foreign.
    """
    if category is None or not scope.can_see_category(category):
        raise CategoryNotFoundError(category_id)
    return category


def ensure_category_writable(
    scope: CallerScope,
    category: "Category | None",
    category_id: int,
) -> "Category":
    """Return the category if the caller may modify it.

    Admins may modify any category. Sellers may modify only the categories
    they own and never a global one.

    Raises:
        ForbiddenError: If the caller is read-only.
        CategoryNotFoundError: If the category is missing or foreign.
        UnauthorizedCategoryUpdateError: If a seller targets a global
            category.
    """
    require_writer(scope)
    category = ensure_category_visible(scope, category, category_id)
    if scope.is_admin:
        return category
    if category.is_global:
        raise UnauthorizedCategoryUpdateError(
            details={"category_id": category_id, "seller_id": scope.seller_id},
        )
    return category


def category_ownership(scope: CallerScope) -> tuple[bool, int | None]:
    """Ownership a new category takes for this caller.

    Returns:
        Tuple of (is_global, seller_id).
    """
    require_writer(scope)
    if scope.is_admin:
        return True, None
    return False, scope.seller_id


def resolve_product_owner(scope: CallerScope, requested_seller_id: int | None) -> int:
    """Seller that will own a newly created product.

    Sellers always create for themselves; admins must name the seller.

    Raises:
        ForbiddenError: If the caller is read-only.
        ValidationError: If an admin did not supply a seller id.
    """
    require_writer(scope)
    if not scope.is_admin:
        return scope.seller_id  # type: ignore[return-value]
    if not requested_seller_id:
        raise ValidationError("sellerId is required when an admin creates a product", field="sellerId")
    return requested_seller_id

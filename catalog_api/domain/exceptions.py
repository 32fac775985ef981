"""Domain exceptions.

All domain-level errors that represent business rule violations.
Every error carries a machine-readable ``code`` and a ``kind``; the HTTP
layer maps the kind to a status code and renders the code verbatim.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Broad classification of domain errors."""

    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAVAILABLE = "unavailable"


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    code: str = "DOMAIN_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION
    default_message: str = "Domain rule violated"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message. Falls back to the
                class default when omitted.
            details: Optional dictionary with additional error context.
        """
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Generic Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised when an inbound payload violates a structural rule."""

    code = "VALIDATION_ERROR"
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable error message.
            field: Name of the offending field, if any.
            details: Optional additional context.
        """
        details = dict(details or {})
        if field is not None:
            details["field"] = field
        super().__init__(message, details=details)
        self.field = field


class NotFoundError(DomainError):
    """Base class for missing (or invisible) entities."""

    code = "NOT_FOUND"
    kind = ErrorKind.NOT_FOUND
    default_message = "Resource not found"
    entity = "resource"

    def __init__(self, entity_id: Any = None, message: str | None = None) -> None:
        """Initialize not found error.

        Args:
            entity_id: Identifier that was looked up.
            message: Optional override message.
        """
        details = {"id": entity_id} if entity_id is not None else {}
        super().__init__(message, details=details)
        self.entity_id = entity_id


class ConflictError(DomainError):
    """Base class for duplicate or already-existing entities."""

    code = "CONFLICT"
    kind = ErrorKind.CONFLICT
    default_message = "Resource already exists"


class DuplicateEntryError(ConflictError):
    """Raised when the store rejects a write on a unique constraint."""

    code = "DUPLICATE_ENTRY"
    default_message = "A record with the same unique values already exists"


class StoreError(DomainError):
    """Raised when the store fails for reasons other than constraints."""

    code = "STORE_UNAVAILABLE"
    kind = ErrorKind.UNAVAILABLE
    default_message = "The catalog store is temporarily unavailable"


# ============================================================================
# Authentication & Tenancy Errors
# ============================================================================


class AuthenticationRequiredError(DomainError):
    """Raised when neither a bearer token nor a seller header is supplied."""

    code = "AUTH_REQUIRED"
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Authentication required"


class InvalidTokenError(DomainError):
    """Raised when a bearer token cannot be decoded or lacks claims."""

    code = "TOKEN_INVALID"
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Invalid token"


class InvalidSellerIdError(DomainError):
    """Raised when the seller header is empty, malformed or zero."""

    code = "SELLER_ID_INVALID"
    default_message = "Seller ID header must be a positive integer"


class ForbiddenError(DomainError):
    """Raised when the caller's role may not perform the operation."""

    code = "FORBIDDEN"
    kind = ErrorKind.FORBIDDEN
    default_message = "You do not have permission to perform this action"


# ============================================================================
# Category Errors
# ============================================================================


class CategoryNotFoundError(NotFoundError):
    """Raised when a category does not exist or is outside the caller scope."""

    code = "CATEGORY_NOT_FOUND"
    default_message = "Category not found"
    entity = "category"


class CategoryExistsError(ConflictError):
    """Raised when a sibling with the same name exists in the same scope."""

    code = "CATEGORY_EXISTS"
    default_message = "Category with this name already exists in the same parent"


class CategoryHasProductsError(DomainError):
    """Raised when deleting a category that still holds products."""

    code = "CATEGORY_HAS_PRODUCTS"
    default_message = "Cannot delete category with active products"


class CategoryHasChildrenError(DomainError):
    """Raised when deleting a category that still has subcategories."""

    code = "CATEGORY_HAS_CHILDREN"
    default_message = "Cannot delete category with child categories"


class InvalidParentCategoryError(DomainError):
    """Raised when a parent does not exist or would introduce a cycle."""

    code = "INVALID_PARENT_CATEGORY"
    default_message = "Invalid parent category"


class UnauthorizedCategoryUpdateError(DomainError):
    """Raised when a seller tries to mutate a global category."""

    code = "UNAUTHORIZED_CATEGORY_UPDATE"
    kind = ErrorKind.FORBIDDEN
    default_message = "You are not authorized to modify this category"


# ============================================================================
# Attribute Definition Errors
# ============================================================================


class AttributeDefinitionNotFoundError(NotFoundError):
    """Raised when an attribute definition does not exist."""

    code = "ATTRIBUTE_DEFINITION_NOT_FOUND"
    default_message = "Attribute definition not found"
    entity = "attribute_definition"


class AttributeDefinitionExistsError(ConflictError):
    """Raised when an attribute key is already taken."""

    code = "ATTRIBUTE_DEFINITION_EXISTS"
    default_message = "Attribute definition with this key already exists"


class AttributeDefinitionInUseError(DomainError):
    """Raised when deleting a definition still referenced by products."""

    code = "ATTRIBUTE_DEFINITION_IN_USE"
    default_message = "Attribute definition is used by existing products"


class AttributeAlreadyLinkedError(ConflictError):
    """Raised when linking an attribute that is already on the category."""

    code = "ATTRIBUTE_ALREADY_LINKED"
    default_message = "Attribute is already linked to this category"


class AttributeNotLinkedError(NotFoundError):
    """Raised when unlinking an attribute that is not on the category."""

    code = "ATTRIBUTE_NOT_LINKED"
    default_message = "Attribute is not linked to this category"
    entity = "category_attribute"


# ============================================================================
# Product Errors
# ============================================================================


class ProductNotFoundError(NotFoundError):
    """Raised when a product does not exist or belongs to another seller."""

    code = "PRODUCT_NOT_FOUND"
    default_message = "Product not found"
    entity = "product"


class ProductCategoryInvalidError(DomainError):
    """Raised when a product references a missing or invisible category."""

    code = "PRODUCT_CATEGORY_INVALID"
    default_message = "Product category is invalid"


class PackageOptionNotFoundError(NotFoundError):
    """Raised when a package option does not belong to the product."""

    code = "PACKAGE_OPTION_NOT_FOUND"
    default_message = "Package option not found"
    entity = "package_option"


# ============================================================================
# Option Errors
# ============================================================================


class ProductHasNoOptionsError(DomainError):
    """Raised when variant options are required but none are available."""

    code = "PRODUCT_HAS_NO_OPTIONS"
    default_message = "Product has no options to select a variant by"


class InvalidOptionNameError(DomainError):
    """Raised when a variant references an option the product does not define."""

    code = "INVALID_OPTION_NAME"
    default_message = "Option name is not defined on this product"

    def __init__(self, option_name: str) -> None:
        """Initialize invalid option name error.

        Args:
            option_name: The unknown option name.
        """
        super().__init__(
            f"Option '{option_name}' is not defined on this product",
            details={"option_name": option_name},
        )


class ProductOptionNotFoundError(NotFoundError):
    """Raised when an option does not exist."""

    code = "PRODUCT_OPTION_NOT_FOUND"
    default_message = "Product option not found"
    entity = "product_option"


class ProductOptionNameExistsError(ConflictError):
    """Raised when an option name is already used on the product."""

    code = "PRODUCT_OPTION_NAME_EXISTS"
    default_message = "Option with this name already exists for the product"


class ProductOptionInUseError(DomainError):
    """Raised when deleting an option still referenced by variants."""

    code = "PRODUCT_OPTION_IN_USE"
    default_message = "Cannot delete option that is being used by variants"

    def __init__(self, option_id: int, variant_count: int) -> None:
        """Initialize option in use error.

        Args:
            option_id: Option being deleted.
            variant_count: Number of variants using the option.
        """
        super().__init__(
            f"{self.default_message} (used by {variant_count} variants)",
            details={"option_id": option_id, "variant_count": variant_count},
        )


class ProductOptionMismatchError(DomainError):
    """Raised when an option does not belong to the addressed product."""

    code = "PRODUCT_OPTION_MISMATCH"
    default_message = "Option does not belong to this product"


class ProductOptionValueNotFoundError(NotFoundError):
    """Raised when an option value does not exist."""

    code = "PRODUCT_OPTION_VALUE_NOT_FOUND"
    default_message = "Product option value not found"
    entity = "product_option_value"


class ProductOptionValueExistsError(ConflictError):
    """Raised when a value is duplicated within an option."""

    code = "PRODUCT_OPTION_VALUE_EXISTS"
    default_message = "Option value already exists for this option"


class ProductOptionValueInUseError(DomainError):
    """Raised when deleting a value still referenced by variants."""

    code = "PRODUCT_OPTION_VALUE_IN_USE"
    default_message = "Cannot delete option value that is being used by variants"

    def __init__(self, value_id: int, variant_count: int) -> None:
        """Initialize option value in use error.

        Args:
            value_id: Option value being deleted.
            variant_count: Number of variants using the value.
        """
        super().__init__(
            f"{self.default_message} (used by {variant_count} variants)",
            details={"value_id": value_id, "variant_count": variant_count},
        )


class ProductOptionValueMismatchError(DomainError):
    """Raised when a value does not belong to the addressed option."""

    code = "PRODUCT_OPTION_VALUE_MISMATCH"
    default_message = "Option value does not belong to this option"


# ============================================================================
# Product Attribute Errors
# ============================================================================


class ProductAttributeNotFoundError(NotFoundError):
    """Raised when a product attribute does not exist on the product."""

    code = "PRODUCT_ATTRIBUTE_NOT_FOUND"
    default_message = "Product attribute not found"
    entity = "product_attribute"


class ProductAttributeExistsError(ConflictError):
    """Raised when the product already has a value for the definition."""

    code = "PRODUCT_ATTRIBUTE_EXISTS"
    default_message = "Product already has a value for this attribute"


class InvalidAttributeValueError(DomainError):
    """Raised when a value is outside the definition's allowed values."""

    code = "INVALID_ATTRIBUTE_VALUE"
    default_message = "Attribute value is not one of the allowed values"

    def __init__(self, key: str, value: str, allowed_values: list[str]) -> None:
        """Initialize invalid attribute value error.

        Args:
            key: Attribute definition key.
            value: Rejected value.
            allowed_values: Values the definition accepts.
        """
        super().__init__(
            f"Value '{value}' is not allowed for attribute '{key}'",
            details={"key": key, "value": value, "allowed_values": allowed_values},
        )


# ============================================================================
# Variant Errors
# ============================================================================


class VariantNotFoundError(NotFoundError):
    """Raised when a variant does not exist on the product."""

    code = "VARIANT_NOT_FOUND"
    default_message = "Variant not found"
    entity = "variant"


class VariantNotFoundWithOptionsError(NotFoundError):
    """Raised when no variant matches a requested option selection."""

    code = "VARIANT_NOT_FOUND_WITH_OPTIONS"
    default_message = "No variant matches the selected options"
    entity = "variant"

    def __init__(
        self,
        requested_options: dict[str, str],
        available_options: dict[str, list[str]],
    ) -> None:
        """Initialize variant not found with options error.

        Args:
            requested_options: Option selection supplied by the caller.
            available_options: Values available per option name.
        """
        super().__init__()
        self.details = {
            "requested_options": requested_options,
            "available_options": available_options,
        }


class VariantSkuExistsError(ConflictError):
    """Raised when a SKU is already used by another variant of the product."""

    code = "VARIANT_SKU_EXISTS"
    default_message = "Variant with this SKU already exists"


class VariantCombinationExistsError(ConflictError):
    """Raised when two variants would share the same option combination."""

    code = "VARIANT_OPTION_COMBINATION_EXISTS"
    default_message = "A variant with this option combination already exists"


class LastVariantDeleteError(DomainError):
    """Raised when deleting the only remaining variant of a product."""

    code = "LAST_VARIANT_DELETE_NOT_ALLOWED"
    default_message = "Cannot delete the last variant of a product"


class InvalidStockOperationError(DomainError):
    """Raised when a stock update names an unknown operation."""

    code = "INVALID_STOCK_OPERATION"
    default_message = "Stock operation must be one of: set, add, subtract"


class InsufficientStockError(DomainError):
    """Raised when a subtraction would drive stock below zero."""

    code = "INSUFFICIENT_STOCK_FOR_OPERATION"
    default_message = "Insufficient stock for this operation"

    def __init__(self, current_stock: int, requested: int) -> None:
        """Initialize insufficient stock error.

        Args:
            current_stock: Stock on hand.
            requested: Amount the caller attempted to subtract.
        """
        super().__init__(
            f"Cannot subtract {requested} from stock of {current_stock}",
            details={"current_stock": current_stock, "requested": requested},
        )


class BulkUpdateEmptyListError(DomainError):
    """Raised when a bulk update carries no items."""

    code = "BULK_UPDATE_EMPTY_LIST"
    default_message = "Bulk update requires at least one item"

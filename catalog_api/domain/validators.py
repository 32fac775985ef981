"""Structural and referential validation rules.

Validators are plain functions that raise domain errors. They receive
already-loaded entities from the services and never query the store.
"""

import re
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from catalog_api.domain.exceptions import (
    InvalidAttributeValueError,
    InvalidOptionNameError,
    InvalidParentCategoryError,
    ProductOptionValueExistsError,
    ProductOptionValueNotFoundError,
    ValidationError,
)

ATTRIBUTE_KEY_PATTERN = re.compile(r"^[a-z0-9_]+$")
COLOR_CODE_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
_NON_WORD = re.compile(r"[^0-9a-z]+")

MAX_TAGS = 20

# (min, max) lengths per field
CATEGORY_LIMITS = {"name": (3, 100), "description": (0, 500)}
ATTRIBUTE_LIMITS = {
    "key": (3, 50),
    "name": (3, 100),
    "unit": (0, 20),
    "description": (0, 500),
}
PRODUCT_LIMITS = {
    "name": (3, 200),
    "brand": (0, 100),
    "base_sku": (0, 50),
    "short_description": (0, 500),
    "long_description": (0, 5000),
}
OPTION_LIMITS = {"name": (2, 50), "display_name": (3, 100)}
OPTION_VALUE_LIMITS = {"value": (1, 100), "display_name": (1, 100)}
VARIANT_LIMITS = {"sku": (1, 100)}
PACKAGE_OPTION_LIMITS = {"name": (1, 100), "description": (0, 500)}
PRODUCT_ATTRIBUTE_LIMITS = {"value": (1, 500)}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def validate_length(value: str | None, field: str, min_len: int, max_len: int) -> None:
    """Check a string length against inclusive bounds.

    Args:
        value: String to check. None is treated as empty.
        field: Snake-case field name used in the error.
        min_len: Minimum length.
        max_len: Maximum length.

    Raises:
        ValidationError: If the length is out of bounds.
    """
    length = len(value or "")
    if length < min_len or length > max_len:
        if min_len == 0:
            message = f"{_camel(field)} must be at most {max_len} characters"
        else:
            message = f"{_camel(field)} must be between {min_len} and {max_len} characters"
        raise ValidationError(message, field=_camel(field))


def validate_fields(values: Mapping[str, Any], limits: Mapping[str, tuple[int, int]]) -> None:
    """Apply length limits to the fields present in ``values``."""
    for field, (min_len, max_len) in limits.items():
        if field in values:
            validate_length(values[field], field, min_len, max_len)


def require_changes(changes: Mapping[str, Any]) -> None:
    """Reject empty partial updates.

    Raises:
        ValidationError: If no field was supplied.
    """
    if not changes:
        raise ValidationError("At least one field must be provided for update")


def validate_tags(tags: list[str] | None) -> None:
    """Check the tag list size."""
    if tags is not None and len(tags) > MAX_TAGS:
        raise ValidationError(f"A product can have at most {MAX_TAGS} tags", field="tags")


def validate_positive(value: Decimal | int | None, field: str) -> None:
    """Require a strictly positive number."""
    if value is None or value <= 0:
        raise ValidationError(f"{_camel(field)} must be greater than 0", field=_camel(field))


def validate_non_negative(value: Decimal | int | None, field: str) -> None:
    """Require zero or a positive number."""
    if value is None or value < 0:
        raise ValidationError(f"{_camel(field)} must be 0 or greater", field=_camel(field))


# ============================================================================
# Categories
# ============================================================================


def validate_category(values: Mapping[str, Any]) -> None:
    """Validate category fields present in ``values``."""
    validate_fields(values, CATEGORY_LIMITS)


def check_parent_not_descendant(
    category_id: int,
    new_parent_id: int | None,
    parent_ancestry: Iterable[int],
) -> None:
    """Reject a parent change that would create a cycle.

    Args:
        category_id: Category being updated.
        new_parent_id: Proposed parent.
        parent_ancestry: The proposed parent followed by all its ancestors.

    Raises:
        InvalidParentCategoryError: If the category is its own parent or
            appears among the ancestors of the proposed parent.
    """
    if new_parent_id is None:
        return
    if new_parent_id == category_id:
        raise InvalidParentCategoryError("A category cannot be its own parent")
    visited: set[int] = set()
    for ancestor_id in parent_ancestry:
        if ancestor_id == category_id:
            raise InvalidParentCategoryError(
                "Cannot move a category under one of its descendants",
                details={"category_id": category_id, "parent_id": new_parent_id},
            )
        if ancestor_id in visited:
            break
        visited.add(ancestor_id)


# ============================================================================
# Attribute definitions
# ============================================================================


def validate_attribute_definition(values: Mapping[str, Any]) -> None:
    """Validate attribute definition fields present in ``values``."""
    validate_fields(values, ATTRIBUTE_LIMITS)
    if "key" in values and not ATTRIBUTE_KEY_PATTERN.match(values["key"]):
        raise ValidationError(
            "key must contain only lowercase letters, numbers, and underscores",
            field="key",
        )
    allowed = values.get("allowed_values")
    if allowed:
        if any(not item for item in allowed):
            raise ValidationError("allowedValues cannot contain empty values", field="allowedValues")
        if len(set(allowed)) != len(allowed):
            raise ValidationError("Duplicate values found in allowedValues", field="allowedValues")


def validate_attribute_value(key: str, allowed_values: list[str], value: str) -> None:
    """Check a product attribute value against its definition.

    Raises:
        ValidationError: If the value is empty or too long.
        InvalidAttributeValueError: If the definition restricts values and
            ``value`` is not among them.
    """
    validate_fields({"value": value}, PRODUCT_ATTRIBUTE_LIMITS)
    if allowed_values and value not in allowed_values:
        raise InvalidAttributeValueError(key, value, allowed_values)


# ============================================================================
# Products
# ============================================================================


def validate_product(values: Mapping[str, Any]) -> None:
    """Validate product fields present in ``values``."""
    validate_fields(values, PRODUCT_LIMITS)
    if "tags" in values:
        validate_tags(values["tags"])


def validate_package_option(values: Mapping[str, Any]) -> None:
    """Validate package option fields present in ``values``."""
    validate_fields(values, PACKAGE_OPTION_LIMITS)
    if "price" in values:
        validate_positive(values["price"], "price")
    if "quantity" in values:
        validate_positive(values["quantity"], "quantity")


# ============================================================================
# Options and option values
# ============================================================================


def normalize_option_name(name: str) -> str:
    """Normalise an option name to lower snake case ("Shoe Size" -> "shoe_size")."""
    return _NON_WORD.sub("_", name.strip().lower()).strip("_")


def normalize_option_value(value: str) -> str:
    """Normalise an option value to trimmed lower case."""
    return value.strip().lower()


def validate_option(values: Mapping[str, Any]) -> None:
    """Validate option fields present in ``values``."""
    validate_fields(values, OPTION_LIMITS)
    if "name" in values and not normalize_option_name(values["name"]):
        raise ValidationError("Option name must contain letters or digits", field="name")


def validate_option_value(values: Mapping[str, Any]) -> None:
    """Validate option value fields present in ``values``."""
    validate_fields(values, OPTION_VALUE_LIMITS)
    color_code = values.get("color_code")
    if color_code and not COLOR_CODE_PATTERN.match(color_code):
        raise ValidationError("colorCode must be a hex color like #FF0000", field="colorCode")


def check_unique_option_values(new_values: Iterable[str], existing_values: Iterable[str] = ()) -> None:
    """Reject duplicates within a batch and against existing values.

    Values are compared after normalisation.

    Raises:
        ProductOptionValueExistsError: On the first duplicate found.
    """
    existing = set(existing_values)
    seen: set[str] = set()
    for raw in new_values:
        value = normalize_option_value(raw)
        if value in existing:
            raise ProductOptionValueExistsError(
                f"Option value already exists: {value}",
                details={"value": value},
            )
        if value in seen:
            raise ProductOptionValueExistsError(
                f"Duplicate option value in request: {value}",
                details={"value": value},
            )
        seen.add(value)


# ============================================================================
# Variants
# ============================================================================


def validate_variant(values: Mapping[str, Any]) -> None:
    """Validate variant fields present in ``values``."""
    validate_fields(values, VARIANT_LIMITS)
    if "price" in values:
        validate_non_negative(values["price"], "price")
    if "stock" in values:
        validate_non_negative(values["stock"], "stock")


def resolve_selection(
    option_index: Mapping[str, tuple[int, Mapping[str, int]]],
    selection: Mapping[str, str],
) -> dict[int, int]:
    """Map an option selection to option and value ids.

    Args:
        option_index: Option name -> (option id, {value -> value id}).
        selection: Requested option name -> value.

    Returns:
        Option id -> option value id, one entry per product option.

    Raises:
        InvalidOptionNameError: If the selection names an unknown option.
        ProductOptionValueNotFoundError: If a value is not defined on its option.
        ValidationError: If the selection misses any product option.
    """
    resolved: dict[int, int] = {}
    for raw_name, raw_value in selection.items():
        name = normalize_option_name(raw_name)
        if name not in option_index:
            raise InvalidOptionNameError(raw_name)
        option_id, values = option_index[name]
        value = normalize_option_value(raw_value)
        if value not in values:
            raise ProductOptionValueNotFoundError(
                message=f"Value '{raw_value}' is not defined for option '{raw_name}'",
            )
        resolved[option_id] = values[value]

    missing = sorted(
        name for name, (option_id, _) in option_index.items() if option_id not in resolved
    )
    if missing:
        raise ValidationError(
            f"Variant must select a value for every option; missing: {', '.join(missing)}",
            field="options",
            details={"missing_options": missing},
        )
    return resolved


def pick_default_index(flags: list[bool]) -> int | None:
    """Index of the variant that should be the default.

    The last variant flagged as default wins; without any flag, the first
    variant becomes the default.

    Returns:
        Index into ``flags``, or None when the list is empty.
    """
    if not flags:
        return None
    for index in range(len(flags) - 1, -1, -1):
        if flags[index]:
            return index
    return 0

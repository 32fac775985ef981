"""Tests for domain validators."""

from decimal import Decimal

import pytest

from catalog_api.domain.exceptions import (
    InvalidAttributeValueError,
    InvalidOptionNameError,
    InvalidParentCategoryError,
    ProductOptionValueExistsError,
    ProductOptionValueNotFoundError,
    ValidationError,
)
from catalog_api.domain.validators import (
    check_parent_not_descendant,
    check_unique_option_values,
    normalize_option_name,
    normalize_option_value,
    pick_default_index,
    require_changes,
    resolve_selection,
    validate_attribute_definition,
    validate_attribute_value,
    validate_category,
    validate_option_value,
    validate_package_option,
    validate_product,
    validate_variant,
)


class TestLengthRules:
    """Tests for field length limits."""

    def test_category_name_too_short(self) -> None:
        """Category names need at least 3 characters."""
        with pytest.raises(ValidationError) as exc_info:
            validate_category({"name": "ab"})
        assert exc_info.value.details["field"] == "name"

    def test_category_without_name_is_accepted_for_partial_update(self) -> None:
        """Absent fields are not validated."""
        validate_category({"description": "only description"})

    def test_product_field_reported_in_camel_case(self) -> None:
        """Errors name the field as the API spells it."""
        with pytest.raises(ValidationError) as exc_info:
            validate_product({"short_description": "x" * 501})
        assert exc_info.value.details["field"] == "shortDescription"

    def test_product_too_many_tags(self) -> None:
        """More than 20 tags is rejected."""
        with pytest.raises(ValidationError):
            validate_product({"tags": [f"t{i}" for i in range(21)]})

    def test_empty_partial_update_rejected(self) -> None:
        """A partial update must carry at least one field."""
        with pytest.raises(ValidationError):
            require_changes({})


class TestCategoryHierarchy:
    """Tests for the parent cycle check."""

    def test_own_parent_rejected(self) -> None:
        """A category cannot be its own parent."""
        with pytest.raises(InvalidParentCategoryError):
            check_parent_not_descendant(1, 1, [1])

    def test_descendant_parent_rejected(self) -> None:
        """Moving A under its grandchild C creates a cycle."""
        # C(3) -> B(2) -> A(1)
        with pytest.raises(InvalidParentCategoryError):
            check_parent_not_descendant(1, 3, [3, 2, 1])

    def test_unrelated_parent_accepted(self) -> None:
        """Moving under a sibling branch is fine."""
        check_parent_not_descendant(1, 5, [5, 4])

    def test_root_accepted(self) -> None:
        """Moving to the root never cycles."""
        check_parent_not_descendant(1, None, [])


class TestAttributeRules:
    """Tests for attribute definitions and values."""

    def test_key_pattern(self) -> None:
        """Keys are lowercase letters, digits and underscores."""
        with pytest.raises(ValidationError):
            validate_attribute_definition({"key": "Screen-Size"})
        validate_attribute_definition({"key": "screen_size_2"})

    def test_allowed_values_must_be_unique(self) -> None:
        """Duplicate allowed values are rejected."""
        with pytest.raises(ValidationError):
            validate_attribute_definition({"allowed_values": ["red", "red"]})

    def test_allowed_values_cannot_be_empty_strings(self) -> None:
        """Empty strings are not valid allowed values."""
        with pytest.raises(ValidationError):
            validate_attribute_definition({"allowed_values": ["red", ""]})

    def test_value_outside_allowed_values(self) -> None:
        """Restricted definitions only accept their values."""
        with pytest.raises(InvalidAttributeValueError) as exc_info:
            validate_attribute_value("material", ["cotton", "wool"], "silk")
        assert exc_info.value.details["allowed_values"] == ["cotton", "wool"]

    def test_free_text_value_accepted(self) -> None:
        """An empty allowed list means free text."""
        validate_attribute_value("model", [], "X-100")


class TestOptionRules:
    """Tests for option normalisation and values."""

    def test_option_name_normalised(self) -> None:
        """Option names become lower snake case."""
        assert normalize_option_name("  Shoe Size ") == "shoe_size"

    def test_option_value_normalised(self) -> None:
        """Option values are trimmed and lowercased."""
        assert normalize_option_value(" Red ") == "red"

    def test_color_code_format(self) -> None:
        """Color codes must be #RRGGBB."""
        with pytest.raises(ValidationError):
            validate_option_value({"color_code": "red"})
        validate_option_value({"color_code": "#FF0000"})

    def test_duplicate_against_existing(self) -> None:
        """New values may not clash with stored ones after normalisation."""
        with pytest.raises(ProductOptionValueExistsError):
            check_unique_option_values(["RED"], ["red", "blue"])

    def test_duplicate_within_batch(self) -> None:
        """A batch cannot repeat a value."""
        with pytest.raises(ProductOptionValueExistsError):
            check_unique_option_values(["green", " Green"])


class TestVariantRules:
    """Tests for variant fields and option selection."""

    INDEX = {
        "color": (1, {"red": 11, "blue": 12}),
        "size": (2, {"s": 21, "m": 22}),
    }

    def test_free_variant_allowed(self) -> None:
        """Zero price is a valid variant price."""
        validate_variant({"sku": "FREE-1", "price": Decimal("0"), "stock": 1})

    def test_negative_price_rejected(self) -> None:
        """Negative prices are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            validate_variant({"price": Decimal("-0.01")})
        assert exc_info.value.message == "price must be 0 or greater"

    def test_package_price_must_be_positive(self) -> None:
        """Package options still need a price above zero."""
        with pytest.raises(ValidationError):
            validate_package_option({"price": Decimal("0")})

    def test_stock_cannot_be_negative(self) -> None:
        """Negative stock is rejected."""
        with pytest.raises(ValidationError):
            validate_variant({"stock": -1})

    def test_package_quantity_must_be_positive(self) -> None:
        """Package options need a positive quantity."""
        with pytest.raises(ValidationError):
            validate_package_option({"quantity": 0})

    def test_selection_resolved_to_ids(self) -> None:
        """Names and values are normalised before lookup."""
        resolved = resolve_selection(self.INDEX, {"Color": "RED", "size": "m"})
        assert resolved == {1: 11, 2: 22}

    def test_unknown_option_name(self) -> None:
        """Selecting an undefined option fails."""
        with pytest.raises(InvalidOptionNameError):
            resolve_selection(self.INDEX, {"material": "wool", "color": "red", "size": "s"})

    def test_unknown_option_value(self) -> None:
        """Selecting an undefined value fails."""
        with pytest.raises(ProductOptionValueNotFoundError):
            resolve_selection(self.INDEX, {"color": "green", "size": "s"})

    def test_missing_option_rejected(self) -> None:
        """Every option needs a value."""
        with pytest.raises(ValidationError) as exc_info:
            resolve_selection(self.INDEX, {"color": "red"})
        assert exc_info.value.details["missing_options"] == ["size"]


class TestDefaultSelection:
    """Tests for picking the default variant."""

    def test_last_flag_wins(self) -> None:
        """With several flags, the last one is the default."""
        assert pick_default_index([True, False, True]) == 2

    def test_first_without_flags(self) -> None:
        """Without flags, the first variant is the default."""
        assert pick_default_index([False, False]) == 0

    def test_empty(self) -> None:
        """No variants means no default."""
        assert pick_default_index([]) is None

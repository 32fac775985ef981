"""Helpers shared by the product-scoped services.

Covers loading a product under a caller scope, turning option, variant,
attribute and package option inputs into rows, and resolving variant
option selections.
"""

import itertools
from collections.abc import Mapping, Sequence

from catalog_api.application.commands import (
    OptionInput,
    OptionValueInput,
    PackageOptionInput,
    ProductAttributeInput,
    VariantInput,
)
from catalog_api.catalog.models import (
    AttributeDefinition,
    PackageOption,
    Product,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
)
from catalog_api.catalog.repositories import AttributeDefinitionRepository, ProductRepository
from catalog_api.domain.exceptions import (
    AttributeDefinitionNotFoundError,
    InvalidOptionNameError,
    ProductAttributeExistsError,
    ProductOptionNameExistsError,
    ValidationError,
    VariantCombinationExistsError,
    VariantSkuExistsError,
)
from catalog_api.domain.tenancy import (
    CallerScope,
    ensure_product_visible,
    ensure_product_writable,
)
from catalog_api.domain.validators import (
    check_unique_option_values,
    normalize_option_name,
    normalize_option_value,
    resolve_selection,
    validate_attribute_value,
    validate_option,
    validate_option_value,
    validate_package_option,
    validate_variant,
)

OptionIndex = dict[str, tuple[int, dict[str, int]]]


async def load_product(
    products: ProductRepository,
    scope: CallerScope,
    product_id: int,
    write: bool = False,
) -> Product:
    """Load a product the caller may read, or write when ``write`` is set.

    Writes lock the product row so concurrent writers on the same product
    serialise.

    Raises:
        ForbiddenError: If writing as a read-only caller.
        ProductNotFoundError: If missing or owned by another seller.
    """
    if write:
        return ensure_product_writable(
            scope, await products.get_by_id(product_id, for_update=True), product_id
        )
    return ensure_product_visible(scope, await products.get_by_id(product_id), product_id)


def build_option_index(options: Sequence[ProductOption]) -> OptionIndex:
    """Index options (values loaded) by name then value."""
    return {
        option.name: (option.id, {value.value: value.id for value in option.values})
        for option in options
    }


# ============================================================================
# Options
# ============================================================================


def option_value_row(data: OptionValueInput) -> ProductOptionValue:
    """Validate an option value input and build its row."""
    validate_option_value(
        {"value": data.value, "display_name": data.display_name, "color_code": data.color_code}
    )
    return ProductOptionValue(
        value=normalize_option_value(data.value),
        display_name=data.display_name,
        color_code=data.color_code or "",
        position=data.position,
    )


def validate_option_inputs(
    options: Sequence[OptionInput],
    existing_names: Sequence[str] = (),
) -> None:
    """Validate a batch of options with their values.

    Raises:
        ValidationError: If a field is out of bounds.
        ProductOptionNameExistsError: If two options share a normalised name.
        ProductOptionValueExistsError: If an option repeats a value.
    """
    seen = set(existing_names)
    for option in options:
        validate_option({"name": option.name, "display_name": option.display_name})
        name = normalize_option_name(option.name)
        if name in seen:
            raise ProductOptionNameExistsError(
                f"Option with name '{name}' already exists for the product",
                details={"name": name},
            )
        seen.add(name)
        check_unique_option_values([value.value for value in option.values])


def option_row(product_id: int, data: OptionInput) -> ProductOption:
    """Build an option row with its value rows attached."""
    return ProductOption(
        product_id=product_id,
        name=normalize_option_name(data.name),
        display_name=data.display_name,
        position=data.position,
        values=[option_value_row(value) for value in data.values],
    )


# ============================================================================
# Variants
# ============================================================================


def resolve_variant_selections(
    variants: Sequence[VariantInput],
    index: OptionIndex,
    taken_skus: Mapping[str, int | None] | None = None,
    taken_combinations: Mapping[frozenset, int | None] | None = None,
) -> list[dict[int, int]]:
    """Validate variant inputs and resolve their option selections.

    Args:
        variants: Variant inputs in request order.
        index: Option index of the product.
        taken_skus: SKUs already used on the product -> owning variant ID.
        taken_combinations: Selections already used -> owning variant ID.

    Returns:
        Option ID -> value ID per variant, in request order.

    Raises:
        ValidationError: If fields are invalid, a selection is incomplete,
            or a product without options gets more than one variant.
        InvalidOptionNameError: If a variant names an unknown option.
        ProductOptionValueNotFoundError: If a value is not on its option.
        VariantSkuExistsError: If a SKU repeats.
        VariantCombinationExistsError: If a combination repeats.
    """
    skus: dict[str, object] = dict(taken_skus or {})
    combinations: dict[frozenset, object] = dict(taken_combinations or {})
    updated_ids = {data.id for data in variants if data.id is not None}
    untouched = {owner for owner in combinations.values() if owner not in updated_ids}
    if not index and len(variants) + len(untouched) > 1:
        raise ValidationError(
            "A product without options can have exactly one variant",
            field="variants",
        )

    resolved: list[dict[int, int]] = []
    for position, data in enumerate(variants):
        validate_variant({"sku": data.sku, "price": data.price, "stock": data.stock})
        identity = data.id if data.id is not None else ("new", position)

        if data.sku in skus and skus[data.sku] != identity:
            raise VariantSkuExistsError(
                f"Variant with SKU '{data.sku}' already exists",
                details={"sku": data.sku},
            )
        skus[data.sku] = identity

        if not index and data.options:
            raise InvalidOptionNameError(next(iter(data.options)))
        selection = resolve_selection(index, data.options) if index else {}

        key = frozenset(selection.items())
        if key in combinations and combinations[key] != identity:
            raise VariantCombinationExistsError(details={"options": data.options})
        combinations[key] = identity
        resolved.append(selection)
    return resolved


def check_variant_closure(
    options: Sequence[OptionInput],
    selections: Sequence[Mapping[int, int]],
) -> None:
    """Require one variant per combination of declared option values.

    ``selections`` are keyed by option position with value positions, as
    resolved against a preview index of ``options``.

    Raises:
        ValidationError: If some combination has no variant.
    """
    if not options:
        return
    supplied = {frozenset(selection.items()) for selection in selections}
    missing = []
    for combination in itertools.product(*(range(len(option.values)) for option in options)):
        if frozenset(enumerate(combination)) in supplied:
            continue
        missing.append(
            {
                normalize_option_name(option.name): normalize_option_value(option.values[n].value)
                for option, n in zip(options, combination)
            }
        )
    if missing:
        raise ValidationError(
            "Variants must cover every combination of option values",
            field="variants",
            details={"missing_combinations": missing},
        )


def variant_row(product_id: int, data: VariantInput, is_default: bool) -> ProductVariant:
    """Build a variant row; ``in_stock`` follows stock unless given."""
    return ProductVariant(
        product_id=product_id,
        sku=data.sku,
        price=data.price,
        stock=data.stock,
        in_stock=data.in_stock if data.in_stock is not None else data.stock > 0,
        allow_purchase=data.allow_purchase,
        is_default=is_default,
        is_popular=data.is_popular,
        images=list(data.images),
    )


def apply_variant_input(variant: ProductVariant, data: VariantInput) -> None:
    """Copy writable fields of a variant input onto an existing row."""
    variant.sku = data.sku
    variant.price = data.price
    variant.stock = data.stock
    variant.in_stock = data.in_stock if data.in_stock is not None else data.stock > 0
    variant.allow_purchase = data.allow_purchase
    variant.is_popular = data.is_popular
    variant.images = list(data.images)


# ============================================================================
# Attributes and package options
# ============================================================================


async def check_attribute_inputs(
    attributes: AttributeDefinitionRepository,
    inputs: Sequence[ProductAttributeInput],
    category_id: int,
) -> dict[int, AttributeDefinition]:
    """Validate attribute inputs against their definitions.

    A definition applies to a product when it is linked to the product's
    category or one of its ancestors.

    Returns:
        Definitions keyed by ID.

    Raises:
        AttributeDefinitionNotFoundError: If a definition does not exist.
        ValidationError: If a definition does not apply to the category, or
            a sort order is negative.
        ProductAttributeExistsError: If a definition is supplied twice.
        InvalidAttributeValueError: If a value is not allowed.
    """
    if not inputs:
        return {}
    definitions = await attributes.get_many([data.attribute_definition_id for data in inputs])
    applicable = {
        definition.id for definition in await attributes.list_for_category(category_id, True)
    }
    seen: set[int] = set()
    for data in inputs:
        definition = definitions.get(data.attribute_definition_id)
        if definition is None:
            raise AttributeDefinitionNotFoundError(data.attribute_definition_id)
        if definition.id not in applicable:
            raise ValidationError(
                f"Attribute '{definition.key}' does not apply to the product's category",
                field="attributeDefinitionId",
                details={"attribute_definition_id": definition.id, "category_id": category_id},
            )
        if data.attribute_definition_id in seen:
            raise ProductAttributeExistsError(
                f"Attribute '{definition.key}' is supplied more than once",
                details={"attribute_definition_id": data.attribute_definition_id},
            )
        seen.add(data.attribute_definition_id)
        validate_attribute_value(definition.key, list(definition.allowed_values or []), data.value)
        if data.sort_order is None or data.sort_order < 0:
            raise ValidationError("sortOrder must be 0 or greater", field="sortOrder")
    return definitions


def validate_package_input(data: PackageOptionInput) -> None:
    validate_package_option(
        {
            "name": data.name,
            "description": data.description,
            "price": data.price,
            "quantity": data.quantity,
        }
    )


def package_option_row(product_id: int, data: PackageOptionInput) -> PackageOption:
    return PackageOption(
        product_id=product_id,
        name=data.name,
        description=data.description or "",
        price=data.price,
        quantity=data.quantity,
    )

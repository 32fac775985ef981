"""Product application service.

Creates products together with their options, variants, attributes and
package options; reconciles those collections on update; deletes the
whole graph in order.
"""

from typing import Any

import structlog

from catalog_api.application.assembler import ProductViewBuilder
from catalog_api.application.commands import (
    OptionInput,
    PackageOptionInput,
    ProductAttributeInput,
    ProductInput,
    VariantInput,
)
from catalog_api.application.product_support import (
    apply_variant_input,
    build_option_index,
    check_attribute_inputs,
    check_variant_closure,
    load_product,
    option_row,
    option_value_row,
    package_option_row,
    resolve_variant_selections,
    validate_option_inputs,
    validate_package_input,
    variant_row,
)
from catalog_api.application.views import ProductDetail
from catalog_api.catalog.models import (
    Product,
    ProductAttribute,
    ProductOption,
    ProductVariant,
)
from catalog_api.catalog.repositories import (
    AttributeDefinitionRepository,
    CategoryRepository,
    OptionRepository,
    PackageOptionRepository,
    ProductAttributeRepository,
    ProductRepository,
    VariantRepository,
)
from catalog_api.domain.exceptions import (
    PackageOptionNotFoundError,
    ProductAttributeNotFoundError,
    ProductCategoryInvalidError,
    ProductOptionInUseError,
    ProductOptionNotFoundError,
    ProductOptionValueInUseError,
    ProductOptionValueNotFoundError,
    ValidationError,
    VariantNotFoundError,
)
from catalog_api.domain.tenancy import CallerScope, resolve_product_owner
from catalog_api.domain.validators import (
    normalize_option_name,
    normalize_option_value,
    pick_default_index,
    require_changes,
    validate_product,
)

logger = structlog.get_logger()

SCALAR_FIELDS = (
    "name",
    "category_id",
    "brand",
    "base_sku",
    "short_description",
    "long_description",
    "tags",
)
COLLECTION_FIELDS = ("options", "variants", "attributes", "package_options")
TEXT_FIELDS = ("brand", "base_sku", "short_description", "long_description")


class ProductService:
    """Application service for product writes and detail reads.

    Example usage:
        async with facade.unit_of_work() as unit:
            detail = await unit.products.create_product(scope, ProductInput(...))
    """

    def __init__(
        self,
        products: ProductRepository,
        categories: CategoryRepository,
        attributes: AttributeDefinitionRepository,
        options: OptionRepository,
        variants: VariantRepository,
        product_attributes: ProductAttributeRepository,
        package_options: PackageOptionRepository,
        views: ProductViewBuilder,
    ) -> None:
        self.products = products
        self.categories = categories
        self.attributes = attributes
        self.options = options
        self.variants = variants
        self.product_attributes = product_attributes
        self.package_options = package_options
        self.views = views

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_product(self, scope: CallerScope, product_id: int) -> ProductDetail:
        """Get the detail view of a visible product.

        Raises:
            ProductNotFoundError: If missing or owned by another seller.
        """
        product = await load_product(self.products, scope, product_id)
        return await self.views.detail(product)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_product(self, scope: CallerScope, data: ProductInput) -> ProductDetail:
        """Create a product with its whole graph in the current transaction.

        Everything is validated before the first insert.

        Raises:
            ForbiddenError: If the caller is read-only.
            ValidationError: On structural problems (including a missing
                seller id for admins, an empty variant list and variants that
                miss a combination of option values).
            ProductCategoryInvalidError: If the category is not usable by
                the owning seller.
            ProductOptionNameExistsError / ProductOptionValueExistsError:
                On duplicate options or values.
            InvalidOptionNameError / ProductOptionValueNotFoundError: If a
                variant selects something undeclared.
            VariantSkuExistsError / VariantCombinationExistsError: On
                duplicate variants.
            AttributeDefinitionNotFoundError / InvalidAttributeValueError /
                ProductAttributeExistsError: On bad attributes.
        """
        seller_id = resolve_product_owner(scope, data.seller_id)
        validate_product(
            {
                "name": data.name,
                "brand": data.brand,
                "base_sku": data.base_sku,
                "short_description": data.short_description,
                "long_description": data.long_description,
                "tags": data.tags,
            }
        )
        await self._check_category(data.category_id, seller_id)

        if not data.variants:
            raise ValidationError("At least one variant is required", field="variants")
        validate_option_inputs(data.options)
        preview_index = {
            normalize_option_name(option.name): (
                position,
                {normalize_option_value(value.value): n for n, value in enumerate(option.values)},
            )
            for position, option in enumerate(data.options)
        }
        check_variant_closure(
            data.options, resolve_variant_selections(data.variants, preview_index)
        )
        definitions = await check_attribute_inputs(
            self.attributes, data.attributes, data.category_id
        )
        for package in data.package_options:
            validate_package_input(package)

        product = await self.products.save(
            Product(
                seller_id=seller_id,
                category_id=data.category_id,
                name=data.name,
                brand=data.brand,
                base_sku=data.base_sku,
                short_description=data.short_description,
                long_description=data.long_description,
                tags=list(data.tags),
            )
        )

        options = await self.options.save_all(
            [option_row(product.id, option) for option in data.options]
        )
        index = build_option_index(options)
        selections = resolve_variant_selections(data.variants, index)

        default_index = pick_default_index([variant.is_default for variant in data.variants])
        variants = await self.variants.save_all(
            [
                variant_row(product.id, variant, is_default=position == default_index)
                for position, variant in enumerate(data.variants)
            ]
        )
        await self.variants.add_selections(
            {variant.id: selection for variant, selection in zip(variants, selections) if selection}
        )

        if data.attributes:
            await self.product_attributes.save_all(
                [
                    ProductAttribute(
                        product_id=product.id,
                        attribute_definition_id=attribute.attribute_definition_id,
                        value=attribute.value,
                        sort_order=attribute.sort_order,
                    )
                    for attribute in data.attributes
                ]
            )
        if data.package_options:
            await self.package_options.save_all(
                [package_option_row(product.id, package) for package in data.package_options]
            )

        logger.info(
            "Product created",
            product_id=product.id,
            seller_id=seller_id,
            option_count=len(options),
            variant_count=len(variants),
            attribute_count=len(definitions),
        )
        return await self.views.detail(product)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update_product(
        self,
        scope: CallerScope,
        product_id: int,
        changes: dict[str, Any],
    ) -> ProductDetail:
        """Apply a partial update and reconcile supplied collections.

        Scalar fields absent from ``changes`` are left alone. A supplied
        collection replaces the current one declaratively: items with an
        ``id`` update that row, items without create rows, and rows missing
        from the list are deleted.

        Raises:
            ValidationError: If nothing was supplied or a field is invalid.
            ProductNotFoundError: If not visible or writable.
            ProductOptionInUseError / ProductOptionValueInUseError: If a
                removed option or value is still used by a kept variant.
        """
        changes = {
            key: value
            for key, value in changes.items()
            if key in SCALAR_FIELDS or key in COLLECTION_FIELDS
        }
        product = await load_product(self.products, scope, product_id, write=True)
        require_changes(changes)

        scalars = {key: value for key, value in changes.items() if key in SCALAR_FIELDS}
        for key in TEXT_FIELDS:
            if key in scalars and scalars[key] is None:
                scalars[key] = ""
        if "tags" in scalars and scalars["tags"] is None:
            scalars["tags"] = []
        if "category_id" in scalars and scalars["category_id"] is None:
            raise ValidationError("categoryId cannot be empty", field="categoryId")
        validate_product(scalars)
        if scalars.get("category_id", product.category_id) != product.category_id:
            await self._check_category(scalars["category_id"], product.seller_id)
        for key, value in scalars.items():
            setattr(product, key, list(value) if key == "tags" else value)

        variant_inputs: list[VariantInput] | None = changes.get("variants")
        if variant_inputs is not None:
            await self._drop_replaced_variants(product_id, variant_inputs)
        if changes.get("options") is not None:
            await self._reconcile_options(product_id, changes["options"], variant_inputs is not None)
        if variant_inputs is not None:
            await self._reconcile_variants(product_id, variant_inputs)
        if changes.get("attributes") is not None:
            await self._reconcile_attributes(product, changes["attributes"])
        if changes.get("package_options") is not None:
            await self._reconcile_package_options(product_id, changes["package_options"])

        product = await self.products.save(product)
        logger.info("Product updated", product_id=product_id, fields=sorted(changes))
        return await self.views.detail(product)

    async def _drop_replaced_variants(self, product_id: int, inputs: list[VariantInput]) -> None:
        """Delete variants missing from the list and clear kept selections."""
        if not inputs:
            raise ValidationError("At least one variant is required", field="variants")
        existing = {
            variant.id: variant
            for variant in await self.variants.list_by_product(product_id, for_update=True)
        }
        kept_ids = {data.id for data in inputs if data.id is not None}
        unknown = kept_ids - existing.keys()
        if unknown:
            raise VariantNotFoundError(min(unknown))

        for variant_id, variant in existing.items():
            if variant_id not in kept_ids:
                await self.variants.delete_variant(variant)
        await self.variants.clear_selections(list(kept_ids))

    async def _reconcile_options(
        self,
        product_id: int,
        inputs: list[OptionInput],
        variants_rewritten: bool,
    ) -> None:
        """Bring the product's options and values in line with ``inputs``.

        When variants are not being rewritten, removing an option or value a
        variant still selects is refused, and new options are refused while
        variants exist (they would lack a selection).
        """
        existing = {option.id: option for option in await self.options.list_by_product(product_id)}
        for data in inputs:
            if data.id is not None and data.id not in existing:
                raise ProductOptionNotFoundError(data.id)
        validate_option_inputs(inputs)
        kept_ids = {data.id for data in inputs if data.id is not None}

        if not variants_rewritten:
            for option_id in existing.keys() - kept_ids:
                used = await self.variants.count_using_option(option_id)
                if used:
                    raise ProductOptionInUseError(option_id, used)
            adds_option = any(data.id is None for data in inputs)
            if adds_option and await self.variants.count_by_product(product_id):
                raise ValidationError(
                    "Variants must be supplied when new options are added",
                    field="variants",
                )

        for option_id, option in existing.items():
            if option_id not in kept_ids:
                await self.options.remove(option)

        new_options = []
        for data in inputs:
            if data.id is None:
                new_options.append(option_row(product_id, data))
                continue
            option = existing[data.id]
            option.name = normalize_option_name(data.name)
            option.display_name = data.display_name
            option.position = data.position
            await self._reconcile_option_values(option, data, variants_rewritten)
        await self.options.save_all(new_options)

    async def _reconcile_option_values(
        self,
        option: ProductOption,
        data: OptionInput,
        variants_rewritten: bool,
    ) -> None:
        existing = {value.id: value for value in option.values}
        for value_input in data.values:
            if value_input.id is not None and value_input.id not in existing:
                raise ProductOptionValueNotFoundError(value_input.id)
        kept_ids = {value.id for value in data.values if value.id is not None}

        for value_id, value in existing.items():
            if value_id in kept_ids:
                continue
            if not variants_rewritten:
                used = await self.variants.count_using_value(value_id)
                if used:
                    raise ProductOptionValueInUseError(value_id, used)
            option.values.remove(value)

        for value_input in data.values:
            row = option_value_row(value_input)
            if value_input.id is None:
                option.values.append(row)
                continue
            value = existing[value_input.id]
            value.value = row.value
            value.display_name = row.display_name
            value.color_code = row.color_code
            value.position = row.position

    async def _reconcile_variants(self, product_id: int, inputs: list[VariantInput]) -> None:
        """Update kept variants, create new ones, rewrite all selections."""
        index = build_option_index(await self.options.list_by_product(product_id))
        existing = {
            variant.id: variant
            for variant in await self.variants.list_by_product(product_id, for_update=True)
        }
        selections = resolve_variant_selections(inputs, index)

        default_index = pick_default_index([data.is_default for data in inputs])
        if not any(data.is_default for data in inputs):
            current = [
                position
                for position, data in enumerate(inputs)
                if data.id is not None and existing[data.id].is_default
            ]
            if current:
                default_index = current[0]

        await self.variants.unset_defaults(product_id)
        rows: list[ProductVariant] = []
        for position, data in enumerate(inputs):
            if data.id is None:
                rows.append(variant_row(product_id, data, is_default=False))
            else:
                variant = existing[data.id]
                apply_variant_input(variant, data)
                rows.append(variant)
        rows = await self.variants.save_all(rows)
        if default_index is not None:
            rows[default_index].is_default = True
            await self.variants.save(rows[default_index])

        await self.variants.add_selections(
            {variant.id: selection for variant, selection in zip(rows, selections) if selection}
        )

    async def _reconcile_attributes(self, product: Product, inputs: list[ProductAttributeInput]) -> None:
        product_id = product.id
        existing = {
            attribute.id: attribute
            for attribute in await self.product_attributes.list_by_product(product_id)
        }
        for data in inputs:
            if data.id is not None and data.id not in existing:
                raise ProductAttributeNotFoundError(data.id)
        await check_attribute_inputs(self.attributes, inputs, product.category_id)
        kept_ids = {data.id for data in inputs if data.id is not None}

        for attribute_id, attribute in existing.items():
            if attribute_id not in kept_ids:
                await self.product_attributes.remove(attribute)

        rows = []
        for data in inputs:
            if data.id is None:
                rows.append(
                    ProductAttribute(
                        product_id=product_id,
                        attribute_definition_id=data.attribute_definition_id,
                        value=data.value,
                        sort_order=data.sort_order,
                    )
                )
            else:
                attribute = existing[data.id]
                attribute.attribute_definition_id = data.attribute_definition_id
                attribute.value = data.value
                attribute.sort_order = data.sort_order
                rows.append(attribute)
        await self.product_attributes.save_all(rows)

    async def _reconcile_package_options(
        self, product_id: int, inputs: list[PackageOptionInput]
    ) -> None:
        existing = {
            package.id: package
            for package in await self.package_options.list_by_product(product_id)
        }
        for data in inputs:
            if data.id is not None and data.id not in existing:
                raise PackageOptionNotFoundError(data.id)
            validate_package_input(data)
        kept_ids = {data.id for data in inputs if data.id is not None}

        for package_id, package in existing.items():
            if package_id not in kept_ids:
                await self.package_options.remove(package)

        rows = []
        for data in inputs:
            if data.id is None:
                rows.append(package_option_row(product_id, data))
            else:
                package = existing[data.id]
                package.name = data.name
                package.description = data.description
                package.price = data.price
                package.quantity = data.quantity
                rows.append(package)
        await self.package_options.save_all(rows)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_product(self, scope: CallerScope, product_id: int) -> None:
        """Delete a product and every row it owns.

        Raises:
            ProductNotFoundError: If not visible or writable.
        """
        product = await load_product(self.products, scope, product_id, write=True)
        await self.products.delete_cascade(product)
        logger.info("Product deleted", product_id=product_id, seller_id=product.seller_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _check_category(self, category_id: int, seller_id: int) -> None:
        """The category must exist and be visible to the owning seller."""
        category = await self.categories.get_by_id(category_id)
        if category is None or not (category.is_global or category.seller_id == seller_id):
            raise ProductCategoryInvalidError(
                details={"category_id": category_id, "seller_id": seller_id},
            )

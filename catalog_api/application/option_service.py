"""Product option and option value application service."""

from typing import Any

import structlog

from catalog_api.application.assembler import option_views
from catalog_api.application.commands import EntityPatch, OptionInput, OptionValueInput
from catalog_api.application.product_support import (
    load_product,
    option_row,
    option_value_row,
    validate_option_inputs,
)
from catalog_api.application.views import OptionView
from catalog_api.catalog.models import ProductOption, ProductOptionValue
from catalog_api.catalog.repositories import OptionRepository, ProductRepository, VariantRepository
from catalog_api.domain.exceptions import (
    BulkUpdateEmptyListError,
    ProductOptionInUseError,
    ProductOptionMismatchError,
    ProductOptionNotFoundError,
    ProductOptionValueExistsError,
    ProductOptionValueInUseError,
    ProductOptionValueMismatchError,
    ProductOptionValueNotFoundError,
    ValidationError,
)
from catalog_api.domain.tenancy import CallerScope
from catalog_api.domain.validators import (
    check_unique_option_values,
    normalize_option_value,
    require_changes,
    validate_option,
    validate_option_value,
)

logger = structlog.get_logger()

OPTION_FIELDS = ("display_name", "position")
VALUE_FIELDS = ("value", "display_name", "color_code", "position")


class OptionService:
    """Application service for a product's options and their values.

    Option names are immutable once created; variants reference options
    by ID and select values by name through the option index.
    """

    def __init__(
        self,
        products: ProductRepository,
        options: OptionRepository,
        variants: VariantRepository,
    ) -> None:
        self.products = products
        self.options = options
        self.variants = variants

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    async def list_options(self, scope: CallerScope, product_id: int) -> list[OptionView]:
        """Options with values and per-value variant counts."""
        await load_product(self.products, scope, product_id)
        options = await self.options.list_by_product(product_id)
        counts = await self.variants.count_by_value_for_product(product_id)
        return option_views(options, counts)

    async def create_option(
        self,
        scope: CallerScope,
        product_id: int,
        data: OptionInput,
    ) -> OptionView:
        """Create an option together with its values.

        Raises:
            ValidationError: If fields are invalid, or the product already
                has variants (they would lack a value for the new option).
            ProductOptionNameExistsError: If the name is taken.
            ProductOptionValueExistsError: If a value repeats.
        """
        await load_product(self.products, scope, product_id, write=True)
        existing = await self.options.list_by_product(product_id)
        validate_option_inputs([data], existing_names=[option.name for option in existing])
        if await self.variants.count_by_product(product_id):
            raise ValidationError(
                "Options cannot be added while the product has variants; "
                "update the product with the new variants instead",
                field="options",
            )

        option = await self.options.save(option_row(product_id, data))
        logger.info(
            "Product option created",
            product_id=product_id,
            option_id=option.id,
            name=option.name,
            value_count=len(option.values),
        )
        return option_views([option])[0]

    async def update_option(
        self,
        scope: CallerScope,
        product_id: int,
        option_id: int,
        changes: dict[str, Any],
    ) -> OptionView:
        """Update an option's display name and position.

        Raises:
            ValidationError: If nothing was supplied or fields are invalid.
            ProductOptionNotFoundError: If the option does not exist.
            ProductOptionMismatchError: If it belongs to another product.
        """
        await load_product(self.products, scope, product_id, write=True)
        changes = {key: value for key, value in changes.items() if key in OPTION_FIELDS}
        require_changes(changes)
        option = await self._get_option(product_id, option_id)
        self._apply_option_changes(option, changes)
        option = await self.options.save(option)

        logger.info(
            "Product option updated",
            product_id=product_id,
            option_id=option_id,
            fields=sorted(changes),
        )
        return await self._view(product_id, option)

    async def bulk_update_options(
        self,
        scope: CallerScope,
        product_id: int,
        patches: list[EntityPatch],
    ) -> list[OptionView]:
        """Update display names and positions of several options at once.

        Raises:
            BulkUpdateEmptyListError: If no patches were supplied.
            ProductOptionNotFoundError: If an option does not exist.
            ProductOptionMismatchError: If an option belongs to another product.
        """
        if not patches:
            raise BulkUpdateEmptyListError()
        await load_product(self.products, scope, product_id, write=True)

        updated: dict[int, ProductOption] = {}
        for patch in patches:
            changes = {key: value for key, value in patch.changes.items() if key in OPTION_FIELDS}
            require_changes(changes)
            option = updated.get(patch.id) or await self._get_option(product_id, patch.id)
            self._apply_option_changes(option, changes)
            updated[option.id] = option
        await self.options.save_all(list(updated.values()))

        logger.info("Product options bulk updated", product_id=product_id, updated_count=len(updated))
        counts = await self.variants.count_by_value_for_product(product_id)
        return option_views(sorted(updated.values(), key=lambda item: (item.position, item.id)), counts)

    async def delete_option(self, scope: CallerScope, product_id: int, option_id: int) -> None:
        """Delete an option and its values.

        Raises:
            ProductOptionInUseError: If variants select a value of it.
        """
        await load_product(self.products, scope, product_id, write=True)
        option = await self._get_option(product_id, option_id)
        in_use = await self.variants.count_using_option(option_id)
        if in_use:
            raise ProductOptionInUseError(option_id, in_use)

        await self.options.remove(option)
        logger.info("Product option deleted", product_id=product_id, option_id=option_id)

    # ------------------------------------------------------------------
    # Option values
    # ------------------------------------------------------------------

    async def add_value(
        self,
        scope: CallerScope,
        product_id: int,
        option_id: int,
        data: OptionValueInput,
    ) -> OptionView:
        """Add a value to an option.

        Raises:
            ProductOptionValueExistsError: If the value already exists.
        """
        return await self.add_values(scope, product_id, option_id, [data])

    async def add_values(
        self,
        scope: CallerScope,
        product_id: int,
        option_id: int,
        values: list[OptionValueInput],
    ) -> OptionView:
        """Add several values to an option in one go.

        Raises:
            ValidationError: If no values were supplied or any is invalid.
            ProductOptionValueExistsError: If a value repeats or already exists.
        """
        if not values:
            raise ValidationError("At least one value is required", field="values")
        await load_product(self.products, scope, product_id, write=True)
        option = await self._get_option(product_id, option_id)
        check_unique_option_values(
            [value.value for value in values],
            existing_values=[value.value for value in option.values],
        )

        rows = [option_value_row(value) for value in values]
        for row in rows:
            option.values.append(row)
        await self.options.save(option)

        logger.info(
            "Option values added",
            product_id=product_id,
            option_id=option_id,
            values=[row.value for row in rows],
        )
        return await self._view(product_id, option)

    async def update_value(
        self,
        scope: CallerScope,
        product_id: int,
        option_id: int,
        value_id: int,
        changes: dict[str, Any],
    ) -> OptionView:
        """Apply a partial update to an option value.

        Raises:
            ProductOptionValueNotFoundError: If the value does not exist.
            ProductOptionValueMismatchError: If it belongs to another option.
            ProductOptionValueExistsError: If the new value is taken.
        """
        await load_product(self.products, scope, product_id, write=True)
        changes = {key: value for key, value in changes.items() if key in VALUE_FIELDS}
        require_changes(changes)
        validate_option_value(changes)
        option = await self._get_option(product_id, option_id)
        value = await self._get_value(option, value_id)

        if "value" in changes:
            new_value = normalize_option_value(changes["value"])
            if any(item.value == new_value and item.id != value_id for item in option.values):
                raise ProductOptionValueExistsError(
                    f"Option value already exists: {new_value}",
                    details={"value": new_value},
                )
            changes["value"] = new_value
        if "color_code" in changes and changes["color_code"] is None:
            changes["color_code"] = ""

        for key, item in changes.items():
            setattr(value, key, item)
        await self.options.save(value)

        logger.info(
            "Option value updated",
            product_id=product_id,
            option_id=option_id,
            value_id=value_id,
            fields=sorted(changes),
        )
        return await self._view(product_id, option)

    async def delete_value(
        self,
        scope: CallerScope,
        product_id: int,
        option_id: int,
        value_id: int,
    ) -> None:
        """Delete an option value.

        Raises:
            ProductOptionValueInUseError: If variants select it.
        """
        await load_product(self.products, scope, product_id, write=True)
        option = await self._get_option(product_id, option_id)
        value = await self._get_value(option, value_id)
        in_use = await self.variants.count_using_value(value_id)
        if in_use:
            raise ProductOptionValueInUseError(value_id, in_use)

        option.values.remove(value)
        await self.options.save(option)
        logger.info(
            "Option value deleted", product_id=product_id, option_id=option_id, value_id=value_id
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_option(self, product_id: int, option_id: int) -> ProductOption:
        option = await self.options.get(option_id)
        if option is None:
            raise ProductOptionNotFoundError(option_id)
        if option.product_id != product_id:
            raise ProductOptionMismatchError(
                details={"option_id": option_id, "product_id": product_id}
            )
        return option

    async def _get_value(self, option: ProductOption, value_id: int) -> ProductOptionValue:
        for value in option.values:
            if value.id == value_id:
                return value
        if await self.options.get_value(value_id) is None:
            raise ProductOptionValueNotFoundError(value_id)
        raise ProductOptionValueMismatchError(
            details={"option_id": option.id, "value_id": value_id}
        )

    @staticmethod
    def _apply_option_changes(option: ProductOption, changes: dict[str, Any]) -> None:
        validate_option(changes)
        if "position" in changes and (changes["position"] is None or changes["position"] < 0):
            raise ValidationError("position must be zero or greater", field="position")
        for key, value in changes.items():
            setattr(option, key, value)

    async def _view(self, product_id: int, option: ProductOption) -> OptionView:
        counts = await self.variants.count_by_value_for_product(product_id)
        return option_views([option], counts)[0]

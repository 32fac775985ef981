"""Variant application service.

All operations are nested under a product: reads require the product to
be visible, writes require it to be writable. Writes touching the default
flag lock the product's variant rows first so at most one default exists.
"""

from dataclasses import replace
from typing import Any

import structlog

from catalog_api.application.assembler import variant_view
from catalog_api.application.commands import EntityPatch, StockChange, VariantInput
from catalog_api.application.product_support import (
    apply_variant_input,
    build_option_index,
    load_product,
    resolve_variant_selections,
    variant_row,
)
from catalog_api.application.views import StockView, VariantView
from catalog_api.catalog.models import Product, ProductVariant
from catalog_api.catalog.repositories import OptionRepository, ProductRepository, VariantRepository
from catalog_api.domain.exceptions import (
    BulkUpdateEmptyListError,
    InsufficientStockError,
    InvalidStockOperationError,
    LastVariantDeleteError,
    ProductHasNoOptionsError,
    ValidationError,
    VariantNotFoundError,
    VariantNotFoundWithOptionsError,
)
from catalog_api.domain.tenancy import CallerScope
from catalog_api.domain.validators import (
    normalize_option_name,
    normalize_option_value,
    require_changes,
    validate_non_negative,
)

logger = structlog.get_logger()

UPDATABLE_FIELDS = (
    "sku",
    "price",
    "stock",
    "images",
    "in_stock",
    "is_popular",
    "is_default",
    "allow_purchase",
    "options",
)
STOCK_OPERATIONS = ("set", "add", "subtract")


class VariantService:
    """Application service for product variants."""

    def __init__(
        self,
        products: ProductRepository,
        variants: VariantRepository,
        options: OptionRepository,
    ) -> None:
        self.products = products
        self.variants = variants
        self.options = options

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_variant(self, scope: CallerScope, product_id: int, variant_id: int) -> VariantView:
        """Get a variant with its selected options.

        Raises:
            ProductNotFoundError: If the product is not visible.
            VariantNotFoundError: If the variant is not on the product.
        """
        product = await load_product(self.products, scope, product_id)
        variant = await self._get(product_id, variant_id)
        return await self._view(product, variant)

    async def find_by_options(
        self,
        scope: CallerScope,
        product_id: int,
        selection: dict[str, str],
    ) -> VariantView:
        """Find the variant matching an option selection.

        Names and values are normalised before matching. A partial selection
        matches the first variant containing every requested pair.

        Raises:
            ProductHasNoOptionsError: If the selection is empty.
            VariantNotFoundWithOptionsError: If nothing matches; details carry
                the requested selection and the available values.
        """
        product = await load_product(self.products, scope, product_id)
        if not selection:
            raise ProductHasNoOptionsError(
                "At least one option must be provided to find a variant",
                details={"product_id": product_id},
            )

        normalized = {
            normalize_option_name(name): normalize_option_value(value)
            for name, value in selection.items()
        }
        variant = await self.variants.find_by_option_values(product_id, normalized)
        if variant is None:
            options = await self.options.list_by_product(product_id)
            raise VariantNotFoundWithOptionsError(
                requested_options=selection,
                available_options={
                    option.name: [value.value for value in option.values] for option in options
                },
            )
        return await self._view(product, variant)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_variant(
        self,
        scope: CallerScope,
        product_id: int,
        data: VariantInput,
    ) -> VariantView:
        """Add a variant to a product.

        Raises:
            ValidationError: If fields or the selection are invalid.
            VariantSkuExistsError: If the SKU is taken on the product.
            VariantCombinationExistsError: If the combination is taken.
        """
        product = await load_product(self.products, scope, product_id, write=True)
        siblings = await self.variants.list_by_product(product_id, for_update=True)
        index, skus, combinations = await self._taken(product_id, siblings)
        selection = resolve_variant_selections(
            [replace(data, id=None)], index, skus, combinations
        )[0]

        make_default = data.is_default or not siblings
        if make_default:
            await self.variants.unset_defaults(product_id)
        variant = await self.variants.save(variant_row(product_id, data, is_default=make_default))
        if selection:
            await self.variants.add_selections({variant.id: selection})

        logger.info(
            "Variant created",
            product_id=product_id,
            variant_id=variant.id,
            sku=variant.sku,
            is_default=make_default,
        )
        return await self._view(product, variant)

    async def update_variant(
        self,
        scope: CallerScope,
        product_id: int,
        variant_id: int,
        changes: dict[str, Any],
    ) -> VariantView:
        """Apply a partial update to a variant.

        Setting ``is_default`` clears the flag on every sibling. Clearing it
        on the current default is ignored so a default always exists.

        Raises:
            ValidationError: If nothing was supplied or fields are invalid.
            VariantNotFoundError: If the variant is not on the product.
        """
        product = await load_product(self.products, scope, product_id, write=True)
        changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        require_changes(changes)
        siblings = await self.variants.list_by_product(product_id, for_update=True)
        variant = self._pick(siblings, variant_id)

        await self._apply_changes(product_id, variant, changes, siblings)
        variant = await self.variants.save(variant)

        logger.info(
            "Variant updated",
            product_id=product_id,
            variant_id=variant_id,
            fields=sorted(changes),
        )
        return await self._view(product, variant)

    async def delete_variant(self, scope: CallerScope, product_id: int, variant_id: int) -> None:
        """Delete a variant, reassigning the default if needed.

        Raises:
            VariantNotFoundError: If the variant is not on the product.
            LastVariantDeleteError: If it is the product's only variant.
        """
        await load_product(self.products, scope, product_id, write=True)
        siblings = await self.variants.list_by_product(product_id, for_update=True)
        variant = self._pick(siblings, variant_id)
        if len(siblings) <= 1:
            raise LastVariantDeleteError(details={"product_id": product_id, "variant_id": variant_id})

        was_default = variant.is_default
        await self.variants.delete_variant(variant)
        if was_default:
            successor = next(sibling for sibling in siblings if sibling.id != variant_id)
            successor.is_default = True
            await self.variants.save(successor)

        logger.info(
            "Variant deleted",
            product_id=product_id,
            variant_id=variant_id,
            reassigned_default=was_default,
        )

    async def bulk_update(
        self,
        scope: CallerScope,
        product_id: int,
        patches: list[EntityPatch],
    ) -> list[VariantView]:
        """Apply several partial updates atomically.

        When more than one patch sets ``is_default``, the last one wins.

        Raises:
            BulkUpdateEmptyListError: If no patches were supplied.
            VariantNotFoundError: If any ID is not on the product.
        """
        if not patches:
            raise BulkUpdateEmptyListError()
        product = await load_product(self.products, scope, product_id, write=True)
        siblings = await self.variants.list_by_product(product_id, for_update=True)
        by_id = {variant.id: variant for variant in siblings}
        for patch in patches:
            if patch.id not in by_id:
                raise VariantNotFoundError(patch.id)
            require_changes({k: v for k, v in patch.changes.items() if k in UPDATABLE_FIELDS})

        default_ids = [patch.id for patch in patches if patch.changes.get("is_default")]
        updated: dict[int, ProductVariant] = {}
        for patch in patches:
            changes = {k: v for k, v in patch.changes.items() if k in UPDATABLE_FIELDS}
            changes.pop("is_default", None)
            variant = by_id[patch.id]
            await self._apply_changes(product_id, variant, changes, siblings)
            updated[variant.id] = variant
        if default_ids:
            await self._make_default(product_id, by_id[default_ids[-1]])

        await self.variants.save_all(list(updated.values()))
        logger.info(
            "Variants bulk updated",
            product_id=product_id,
            updated_count=len(updated),
        )
        return [await self._view(product, variant) for variant in updated.values()]

    async def update_stock(
        self,
        scope: CallerScope,
        product_id: int,
        variant_id: int,
        change: StockChange,
    ) -> StockView:
        """Set, add to or subtract from a variant's stock.

        ``in_stock`` is recomputed as ``stock > 0``.

        Raises:
            InvalidStockOperationError: If the operation is unknown.
            InsufficientStockError: If a subtraction would go below zero.
        """
        operation = (change.operation or "").lower()
        if operation not in STOCK_OPERATIONS:
            raise InvalidStockOperationError(details={"operation": change.operation})
        validate_non_negative(change.quantity, "stock")

        await load_product(self.products, scope, product_id, write=True)
        variant = await self._get(product_id, variant_id)

        if operation == "set":
            stock = change.quantity
        elif operation == "add":
            stock = variant.stock + change.quantity
        else:
            if change.quantity > variant.stock:
                raise InsufficientStockError(variant.stock, change.quantity)
            stock = variant.stock - change.quantity

        variant.stock = stock
        variant.in_stock = stock > 0
        variant = await self.variants.save(variant)

        logger.info(
            "Variant stock updated",
            product_id=product_id,
            variant_id=variant_id,
            operation=operation,
            quantity=change.quantity,
            stock=stock,
        )
        return StockView(
            variant_id=variant.id,
            sku=variant.sku,
            stock=variant.stock,
            in_stock=variant.in_stock,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get(self, product_id: int, variant_id: int) -> ProductVariant:
        variant = await self.variants.get(product_id, variant_id)
        if variant is None:
            raise VariantNotFoundError(variant_id)
        return variant

    @staticmethod
    def _pick(siblings: list[ProductVariant], variant_id: int) -> ProductVariant:
        for variant in siblings:
            if variant.id == variant_id:
                return variant
        raise VariantNotFoundError(variant_id)

    async def _taken(self, product_id: int, siblings, exclude_id: int | None = None):
        """Option index plus SKUs and combinations used by other variants."""
        index = build_option_index(await self.options.list_by_product(product_id))
        selections = await self.variants.get_selections([variant.id for variant in siblings])
        skus = {variant.sku: variant.id for variant in siblings if variant.id != exclude_id}
        combinations = {
            frozenset(selections.get(variant.id, {}).items()): variant.id
            for variant in siblings
            if variant.id != exclude_id
        }
        return index, skus, combinations

    async def _apply_changes(
        self,
        product_id: int,
        variant: ProductVariant,
        changes: dict[str, Any],
        siblings: list[ProductVariant],
    ) -> None:
        """Validate and apply one variant's changes, including its selection."""
        index, skus, combinations = await self._taken(product_id, siblings, exclude_id=variant.id)
        current = (await self.variants.get_selections([variant.id])).get(variant.id, {})
        names = {option_id: name for name, (option_id, _) in index.items()}
        values = {
            value_id: value
            for _, (_, option_values) in index.items()
            for value, value_id in option_values.items()
        }

        stock = changes.get("stock", variant.stock)
        candidate = VariantInput(
            id=variant.id,
            sku=changes.get("sku", variant.sku),
            price=changes.get("price", variant.price),
            stock=stock,
            options=changes.get("options")
            or {names[option_id]: values[value_id] for option_id, value_id in current.items()},
            images=changes.get("images", variant.images) or [],
            in_stock=changes.get("in_stock", stock > 0 if "stock" in changes else variant.in_stock),
            is_popular=changes.get("is_popular", variant.is_popular),
            allow_purchase=changes.get("allow_purchase", variant.allow_purchase),
        )
        if candidate.sku is None or candidate.price is None or candidate.stock is None:
            raise ValidationError("sku, price and stock cannot be null", field="variant")
        selection = resolve_variant_selections([candidate], index, skus, combinations)[0]
        apply_variant_input(variant, candidate)

        if "options" in changes and selection != current:
            await self.variants.clear_selections([variant.id])
            await self.variants.add_selections({variant.id: selection})

        if changes.get("is_default") and not variant.is_default:
            await self._make_default(product_id, variant)

    async def _make_default(self, product_id: int, variant: ProductVariant) -> None:
        await self.variants.unset_defaults(product_id, keep_variant_id=variant.id)
        variant.is_default = True
        await self.variants.save(variant)

    async def _view(self, product: Product, variant: ProductVariant) -> VariantView:
        options = await self.options.list_by_product(product.id)
        selections = await self.variants.get_selections([variant.id])
        return variant_view(variant, selections.get(variant.id, {}), options, product=product)

"""Variant repository."""

from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import and_, delete, func, select, update

from catalog_api.catalog.models import (
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)
from catalog_api.catalog.repositories.base import BaseRepository


class VariantRepository(BaseRepository[ProductVariant]):
    """Repository for product variants and their option selections."""

    async def get(self, product_id: int, variant_id: int) -> ProductVariant | None:
        """Get a variant of a product.

        Args:
            product_id: Parent product ID.
            variant_id: Variant ID.

        Returns:
            Variant if it exists and belongs to the product.
        """
        result = await self.session.execute(
            select(ProductVariant).where(
                and_(ProductVariant.id == variant_id, ProductVariant.product_id == product_id)
            )
        )
        return result.scalar_one_or_none()

    async def list_by_product(
        self,
        product_id: int,
        for_update: bool = False,
    ) -> Sequence[ProductVariant]:
        """List a product's variants ordered by ID.

        Args:
            product_id: Parent product ID.
            for_update: Lock the rows so default-flag changes serialise.

        Returns:
            Variants of the product.
        """
        query = (
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.id)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalars().all()

    async def list_by_products(self, product_ids: Sequence[int]) -> dict[int, list[ProductVariant]]:
        """List variants of several products in one query, grouped by product."""
        grouped: dict[int, list[ProductVariant]] = defaultdict(list)
        if not product_ids:
            return grouped
        result = await self.session.execute(
            select(ProductVariant)
            .where(ProductVariant.product_id.in_(set(product_ids)))
            .order_by(ProductVariant.product_id, ProductVariant.id)
        )
        for variant in result.scalars().all():
            grouped[variant.product_id].append(variant)
        return grouped

    async def count_by_product(self, product_id: int) -> int:
        """Count a product's variants."""
        result = await self.session.execute(
            select(func.count(ProductVariant.id)).where(ProductVariant.product_id == product_id)
        )
        return result.scalar_one()

    async def find_by_sku(
        self,
        product_id: int,
        sku: str,
        exclude_id: int | None = None,
    ) -> ProductVariant | None:
        """Find a variant of the product by SKU."""
        conditions = [ProductVariant.product_id == product_id, ProductVariant.sku == sku]
        if exclude_id is not None:
            conditions.append(ProductVariant.id != exclude_id)
        result = await self.session.execute(select(ProductVariant).where(and_(*conditions)).limit(1))
        return result.scalar_one_or_none()

    async def unset_defaults(self, product_id: int, keep_variant_id: int | None = None) -> None:
        """Clear the default flag on a product's variants.

        Args:
            product_id: Parent product ID.
            keep_variant_id: Variant to leave untouched.
        """
        query = (
            update(ProductVariant)
            .where(ProductVariant.product_id == product_id, ProductVariant.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        if keep_variant_id is not None:
            query = query.where(ProductVariant.id != keep_variant_id)
        await self.session.execute(query)

    async def delete_variant(self, variant: ProductVariant) -> None:
        """Delete a variant with its option selections."""
        await self.session.execute(
            delete(VariantOptionValue).where(VariantOptionValue.variant_id == variant.id)
        )
        await self.remove(variant)

    # ------------------------------------------------------------------
    # Option selections
    # ------------------------------------------------------------------

    async def get_selections(self, variant_ids: Sequence[int]) -> dict[int, dict[int, int]]:
        """Load option selections for variants.

        Returns:
            Variant ID -> {option ID -> option value ID}.
        """
        selections: dict[int, dict[int, int]] = defaultdict(dict)
        if not variant_ids:
            return selections
        result = await self.session.execute(
            select(VariantOptionValue).where(VariantOptionValue.variant_id.in_(set(variant_ids)))
        )
        for row in result.scalars().all():
            selections[row.variant_id][row.option_id] = row.option_value_id
        return selections

    async def add_selections(self, selections: dict[int, dict[int, int]]) -> None:
        """Store option selections for one or more variants.

        Args:
            selections: Variant ID -> {option ID -> option value ID}.
        """
        self.session.add_all(
            VariantOptionValue(variant_id=variant_id, option_id=option_id, option_value_id=value_id)
            for variant_id, selection in selections.items()
            for option_id, value_id in selection.items()
        )
        await self.session.flush()

    async def find_by_option_values(
        self,
        product_id: int,
        selection: dict[str, str],
    ) -> ProductVariant | None:
        """Find the variant whose selection contains every name/value pair.

        Args:
            product_id: Parent product ID.
            selection: Normalised option name -> option value.

        Returns:
            Matching variant, or None.
        """
        query = select(ProductVariant).where(ProductVariant.product_id == product_id)
        for option_name, option_value in selection.items():
            matching = (
                select(VariantOptionValue.variant_id)
                .join(ProductOption, ProductOption.id == VariantOptionValue.option_id)
                .join(
                    ProductOptionValue,
                    ProductOptionValue.id == VariantOptionValue.option_value_id,
                )
                .where(
                    ProductOption.product_id == product_id,
                    ProductOption.name == option_name,
                    ProductOptionValue.value == option_value,
                )
            )
            query = query.where(ProductVariant.id.in_(matching))
        result = await self.session.execute(query.order_by(ProductVariant.id).limit(1))
        return result.scalar_one_or_none()

    async def clear_selections(self, variant_ids: Sequence[int]) -> None:
        """Remove the option selections of variants."""
        if not variant_ids:
            return
        await self.session.execute(
            delete(VariantOptionValue).where(VariantOptionValue.variant_id.in_(set(variant_ids)))
        )

    async def count_using_option(self, option_id: int) -> int:
        """Count variants whose selection includes an option."""
        result = await self.session.execute(
            select(func.count(func.distinct(VariantOptionValue.variant_id))).where(
                VariantOptionValue.option_id == option_id
            )
        )
        return result.scalar_one()

    async def count_using_value(self, value_id: int) -> int:
        """Count variants whose selection includes an option value."""
        result = await self.session.execute(
            select(func.count(func.distinct(VariantOptionValue.variant_id))).where(
                VariantOptionValue.option_value_id == value_id
            )
        )
        return result.scalar_one()

    async def count_by_value_for_product(self, product_id: int) -> dict[int, int]:
        """Variant count per option value for a product."""
        result = await self.session.execute(
            select(
                VariantOptionValue.option_value_id,
                func.count(func.distinct(VariantOptionValue.variant_id)).label("variant_count"),
            )
            .join(ProductVariant, ProductVariant.id == VariantOptionValue.variant_id)
            .where(ProductVariant.product_id == product_id)
            .group_by(VariantOptionValue.option_value_id)
        )
        return {row.option_value_id: row.variant_count for row in result.all()}

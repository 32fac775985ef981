"""Product option and option value repository."""

from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import and_, select
from sqlalchemy.orm import selectinload

from catalog_api.catalog.models import ProductOption, ProductOptionValue
from catalog_api.catalog.repositories.base import BaseRepository


class OptionRepository(BaseRepository[ProductOption]):
    """Repository for product options and their values."""

    async def list_by_product(self, product_id: int) -> Sequence[ProductOption]:
        """List a product's options with values, ordered by position.

        Args:
            product_id: Parent product ID.

        Returns:
            Options with ``values`` loaded.
        """
        result = await self.session.execute(
            select(ProductOption)
            .where(ProductOption.product_id == product_id)
            .options(selectinload(ProductOption.values))
            .order_by(ProductOption.position, ProductOption.id)
        )
        return result.scalars().all()

    async def list_by_products(self, product_ids: Sequence[int]) -> dict[int, list[ProductOption]]:
        """List options with values for several products, grouped by product."""
        grouped: dict[int, list[ProductOption]] = defaultdict(list)
        if not product_ids:
            return grouped
        result = await self.session.execute(
            select(ProductOption)
            .where(ProductOption.product_id.in_(set(product_ids)))
            .options(selectinload(ProductOption.values))
            .order_by(ProductOption.product_id, ProductOption.position, ProductOption.id)
        )
        for option in result.scalars().all():
            grouped[option.product_id].append(option)
        return grouped

    async def get(self, option_id: int) -> ProductOption | None:
        """Get an option with its values."""
        result = await self.session.execute(
            select(ProductOption)
            .where(ProductOption.id == option_id)
            .options(selectinload(ProductOption.values))
        )
        return result.scalar_one_or_none()

    async def get_value(self, value_id: int) -> ProductOptionValue | None:
        """Get an option value by ID."""
        return await self.session.get(ProductOptionValue, value_id)

    async def find_by_name(self, product_id: int, name: str) -> ProductOption | None:
        """Find a product option by normalised name."""
        result = await self.session.execute(
            select(ProductOption).where(
                and_(ProductOption.product_id == product_id, ProductOption.name == name)
            )
        )
        return result.scalar_one_or_none()

    async def add_values(self, values: Sequence[ProductOptionValue]) -> list[ProductOptionValue]:
        """Insert option values and flush."""
        self.session.add_all(values)
        await self.session.flush()
        return list(values)

    async def remove_value(self, value: ProductOptionValue) -> None:
        """Delete an option value."""
        await self.session.delete(value)
        await self.session.flush()

    async def refresh_values(self, option: ProductOption) -> ProductOption:
        """Reload an option's values after they changed."""
        await self.session.refresh(option, attribute_names=["values"])
        return option

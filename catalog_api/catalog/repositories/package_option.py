"""Package option repository."""

from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import and_, select

from catalog_api.catalog.models import PackageOption
from catalog_api.catalog.repositories.base import BaseRepository


class PackageOptionRepository(BaseRepository[PackageOption]):
    """Repository for package options offered with a product."""

    async def list_by_product(self, product_id: int) -> Sequence[PackageOption]:
        """List a product's package options ordered by ID."""
        result = await self.session.execute(
            select(PackageOption)
            .where(PackageOption.product_id == product_id)
            .order_by(PackageOption.id)
        )
        return result.scalars().all()

    async def list_by_products(self, product_ids: Sequence[int]) -> dict[int, list[PackageOption]]:
        """List package options for several products, grouped by product."""
        grouped: dict[int, list[PackageOption]] = defaultdict(list)
        if not product_ids:
            return grouped
        result = await self.session.execute(
            select(PackageOption)
            .where(PackageOption.product_id.in_(set(product_ids)))
            .order_by(PackageOption.product_id, PackageOption.id)
        )
        for package in result.scalars().all():
            grouped[package.product_id].append(package)
        return grouped

    async def get(self, product_id: int, package_option_id: int) -> PackageOption | None:
        """Get a package option of a product."""
        result = await self.session.execute(
            select(PackageOption).where(
                and_(
                    PackageOption.id == package_option_id,
                    PackageOption.product_id == product_id,
                )
            )
        )
        return result.scalar_one_or_none()

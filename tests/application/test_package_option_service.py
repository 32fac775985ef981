"""Tests for the package option service."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_api.application.commands import PackageOptionInput
from catalog_api.application.package_option_service import PackageOptionService
from catalog_api.domain import CallerScope
from catalog_api.domain.exceptions import ValidationError

SELLER = CallerScope.seller(7)


def make_service() -> PackageOptionService:
    products = MagicMock()
    products.get_by_id = AsyncMock(return_value=SimpleNamespace(id=1, seller_id=7))
    package_options = MagicMock()
    package_options.save = AsyncMock(side_effect=lambda row: row)
    return PackageOptionService(products, package_options)


class TestCreatePackageOption:
    """Tests for adding bundles."""

    @pytest.mark.asyncio
    async def test_zero_price_rejected(self) -> None:
        """Should require a bundle price above zero."""
        service = make_service()
        with pytest.raises(ValidationError):
            await service.create_package_option(
                SELLER, 1, PackageOptionInput(name="Pair", price=Decimal("0"), quantity=2)
            )
        service.package_options.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_quantity_rejected(self) -> None:
        """Should require at least one unit per bundle."""
        service = make_service()
        with pytest.raises(ValidationError):
            await service.create_package_option(
                SELLER, 1, PackageOptionInput(name="Pair", price=Decimal("9.99"), quantity=0)
            )

    @pytest.mark.asyncio
    async def test_created(self) -> None:
        """Should store a valid bundle against the product."""
        service = make_service()
        package = await service.create_package_option(
            SELLER, 1, PackageOptionInput(name="Pair", price=Decimal("9.99"), quantity=2)
        )
        assert package.product_id == 1
        assert package.quantity == 2

"""Package option application service."""

from typing import Any

import structlog

from catalog_api.application.commands import PackageOptionInput
from catalog_api.application.product_support import (
    load_product,
    package_option_row,
    validate_package_input,
)
from catalog_api.catalog.models import PackageOption
from catalog_api.catalog.repositories import PackageOptionRepository, ProductRepository
from catalog_api.domain.exceptions import PackageOptionNotFoundError, ValidationError
from catalog_api.domain.tenancy import CallerScope
from catalog_api.domain.validators import require_changes, validate_package_option

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("name", "description", "price", "quantity")


class PackageOptionService:
    """Application service for the bundles offered with a product."""

    def __init__(
        self,
        products: ProductRepository,
        package_options: PackageOptionRepository,
    ) -> None:
        self.products = products
        self.package_options = package_options

    async def list_package_options(self, scope: CallerScope, product_id: int) -> list[PackageOption]:
        await load_product(self.products, scope, product_id)
        return list(await self.package_options.list_by_product(product_id))

    async def create_package_option(
        self,
        scope: CallerScope,
        product_id: int,
        data: PackageOptionInput,
    ) -> PackageOption:
        """Add a package option to a product.

        Raises:
            ValidationError: If price or quantity are not positive.
        """
        await load_product(self.products, scope, product_id, write=True)
        validate_package_input(data)
        package = await self.package_options.save(package_option_row(product_id, data))
        logger.info("Package option created", product_id=product_id, package_option_id=package.id)
        return package

    async def update_package_option(
        self,
        scope: CallerScope,
        product_id: int,
        package_option_id: int,
        changes: dict[str, Any],
    ) -> PackageOption:
        """Apply a partial update to a package option.

        Raises:
            PackageOptionNotFoundError: If it is not on the product.
        """
        await load_product(self.products, scope, product_id, write=True)
        changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        require_changes(changes)
        for key in ("name", "price", "quantity"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} cannot be null", field=key)
        if "description" in changes and changes["description"] is None:
            changes["description"] = ""
        validate_package_option(changes)

        package = await self._get(product_id, package_option_id)
        for key, value in changes.items():
            setattr(package, key, value)
        package = await self.package_options.save(package)

        logger.info(
            "Package option updated",
            product_id=product_id,
            package_option_id=package_option_id,
            fields=sorted(changes),
        )
        return package

    async def delete_package_option(
        self,
        scope: CallerScope,
        product_id: int,
        package_option_id: int,
    ) -> None:
        await load_product(self.products, scope, product_id, write=True)
        package = await self._get(product_id, package_option_id)
        await self.package_options.remove(package)
        logger.info(
            "Package option deleted",
            product_id=product_id,
            package_option_id=package_option_id,
        )

    async def _get(self, product_id: int, package_option_id: int) -> PackageOption:
        package = await self.package_options.get(product_id, package_option_id)
        if package is None:
            raise PackageOptionNotFoundError(package_option_id)
        return package

"""Product attribute value application service."""

from typing import Any

import structlog

from catalog_api.application.commands import EntityPatch, ProductAttributeInput
from catalog_api.application.product_support import check_attribute_inputs, load_product
from catalog_api.application.views import ProductAttributeView
from catalog_api.catalog.models import ProductAttribute
from catalog_api.catalog.repositories import (
    AttributeDefinitionRepository,
    ProductAttributeRepository,
    ProductRepository,
)
from catalog_api.domain.exceptions import (
    BulkUpdateEmptyListError,
    ProductAttributeExistsError,
    ProductAttributeNotFoundError,
    ValidationError,
)
from catalog_api.domain.tenancy import CallerScope
from catalog_api.domain.validators import require_changes, validate_attribute_value

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("value", "sort_order")


class ProductAttributeService:
    """Application service for attribute values set on a product."""

    def __init__(
        self,
        products: ProductRepository,
        product_attributes: ProductAttributeRepository,
        attributes: AttributeDefinitionRepository,
    ) -> None:
        self.products = products
        self.product_attributes = product_attributes
        self.attributes = attributes

    async def list_attributes(self, scope: CallerScope, product_id: int) -> list[ProductAttributeView]:
        """Attribute values of a product ordered by sort order."""
        await load_product(self.products, scope, product_id)
        attributes = await self.product_attributes.list_by_product(product_id)
        return [ProductAttributeView.from_model(attribute) for attribute in attributes]

    async def add_attribute(
        self,
        scope: CallerScope,
        product_id: int,
        data: ProductAttributeInput,
    ) -> ProductAttributeView:
        """Set a value for an attribute definition on a product.

        Raises:
            AttributeDefinitionNotFoundError: If the definition does not exist.
            ValidationError: If the definition does not apply to the
                product's category.
            ProductAttributeExistsError: If the product already has a value.
            InvalidAttributeValueError: If the value is not allowed.
        """
        product = await load_product(self.products, scope, product_id, write=True)
        await check_attribute_inputs(self.attributes, [data], product.category_id)
        if await self.product_attributes.find_by_definition(product_id, data.attribute_definition_id):
            raise ProductAttributeExistsError(
                details={
                    "product_id": product_id,
                    "attribute_definition_id": data.attribute_definition_id,
                }
            )

        attribute = await self.product_attributes.save(
            ProductAttribute(
                product_id=product_id,
                attribute_definition_id=data.attribute_definition_id,
                value=data.value,
                sort_order=data.sort_order,
            )
        )
        attribute = await self.product_attributes.reload(attribute)
        logger.info(
            "Product attribute added",
            product_id=product_id,
            attribute_id=attribute.id,
            attribute_definition_id=data.attribute_definition_id,
        )
        return ProductAttributeView.from_model(attribute)

    async def update_attribute(
        self,
        scope: CallerScope,
        product_id: int,
        attribute_id: int,
        changes: dict[str, Any],
    ) -> ProductAttributeView:
        """Change the value or sort order of a product attribute.

        Raises:
            ProductAttributeNotFoundError: If it is not on the product.
            InvalidAttributeValueError: If the new value is not allowed.
        """
        await load_product(self.products, scope, product_id, write=True)
        changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        require_changes(changes)
        attribute = await self._get(product_id, attribute_id)
        self._apply_changes(attribute, changes)
        await self.product_attributes.save(attribute)
        attribute = await self.product_attributes.reload(attribute)

        logger.info(
            "Product attribute updated",
            product_id=product_id,
            attribute_id=attribute_id,
            fields=sorted(changes),
        )
        return ProductAttributeView.from_model(attribute)

    async def bulk_update(
        self,
        scope: CallerScope,
        product_id: int,
        patches: list[EntityPatch],
    ) -> list[ProductAttributeView]:
        """Update several product attributes atomically.

        Raises:
            BulkUpdateEmptyListError: If no patches were supplied.
            ProductAttributeNotFoundError: If any ID is not on the product.
        """
        if not patches:
            raise BulkUpdateEmptyListError()
        await load_product(self.products, scope, product_id, write=True)
        existing = {
            attribute.id: attribute
            for attribute in await self.product_attributes.list_by_product(product_id)
        }

        for patch in patches:
            attribute = existing.get(patch.id)
            if attribute is None:
                raise ProductAttributeNotFoundError(patch.id)
            changes = {key: value for key, value in patch.changes.items() if key in UPDATABLE_FIELDS}
            require_changes(changes)
            self._apply_changes(attribute, changes)
        await self.product_attributes.save_all(list(existing.values()))

        logger.info(
            "Product attributes bulk updated",
            product_id=product_id,
            updated_count=len({patch.id for patch in patches}),
        )
        attributes = await self.product_attributes.list_by_product(product_id)
        return [ProductAttributeView.from_model(attribute) for attribute in attributes]

    async def delete_attribute(self, scope: CallerScope, product_id: int, attribute_id: int) -> None:
        """Remove an attribute value from a product.

        Raises:
            ProductAttributeNotFoundError: If it is not on the product.
        """
        await load_product(self.products, scope, product_id, write=True)
        attribute = await self._get(product_id, attribute_id)
        await self.product_attributes.remove(attribute)
        logger.info("Product attribute deleted", product_id=product_id, attribute_id=attribute_id)

    async def _get(self, product_id: int, attribute_id: int) -> ProductAttribute:
        attribute = await self.product_attributes.get(product_id, attribute_id)
        if attribute is None:
            raise ProductAttributeNotFoundError(attribute_id)
        return attribute

    @staticmethod
    def _apply_changes(attribute: ProductAttribute, changes: dict[str, Any]) -> None:
        """Validate changes against the loaded definition and apply them."""
        if "value" in changes:
            if changes["value"] is None:
                raise ValidationError("value cannot be null", field="value")
            definition = attribute.attribute_definition
            validate_attribute_value(
                definition.key, list(definition.allowed_values or []), changes["value"]
            )
            attribute.value = changes["value"]
        if "sort_order" in changes:
            if changes["sort_order"] is None or changes["sort_order"] < 0:
                raise ValidationError("sortOrder must be 0 or greater", field="sortOrder")
            attribute.sort_order = changes["sort_order"]

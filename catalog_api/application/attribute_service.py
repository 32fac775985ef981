"""Attribute definition application service."""

from typing import Any

import structlog

from catalog_api.application.commands import AttributeDefinitionInput
from catalog_api.catalog.models import AttributeDefinition
from catalog_api.catalog.repositories import AttributeDefinitionRepository, CategoryRepository
from catalog_api.domain.exceptions import (
    AttributeDefinitionExistsError,
    AttributeDefinitionInUseError,
    AttributeDefinitionNotFoundError,
)
from catalog_api.domain.tenancy import (
    CallerScope,
    ensure_category_writable,
    require_admin,
    require_writer,
)
from catalog_api.domain.validators import require_changes, validate_attribute_definition

logger = structlog.get_logger()

UPDATABLE_FIELDS = ("key", "name", "description", "unit", "allowed_values")


class AttributeService:
    """Application service for attribute definitions.

    Definitions are shared by every tenant: any writer may create one,
    only administrators may change or delete them.
    """

    def __init__(
        self,
        attributes: AttributeDefinitionRepository,
        categories: CategoryRepository,
    ) -> None:
        """Initialize service.

        Args:
            attributes: Attribute definition repository.
            categories: Category repository (for create-and-link).
        """
        self.attributes = attributes
        self.categories = categories

    async def list_attributes(self, scope: CallerScope) -> list[AttributeDefinition]:
        """List every attribute definition ordered by name."""
        return list(await self.attributes.list_all())

    async def get_attribute(self, scope: CallerScope, attribute_id: int) -> AttributeDefinition:
        """Get an attribute definition.

        Raises:
            AttributeDefinitionNotFoundError: If it does not exist.
        """
        definition = await self.attributes.get_by_id(attribute_id)
        if definition is None:
            raise AttributeDefinitionNotFoundError(attribute_id)
        return definition

    async def create_attribute(
        self,
        scope: CallerScope,
        data: AttributeDefinitionInput,
    ) -> AttributeDefinition:
        """Create an attribute definition.

        Raises:
            ForbiddenError: If the caller is read-only.
            ValidationError: If fields are invalid.
            AttributeDefinitionExistsError: If the key is taken.
        """
        require_writer(scope)
        validate_attribute_definition(
            {
                "key": data.key,
                "name": data.name,
                "description": data.description,
                "unit": data.unit,
                "allowed_values": data.allowed_values,
            }
        )
        if await self.attributes.get_by_key(data.key):
            raise AttributeDefinitionExistsError(details={"key": data.key})

        definition = await self.attributes.save(
            AttributeDefinition(
                key=data.key,
                name=data.name,
                description=data.description,
                unit=data.unit,
                allowed_values=list(data.allowed_values),
            )
        )
        logger.info("Attribute definition created", attribute_id=definition.id, key=definition.key)
        return definition

    async def create_for_category(
        self,
        scope: CallerScope,
        category_id: int,
        data: AttributeDefinitionInput,
    ) -> AttributeDefinition:
        """Create a definition and link it to a category in one transaction.

        Raises:
            CategoryNotFoundError: If the category is missing or foreign.
            UnauthorizedCategoryUpdateError: If a seller targets a global category.
        """
        ensure_category_writable(scope, await self.categories.get_by_id(category_id), category_id)
        definition = await self.create_attribute(scope, data)
        await self.attributes.add_link(category_id, definition.id)
        logger.info("Attribute linked", category_id=category_id, attribute_id=definition.id)
        return definition

    async def update_attribute(
        self,
        scope: CallerScope,
        attribute_id: int,
        changes: dict[str, Any],
    ) -> AttributeDefinition:
        """Apply a partial update (admin only).

        Raises:
            ForbiddenError: If the caller is not an admin.
            ValidationError: If nothing was supplied or fields are invalid.
            AttributeDefinitionExistsError: If the new key is taken.
        """
        require_admin(scope)
        changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
        definition = await self.get_attribute(scope, attribute_id)
        require_changes(changes)
        validate_attribute_definition(changes)

        new_key = changes.get("key")
        if new_key is not None and new_key != definition.key:
            if await self.attributes.get_by_key(new_key):
                raise AttributeDefinitionExistsError(details={"key": new_key})

        for key, value in changes.items():
            setattr(definition, key, list(value) if key == "allowed_values" else value)
        definition = await self.attributes.save(definition)

        logger.info("Attribute definition updated", attribute_id=attribute_id, fields=sorted(changes))
        return definition

    async def delete_attribute(self, scope: CallerScope, attribute_id: int) -> None:
        """Delete a definition and its category links (admin only).

        Raises:
            AttributeDefinitionInUseError: If any product has a value for it.
        """
        require_admin(scope)
        definition = await self.get_attribute(scope, attribute_id)
        usages = await self.attributes.count_product_usages(attribute_id)
        if usages:
            raise AttributeDefinitionInUseError(
                f"Attribute definition is used by {usages} products",
                details={"attribute_id": attribute_id, "product_count": usages},
            )

        await self.attributes.delete_definition(definition)
        logger.info("Attribute definition deleted", attribute_id=attribute_id)

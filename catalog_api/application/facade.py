"""Catalog facade and unit of work.

The facade is the single entry point the HTTP layer uses: each request
opens a unit of work, calls services on it and lets the context manager
commit or roll back.

Example usage:
    facade = get_catalog_facade()
    async with facade.unit_of_work() as uow:
        product = await uow.products.get_product(scope, 42)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import cached_property

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_api.application.assembler import ProductViewBuilder
from catalog_api.application.attribute_service import AttributeService
from catalog_api.application.category_service import CategoryService
from catalog_api.application.option_service import OptionService
from catalog_api.application.package_option_service import PackageOptionService
from catalog_api.application.product_attribute_service import ProductAttributeService
from catalog_api.application.product_query_service import ProductQueryService
from catalog_api.application.product_service import ProductService
from catalog_api.application.variant_service import VariantService
from catalog_api.catalog.repositories import (
    AttributeDefinitionRepository,
    CategoryRepository,
    FacetRepository,
    OptionRepository,
    PackageOptionRepository,
    ProductAttributeRepository,
    ProductRepository,
    RelatedProductRepository,
    VariantRepository,
)
from catalog_api.domain.exceptions import DuplicateEntryError, StoreError
from catalog_api.infrastructure.database import async_session_factory

logger = structlog.get_logger()


class CatalogUnitOfWork:
    """One session and transaction with the repositories and services bound to it.

    Repositories and services are built on first access so a request only
    pays for what it touches.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    @cached_property
    def category_repository(self) -> CategoryRepository:
        return CategoryRepository(self.session)

    @cached_property
    def attribute_repository(self) -> AttributeDefinitionRepository:
        return AttributeDefinitionRepository(self.session)

    @cached_property
    def product_repository(self) -> ProductRepository:
        return ProductRepository(self.session)

    @cached_property
    def variant_repository(self) -> VariantRepository:
        return VariantRepository(self.session)

    @cached_property
    def option_repository(self) -> OptionRepository:
        return OptionRepository(self.session)

    @cached_property
    def product_attribute_repository(self) -> ProductAttributeRepository:
        return ProductAttributeRepository(self.session)

    @cached_property
    def package_option_repository(self) -> PackageOptionRepository:
        return PackageOptionRepository(self.session)

    @cached_property
    def facet_repository(self) -> FacetRepository:
        return FacetRepository(self.session)

    @cached_property
    def related_repository(self) -> RelatedProductRepository:
        return RelatedProductRepository(self.session)

    @cached_property
    def view_builder(self) -> ProductViewBuilder:
        return ProductViewBuilder(
            self.category_repository,
            self.variant_repository,
            self.option_repository,
            self.product_attribute_repository,
            self.package_option_repository,
        )

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    @cached_property
    def categories(self) -> CategoryService:
        return CategoryService(self.category_repository, self.attribute_repository)

    @cached_property
    def attributes(self) -> AttributeService:
        return AttributeService(self.attribute_repository, self.category_repository)

    @cached_property
    def products(self) -> ProductService:
        return ProductService(
            self.product_repository,
            self.category_repository,
            self.attribute_repository,
            self.option_repository,
            self.variant_repository,
            self.product_attribute_repository,
            self.package_option_repository,
            self.view_builder,
        )

    @cached_property
    def product_queries(self) -> ProductQueryService:
        return ProductQueryService(
            self.product_repository,
            self.facet_repository,
            self.related_repository,
            self.view_builder,
        )

    @cached_property
    def variants(self) -> VariantService:
        return VariantService(self.product_repository, self.variant_repository, self.option_repository)

    @cached_property
    def options(self) -> OptionService:
        return OptionService(self.product_repository, self.option_repository, self.variant_repository)

    @cached_property
    def product_attributes(self) -> ProductAttributeService:
        return ProductAttributeService(
            self.product_repository,
            self.product_attribute_repository,
            self.attribute_repository,
        )

    @cached_property
    def package_options(self) -> PackageOptionService:
        return PackageOptionService(self.product_repository, self.package_option_repository)


class CatalogFacade:
    """Process-wide entry point bound to a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[CatalogUnitOfWork]:
        """Open a transaction, commit on success and roll back on any failure.

        Store errors are translated so no SQL text leaves this layer.

        Raises:
            DuplicateEntryError: If a unique or foreign key constraint fails.
            StoreError: If the store fails in any other way.
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield CatalogUnitOfWork(session)
            except IntegrityError as exc:
                logger.warning("Integrity violation", error=str(exc.orig))
                raise DuplicateEntryError() from exc
            except SQLAlchemyError as exc:
                logger.error("Store operation failed", error_type=type(exc).__name__)
                raise StoreError() from exc


# Global facade instance
_facade: CatalogFacade | None = None


def get_catalog_facade() -> CatalogFacade:
    """Get catalog facade singleton."""
    global _facade
    if _facade is None:
        _facade = CatalogFacade(async_session_factory)
    return _facade


def reset_catalog_facade(session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    """Reset the catalog facade (for testing)."""
    global _facade
    _facade = CatalogFacade(session_factory) if session_factory is not None else None

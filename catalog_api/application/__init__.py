"""Application layer module.

Contains application services (use cases) that orchestrate domain rules
and repositories, and the facade that binds them to a transaction.
"""

from catalog_api.application.facade import (
    CatalogFacade,
    CatalogUnitOfWork,
    get_catalog_facade,
    reset_catalog_facade,
)

__all__ = [
    "CatalogFacade",
    "CatalogUnitOfWork",
    "get_catalog_facade",
    "reset_catalog_facade",
]

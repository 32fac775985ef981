"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from catalog_api.api.attributes import router as attributes_router
from catalog_api.api.categories import router as categories_router
from catalog_api.api.health import router as health_router
from catalog_api.api.options import router as options_router
from catalog_api.api.package_options import router as package_options_router
from catalog_api.api.product_attributes import router as product_attributes_router
from catalog_api.api.products import router as products_router
from catalog_api.api.variants import router as variants_router

__all__ = [
    "attributes_router",
    "categories_router",
    "health_router",
    "options_router",
    "package_options_router",
    "product_attributes_router",
    "products_router",
    "variants_router",
]

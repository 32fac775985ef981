"""Product catalog persistence.

ORM models for categories, attribute definitions, products and their owned
tables, plus listing predicates and repositories.
"""

from catalog_api.catalog.models import (
    AttributeDefinition,
    Category,
    CategoryAttribute,
    PackageOption,
    Product,
    ProductAttribute,
    ProductOption,
    ProductOptionValue,
    ProductVariant,
    VariantOptionValue,
)
from catalog_api.catalog.queries import PaginatedResult, PaginationParams, ProductFilter

__all__ = [
    # Models
    "AttributeDefinition",
    "Category",
    "CategoryAttribute",
    "PackageOption",
    "Product",
    "ProductAttribute",
    "ProductOption",
    "ProductOptionValue",
    "ProductVariant",
    "VariantOptionValue",
    # Queries
    "PaginatedResult",
    "PaginationParams",
    "ProductFilter",
]

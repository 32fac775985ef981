"""Repositories for the catalog tables."""

from catalog_api.catalog.repositories.attribute import AttributeDefinitionRepository
from catalog_api.catalog.repositories.category import CategoryRepository
from catalog_api.catalog.repositories.facets import FacetRepository
from catalog_api.catalog.repositories.option import OptionRepository
from catalog_api.catalog.repositories.package_option import PackageOptionRepository
from catalog_api.catalog.repositories.product import ProductRepository
from catalog_api.catalog.repositories.product_attribute import ProductAttributeRepository
from catalog_api.catalog.repositories.related import RelatedProductRepository
from catalog_api.catalog.repositories.variant import VariantRepository

__all__ = [
    "AttributeDefinitionRepository",
    "CategoryRepository",
    "FacetRepository",
    "OptionRepository",
    "PackageOptionRepository",
    "ProductAttributeRepository",
    "ProductRepository",
    "RelatedProductRepository",
    "VariantRepository",
]

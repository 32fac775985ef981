"""Input payloads accepted by the catalog services.

The HTTP layer converts request schemas into these dataclasses so that
services never depend on pydantic models. Partial updates are passed as
plain dictionaries holding only the fields the caller supplied.
"""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class CategoryInput:
    """Fields for creating a category."""

    name: str
    description: str = ""
    parent_id: int | None = None


@dataclass
class AttributeDefinitionInput:
    """Fields for creating an attribute definition."""

    key: str
    name: str
    description: str = ""
    unit: str = ""
    allowed_values: list[str] = field(default_factory=list)


@dataclass
class OptionValueInput:
    """Option value to create, or to update when ``id`` is set."""

    value: str
    display_name: str
    color_code: str = ""
    position: int = 0
    id: int | None = None


@dataclass
class OptionInput:
    """Product option with its values."""

    name: str
    display_name: str
    position: int = 0
    values: list[OptionValueInput] = field(default_factory=list)
    id: int | None = None


@dataclass
class VariantInput:
    """Variant to create, or to update when ``id`` is set.

    Attributes:
        options: Selected value per option name (e.g. {"color": "red"}).
    """

    sku: str
    price: Decimal
    stock: int = 0
    options: dict[str, str] = field(default_factory=dict)
    images: list[str] = field(default_factory=list)
    in_stock: bool | None = None
    is_popular: bool = False
    is_default: bool = False
    allow_purchase: bool = True
    id: int | None = None


@dataclass
class ProductAttributeInput:
    """Attribute value to set on a product."""

    attribute_definition_id: int
    value: str
    sort_order: int = 0
    id: int | None = None


@dataclass
class PackageOptionInput:
    """Package option to create, or to update when ``id`` is set."""

    name: str
    price: Decimal
    quantity: int
    description: str = ""
    id: int | None = None


@dataclass
class ProductInput:
    """Full product creation payload."""

    name: str
    category_id: int
    brand: str = ""
    base_sku: str = ""
    short_description: str = ""
    long_description: str = ""
    tags: list[str] = field(default_factory=list)
    seller_id: int | None = None
    options: list[OptionInput] = field(default_factory=list)
    variants: list[VariantInput] = field(default_factory=list)
    attributes: list[ProductAttributeInput] = field(default_factory=list)
    package_options: list[PackageOptionInput] = field(default_factory=list)


@dataclass
class EntityPatch:
    """Partial update of one product child, used by bulk endpoints."""

    id: int
    changes: dict = field(default_factory=dict)


@dataclass
class StockChange:
    """Stock adjustment for a single variant."""

    operation: str
    quantity: int

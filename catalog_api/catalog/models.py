"""SQLAlchemy models for the product catalog.

Defines the category hierarchy, attribute definitions, products and the
tables they own (options, option values, variants, variant selections,
product attributes and package options).
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_api.infrastructure.database import Base


def utcnow() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Adds created_at/updated_at columns maintained by the ORM."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class Category(TimestampMixin, Base):
    """Node of the category forest.

    A category is either global (admin-owned, visible to every seller) or
    owned by exactly one seller.

    Attributes:
        id: Category identifier.
        name: Display name, unique among siblings of the same scope.
        description: Free text description.
        parent_id: Parent category, None for roots.
        is_global: Whether the category belongs to the global catalog.
        seller_id: Owning seller for seller-scoped categories.
    """

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("category.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    is_global: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    seller_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    parent: Mapped["Category | None"] = relationship(
        "Category",
        remote_side="Category.id",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint(
            "(is_global AND seller_id IS NULL) OR (NOT is_global AND seller_id IS NOT NULL)",
            name="ck_category_owner_scope",
        ),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Category(id={self.id}, name={self.name}, parent_id={self.parent_id})>"


class AttributeDefinition(TimestampMixin, Base):
    """Named, optionally value-restricted property.

    Attributes:
        id: Definition identifier.
        key: Stable machine name (unique).
        name: Display name.
        description: Free text description.
        unit: Optional measurement unit.
        allowed_values: Accepted values, empty for free-form.
    """

    __tablename__ = "attribute_definition"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    allowed_values: Mapped[list[str]] = mapped_column(
        ARRAY(Text),
        nullable=False,
        default=list,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<AttributeDefinition(id={self.id}, key={self.key})>"


class CategoryAttribute(Base):
    """Link making an attribute definition applicable to a category."""

    __tablename__ = "category_attribute"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("category.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attribute_definition_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("attribute_definition.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    attribute_definition: Mapped["AttributeDefinition"] = relationship(
        "AttributeDefinition",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint(
            "category_id",
            "attribute_definition_id",
            name="uq_category_attribute",
        ),
    )


class Product(TimestampMixin, Base):
    """Product owned by a seller.

    Pricing, stock and images live on variants; the product row carries
    the descriptive fields only.

    Attributes:
        id: Product identifier.
        seller_id: Owning seller.
        category_id: Category the product is listed under.
        name: Product name.
        brand: Brand name.
        base_sku: Seller's base SKU (not unique).
        short_description: Listing blurb.
        long_description: Detail page text.
        tags: Free-form search tags.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    seller_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("category.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    base_sku: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    short_description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    long_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)

    category: Mapped["Category"] = relationship("Category", lazy="raise")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, seller_id={self.seller_id}, name={self.name[:30]})>"


class ProductAttribute(TimestampMixin, Base):
    """Value of an attribute definition on a product."""

    __tablename__ = "product_attribute"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attribute_definition_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("attribute_definition.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    value: Mapped[str] = mapped_column(String(500), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    attribute_definition: Mapped["AttributeDefinition"] = relationship(
        "AttributeDefinition",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint(
            "product_id",
            "attribute_definition_id",
            name="uq_product_attribute",
        ),
    )


class ProductOption(TimestampMixin, Base):
    """Axis along which a product's variants differ (e.g. color)."""

    __tablename__ = "product_option"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    values: Mapped[list["ProductOptionValue"]] = relationship(
        "ProductOptionValue",
        back_populates="option",
        order_by="ProductOptionValue.position",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("product_id", "name", name="uq_product_option_name"),
    )


class ProductOptionValue(TimestampMixin, Base):
    """Single value of a product option (e.g. red)."""

    __tablename__ = "product_option_value"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    option_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product_option.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    color_code: Mapped[str] = mapped_column(String(7), nullable=False, default="")
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    option: Mapped["ProductOption"] = relationship(
        "ProductOption",
        back_populates="values",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint("option_id", "value", name="uq_product_option_value"),
    )


class ProductVariant(TimestampMixin, Base):
    """Purchasable SKU identified by a full option combination.

    Attributes:
        id: Variant identifier.
        product_id: Parent product.
        sku: Variant SKU, unique per product.
        price: Unit price.
        allow_purchase: Whether the variant can be bought.
        in_stock: Availability flag.
        stock: Units on hand.
        is_default: Whether this is the product's default variant.
        is_popular: Merchandising flag.
        images: Image URLs.
    """

    __tablename__ = "product_variant"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    allow_purchase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_popular: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    images: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint("product_id", "sku", name="uq_product_variant_sku"),
        CheckConstraint("price >= 0", name="ck_product_variant_price"),
        CheckConstraint("stock >= 0", name="ck_product_variant_stock"),
        Index(
            "uq_product_variant_default",
            "product_id",
            unique=True,
            postgresql_where=text("is_default"),
        ),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductVariant(id={self.id}, sku={self.sku}, price={self.price})>"


class VariantOptionValue(Base):
    """Selection of one option value for one variant."""

    __tablename__ = "variant_option_value"

    variant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product_variant.id", ondelete="CASCADE"),
        primary_key=True,
    )
    option_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product_option.id", ondelete="CASCADE"),
        primary_key=True,
    )
    option_value_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product_option_value.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class PackageOption(TimestampMixin, Base):
    """Bundle offered with a product (e.g. pack of 6)."""

    __tablename__ = "package_option"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

"""Create catalog tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    """Create category, attribute, product and product child tables."""
    # Category forest
    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=False, server_default=''),
        sa.Column('parent_id', sa.Integer(),
                  sa.ForeignKey('category.id', ondelete='RESTRICT'), nullable=True, index=True),
        sa.Column('is_global', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('seller_id', sa.Integer(), nullable=True, index=True),
        *_timestamps(),
        sa.CheckConstraint(
            '(is_global AND seller_id IS NULL) OR (NOT is_global AND seller_id IS NOT NULL)',
            name='ck_category_owner_scope',
        ),
    )

    # Attribute registry
    op.create_table(
        'attribute_definition',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('key', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=False, server_default=''),
        sa.Column('unit', sa.String(20), nullable=False, server_default=''),
        sa.Column('allowed_values', postgresql.ARRAY(sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
    )

    op.create_table(
        'category_attribute',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.Integer(),
                  sa.ForeignKey('category.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('attribute_definition_id', sa.Integer(),
                  sa.ForeignKey('attribute_definition.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('category_id', 'attribute_definition_id', name='uq_category_attribute'),
    )

    # Products
    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('seller_id', sa.Integer(), nullable=False, index=True),
        sa.Column('category_id', sa.Integer(),
                  sa.ForeignKey('category.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('brand', sa.String(100), nullable=False, server_default='', index=True),
        sa.Column('base_sku', sa.String(50), nullable=False, server_default=''),
        sa.Column('short_description', sa.String(500), nullable=False, server_default=''),
        sa.Column('long_description', sa.Text(), nullable=False, server_default=''),
        sa.Column('tags', postgresql.ARRAY(sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
    )
    op.create_index('idx_product_category_seller', 'product', ['category_id', 'seller_id'])
    op.create_index('idx_product_brand_seller', 'product', ['brand', 'seller_id'])
    op.create_index('idx_product_tags', 'product', ['tags'], postgresql_using='gin')
    op.create_index('idx_product_seller_created', 'product', ['seller_id', sa.text('created_at DESC')])

    op.create_table(
        'product_attribute',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('attribute_definition_id', sa.Integer(),
                  sa.ForeignKey('attribute_definition.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('value', sa.String(500), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('product_id', 'attribute_definition_id', name='uq_product_attribute'),
    )

    # Options and values
    op.create_table(
        'product_option',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('product_id', 'name', name='uq_product_option_name'),
    )

    op.create_table(
        'product_option_value',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('option_id', sa.Integer(),
                  sa.ForeignKey('product_option.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('value', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('color_code', sa.String(7), nullable=False, server_default=''),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('option_id', 'value', name='uq_product_option_value'),
    )

    # Variants
    op.create_table(
        'product_variant',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('allow_purchase', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('in_stock', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_popular', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('images', postgresql.ARRAY(sa.Text()), nullable=False, server_default='{}'),
        *_timestamps(),
        sa.UniqueConstraint('product_id', 'sku', name='uq_product_variant_sku'),
        sa.CheckConstraint('price >= 0', name='ck_product_variant_price'),
        sa.CheckConstraint('stock >= 0', name='ck_product_variant_stock'),
    )
    op.create_index('idx_variant_product_price', 'product_variant', ['product_id', 'price'])

    # At most one default variant per product
    op.create_index(
        'uq_product_variant_default',
        'product_variant',
        ['product_id'],
        unique=True,
        postgresql_where=sa.text('is_default'),
    )

    op.create_table(
        'variant_option_value',
        sa.Column('variant_id', sa.Integer(),
                  sa.ForeignKey('product_variant.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('option_id', sa.Integer(),
                  sa.ForeignKey('product_option.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('option_value_id', sa.Integer(),
                  sa.ForeignKey('product_option_value.id', ondelete='CASCADE'), nullable=False, index=True),
    )

    # Package options
    op.create_table(
        'package_option',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('product.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=False, server_default=''),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_table('package_option')
    op.drop_table('variant_option_value')
    op.drop_index('uq_product_variant_default', table_name='product_variant')
    op.drop_index('idx_variant_product_price', table_name='product_variant')
    op.drop_table('product_variant')
    op.drop_table('product_option_value')
    op.drop_table('product_option')
    op.drop_table('product_attribute')
    op.drop_index('idx_product_seller_created', table_name='product')
    op.drop_index('idx_product_tags', table_name='product')
    op.drop_index('idx_product_brand_seller', table_name='product')
    op.drop_index('idx_product_category_seller', table_name='product')
    op.drop_table('product')
    op.drop_table('category_attribute')
    op.drop_table('attribute_definition')
    op.drop_table('category')

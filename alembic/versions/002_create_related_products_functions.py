"""Create related products scoring functions.

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Strategies and base scores:
#   same_category 100, same_brand 80, sibling_category 70, parent_category 60,
#   child_category 55, tag_matching 20-50, price_range 25, seller_popular 15.
# Bonuses and penalties are added per candidate; the best strategy names the
# relation and candidates scoring below 10 are dropped.
RELATED_PRODUCTS_SCORED = """
CREATE OR REPLACE FUNCTION get_related_products_scored(
    p_product_id BIGINT,
    p_seller_id BIGINT DEFAULT NULL,
    p_limit INT DEFAULT 10,
    p_offset INT DEFAULT 0,
    p_strategies TEXT DEFAULT 'all'
)
RETURNS TABLE (
    product_id BIGINT,
    product_name VARCHAR,
    category_id BIGINT,
    category_name VARCHAR,
    parent_category_id BIGINT,
    parent_category_name VARCHAR,
    brand VARCHAR,
    sku VARCHAR,
    short_description TEXT,
    long_description TEXT,
    tags TEXT[],
    seller_id BIGINT,
    has_variants BOOLEAN,
    min_price NUMERIC,
    max_price NUMERIC,
    allow_purchase BOOLEAN,
    total_variants BIGINT,
    in_stock_variants BIGINT,
    created_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ,
    final_score INTEGER,
    relation_reason TEXT,
    strategy_used TEXT
)
LANGUAGE plpgsql
AS $$
DECLARE
    v_category_id BIGINT;
    v_parent_category_id BIGINT;
    v_brand VARCHAR;
    v_tags TEXT[];
    v_seller_id BIGINT;
    v_min_price NUMERIC;
    v_max_price NUMERIC;
    v_all BOOLEAN := COALESCE(NULLIF(trim(p_strategies), ''), 'all') = 'all';
    v_tokens TEXT[] := string_to_array(replace(COALESCE(p_strategies, ''), ' ', ''), ',');
BEGIN
    SELECT p.category_id, c.parent_id, p.brand, p.tags, p.seller_id,
           COALESCE(MIN(v.price), 0), COALESCE(MAX(v.price), 0)
    INTO v_category_id, v_parent_category_id, v_brand, v_tags, v_seller_id,
         v_min_price, v_max_price
    FROM product p
    LEFT JOIN category c ON p.category_id = c.id
    LEFT JOIN product_variant v ON p.id = v.product_id
    WHERE p.id = p_product_id
    GROUP BY p.id, p.category_id, c.parent_id, p.brand, p.tags, p.seller_id;

    IF v_category_id IS NULL
       OR (p_seller_id IS NOT NULL AND v_seller_id <> p_seller_id) THEN
        RETURN;
    END IF;

    RETURN QUERY
    WITH
    variant_stats AS (
        SELECT pv.product_id AS id,
               MIN(pv.price) AS min_price,
               MAX(pv.price) AS max_price,
               BOOL_OR(pv.allow_purchase) AS allow_purchase,
               COUNT(*) AS total_variants,
               COUNT(*) FILTER (WHERE pv.in_stock AND pv.stock > 0) AS in_stock_variants
        FROM product_variant pv
        GROUP BY pv.product_id
    ),
    candidates AS (
        SELECT p.id, p.category_id, p.brand, p.tags, p.seller_id, p.created_at,
               c.name AS category_name, c.parent_id AS category_parent_id
        FROM product p
        LEFT JOIN category c ON p.category_id = c.id
        WHERE p.id <> p_product_id
          AND (p_seller_id IS NULL OR p.seller_id = p_seller_id)
    ),
    strategies AS (
        SELECT cd.id, 100 AS base_score, 'same_category' AS strategy,
               'Same category' AS reason
        FROM candidates cd
        WHERE (v_all OR 'same_category' = ANY(v_tokens))
          AND cd.category_id = v_category_id
        UNION ALL
        SELECT cd.id, 80, 'same_brand', 'Same brand: ' || cd.brand
        FROM candidates cd
        WHERE (v_all OR 'same_brand' = ANY(v_tokens))
          AND COALESCE(v_brand, '') <> '' AND cd.brand = v_brand
          AND cd.category_id <> v_category_id
        UNION ALL
        SELECT cd.id, 70, 'sibling_category', 'Related category: ' || cd.category_name
        FROM candidates cd
        WHERE (v_all OR 'sibling_category' = ANY(v_tokens))
          AND v_parent_category_id IS NOT NULL
          AND cd.category_parent_id = v_parent_category_id
          AND cd.category_id <> v_category_id
        UNION ALL
        SELECT cd.id, 60, 'parent_category', 'Broader category: ' || cd.category_name
        FROM candidates cd
        WHERE (v_all OR 'parent_category' = ANY(v_tokens))
          AND v_parent_category_id IS NOT NULL
          AND cd.category_id = v_parent_category_id
        UNION ALL
        SELECT cd.id, 55, 'child_category', 'Sub-category: ' || cd.category_name
        FROM candidates cd
        WHERE (v_all OR 'child_category' = ANY(v_tokens))
          AND cd.category_parent_id = v_category_id
        UNION ALL
        SELECT cd.id,
               CASE
                   WHEN cardinality(ARRAY(SELECT unnest(cd.tags) INTERSECT SELECT unnest(v_tags))) >= 5 THEN 50
                   WHEN cardinality(ARRAY(SELECT unnest(cd.tags) INTERSECT SELECT unnest(v_tags))) >= 3 THEN 40
                   WHEN cardinality(ARRAY(SELECT unnest(cd.tags) INTERSECT SELECT unnest(v_tags))) = 2 THEN 30
                   ELSE 20
               END,
               'tag_matching', 'Similar tags'
        FROM candidates cd
        WHERE (v_all OR 'tag_matching' = ANY(v_tokens))
          AND cardinality(v_tags) > 0 AND cd.tags && v_tags
        UNION ALL
        SELECT cd.id, 25, 'price_range', 'Similar price range'
        FROM candidates cd
        JOIN variant_stats vs ON vs.id = cd.id
        WHERE (v_all OR 'price_range' = ANY(v_tokens))
          AND v_min_price > 0
          AND vs.min_price BETWEEN v_min_price * 0.7 AND v_max_price * 1.3
        UNION ALL
        SELECT ranked.id, 15, 'seller_popular', 'More from this seller'
        FROM (
            SELECT cd.id
            FROM candidates cd
            WHERE (v_all OR 'seller_popular' = ANY(v_tokens))
              AND cd.seller_id = v_seller_id
            ORDER BY cd.created_at DESC
            LIMIT 50
        ) ranked
    ),
    scored AS (
        SELECT s.id, s.strategy, s.reason,
               s.base_score
               + CASE WHEN COALESCE(v_brand, '') <> '' AND cd.brand = v_brand
                           AND cd.category_id = v_category_id THEN 50 ELSE 0 END
               + CASE WHEN COALESCE(v_brand, '') <> '' AND cd.brand = v_brand
                           AND cd.category_parent_id = v_parent_category_id
                           AND cd.category_id <> v_category_id THEN 30 ELSE 0 END
               + CASE WHEN cardinality(v_tags) > 0
                      THEN cardinality(ARRAY(SELECT unnest(cd.tags) INTERSECT SELECT unnest(v_tags))) * 5
                      ELSE 0 END
               AS relation_score,
               CASE WHEN vs.min_price BETWEEN v_min_price * 0.9 AND v_max_price * 1.1 THEN 15 ELSE 0 END
               + CASE WHEN cd.created_at > NOW() - INTERVAL '30 days' THEN 10 ELSE 0 END
               + CASE WHEN v_min_price > 0
                           AND (vs.max_price > v_max_price * 2 OR vs.max_price < v_min_price * 0.5)
                      THEN -20 ELSE 0 END
               AS extra_score
        FROM strategies s
        JOIN candidates cd ON cd.id = s.id
        LEFT JOIN variant_stats vs ON vs.id = s.id
    ),
    deduplicated AS (
        SELECT sc.id,
               MAX(sc.relation_score + sc.extra_score)::INTEGER AS final_score,
               (ARRAY_AGG(sc.reason ORDER BY sc.relation_score DESC))[1] AS reason,
               (ARRAY_AGG(sc.strategy ORDER BY sc.relation_score DESC))[1] AS strategy
        FROM scored sc
        GROUP BY sc.id
        HAVING MAX(sc.relation_score + sc.extra_score) >= 10
    ),
    page AS (
        SELECT d.id, d.final_score, d.reason, d.strategy
        FROM deduplicated d
        ORDER BY d.final_score DESC, d.id DESC
        LIMIT p_limit OFFSET p_offset
    )
    SELECT p.id::BIGINT,
           p.name::VARCHAR,
           p.category_id::BIGINT,
           c.name::VARCHAR,
           c.parent_id::BIGINT,
           pc.name::VARCHAR,
           p.brand::VARCHAR,
           p.base_sku::VARCHAR,
           p.short_description::TEXT,
           p.long_description::TEXT,
           p.tags,
           p.seller_id::BIGINT,
           COALESCE(vs.total_variants, 0) > 0,
           vs.min_price,
           vs.max_price,
           COALESCE(vs.allow_purchase, FALSE),
           COALESCE(vs.total_variants, 0)::BIGINT,
           COALESCE(vs.in_stock_variants, 0)::BIGINT,
           p.created_at,
           p.updated_at,
           pg.final_score,
           pg.reason::TEXT,
           pg.strategy::TEXT
    FROM page pg
    JOIN product p ON p.id = pg.id
    LEFT JOIN category c ON p.category_id = c.id
    LEFT JOIN category pc ON c.parent_id = pc.id
    LEFT JOIN variant_stats vs ON vs.id = p.id
    ORDER BY pg.final_score DESC, p.id DESC;
END;
$$;
"""

RELATED_PRODUCTS_COUNT = """
CREATE OR REPLACE FUNCTION get_related_products_count(
    p_product_id BIGINT,
    p_seller_id BIGINT DEFAULT NULL,
    p_strategies TEXT DEFAULT 'all'
)
RETURNS BIGINT
LANGUAGE plpgsql
AS $$
DECLARE
    v_count BIGINT;
BEGIN
    SELECT COUNT(*) INTO v_count
    FROM get_related_products_scored(p_product_id, p_seller_id, 2147483647, 0, p_strategies);
    RETURN v_count;
END;
$$;
"""


def upgrade() -> None:
    """Create related products functions."""
    op.execute(RELATED_PRODUCTS_SCORED)
    op.execute(RELATED_PRODUCTS_COUNT)


def downgrade() -> None:
    """Drop related products functions."""
    op.execute('DROP FUNCTION IF EXISTS get_related_products_count(BIGINT, BIGINT, TEXT)')
    op.execute('DROP FUNCTION IF EXISTS get_related_products_scored(BIGINT, BIGINT, INT, INT, TEXT)')

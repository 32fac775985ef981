"""Related products repository.

Scoring lives in the ``get_related_products_scored`` stored procedure
installed by migration 002; this repository only calls it.
"""

from collections.abc import Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.types import BigInteger, Integer, Text

RELATED_PRODUCTS_QUERY = text(
    """
    SELECT product_id, product_name, category_id, category_name,
           parent_category_id, parent_category_name, brand, sku,
           short_description, long_description, tags, seller_id,
           has_variants, min_price, max_price, allow_purchase,
           total_variants, in_stock_variants, created_at, updated_at,
           final_score, relation_reason, strategy_used
    FROM get_related_products_scored(
        :product_id, :seller_id, :limit, :offset, :strategies
    )
    """
).bindparams(
    bindparam("product_id", type_=BigInteger),
    bindparam("seller_id", type_=BigInteger),
    bindparam("limit", type_=Integer),
    bindparam("offset", type_=Integer),
    bindparam("strategies", type_=Text),
)

RELATED_PRODUCTS_COUNT_QUERY = text(
    "SELECT get_related_products_count(:product_id, :seller_id, :strategies)"
).bindparams(
    bindparam("product_id", type_=BigInteger),
    bindparam("seller_id", type_=BigInteger),
    bindparam("strategies", type_=Text),
)


class RelatedProductRepository:
    """Calls the related-products stored procedures."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def find_related(
        self,
        product_id: int,
        seller_id: int | None,
        limit: int,
        offset: int,
        strategies: str,
    ) -> Sequence[Row]:
        """Scored related products, best first.

        Args:
            product_id: Source product.
            seller_id: Tenant filter; None for unrestricted callers.
            limit: Page size.
            offset: Rows to skip.
            strategies: ``all`` or a comma-separated list of strategy names.

        Returns:
            Rows as returned by the procedure.
        """
        result = await self.session.execute(
            RELATED_PRODUCTS_QUERY,
            {
                "product_id": product_id,
                "seller_id": seller_id,
                "limit": limit,
                "offset": offset,
                "strategies": strategies,
            },
        )
        return result.all()

    async def count_related(self, product_id: int, seller_id: int | None, strategies: str) -> int:
        """Total number of related products for pagination."""
        result = await self.session.execute(
            RELATED_PRODUCTS_COUNT_QUERY,
            {"product_id": product_id, "seller_id": seller_id, "strategies": strategies},
        )
        return int(result.scalar_one() or 0)

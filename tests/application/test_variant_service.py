"""Tests for the variant service with mocked repositories."""

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_api.application.commands import EntityPatch, StockChange
from catalog_api.application.variant_service import VariantService
from catalog_api.domain import CallerScope
from catalog_api.domain.exceptions import (
    BulkUpdateEmptyListError,
    ForbiddenError,
    InsufficientStockError,
    InvalidStockOperationError,
    LastVariantDeleteError,
    ProductHasNoOptionsError,
    ProductNotFoundError,
    VariantNotFoundError,
    VariantNotFoundWithOptionsError,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
SELLER = CallerScope.seller(7)


def option_value(id: int, value: str) -> SimpleNamespace:
    return SimpleNamespace(id=id, value=value, display_name=value.title(), color_code="")


COLOR = SimpleNamespace(
    id=1,
    name="color",
    display_name="Color",
    values=[option_value(101, "red"), option_value(102, "blue"), option_value(103, "green")],
)


def make_variant(id: int, stock: int = 5, is_default: bool = False) -> SimpleNamespace:
    return SimpleNamespace(
        id=id,
        product_id=1,
        sku=f"SKU-{id}",
        price=Decimal("19.99"),
        stock=stock,
        in_stock=stock > 0,
        is_default=is_default,
        is_popular=False,
        allow_purchase=True,
        images=[],
        created_at=NOW,
        updated_at=NOW,
    )


def make_service(
    variants: list[SimpleNamespace],
    seller_id: int = 7,
    options: list[SimpleNamespace] | None = None,
    selections: dict[int, dict[int, int]] | None = None,
) -> VariantService:
    product = SimpleNamespace(id=1, seller_id=seller_id, name="Shirt", brand="Acme")
    products = MagicMock()
    products.get_by_id = AsyncMock(return_value=product)

    repo = MagicMock()
    repo.list_by_product = AsyncMock(return_value=variants)
    repo.get = AsyncMock(
        side_effect=lambda product_id, variant_id: next(
            (v for v in variants if v.id == variant_id), None
        )
    )
    selections = selections or {}
    repo.get_selections = AsyncMock(
        side_effect=lambda ids: {i: selections[i] for i in ids if i in selections}
    )
    repo.save = AsyncMock(side_effect=lambda variant: variant)
    repo.save_all = AsyncMock(side_effect=lambda items: items)
    repo.unset_defaults = AsyncMock()
    repo.delete_variant = AsyncMock()
    repo.find_by_option_values = AsyncMock(return_value=None)

    option_repo = MagicMock()
    option_repo.list_by_product = AsyncMock(return_value=options or [])
    return VariantService(products, repo, option_repo)


class TestUpdateStock:
    """Tests for stock operations."""

    @pytest.mark.asyncio
    async def test_set(self) -> None:
        """Should replace the stock level."""
        service = make_service([make_variant(10, stock=5)])
        result = await service.update_stock(SELLER, 1, 10, StockChange("set", 12))
        assert result.stock == 12
        assert result.in_stock

    @pytest.mark.asyncio
    async def test_add(self) -> None:
        """Should add to the stock level."""
        service = make_service([make_variant(10, stock=5)])
        result = await service.update_stock(SELLER, 1, 10, StockChange("ADD", 3))
        assert result.stock == 8

    @pytest.mark.asyncio
    async def test_subtract_to_zero_marks_out_of_stock(self) -> None:
        """Should flip in_stock off when stock reaches zero."""
        service = make_service([make_variant(10, stock=5)])
        result = await service.update_stock(SELLER, 1, 10, StockChange("subtract", 5))
        assert result.stock == 0
        assert not result.in_stock

    @pytest.mark.asyncio
    async def test_subtract_more_than_available(self) -> None:
        """Should refuse to go below zero and report both quantities."""
        service = make_service([make_variant(10, stock=2)])
        with pytest.raises(InsufficientStockError) as exc_info:
            await service.update_stock(SELLER, 1, 10, StockChange("subtract", 3))
        assert exc_info.value.details["current_stock"] == 2
        assert exc_info.value.details["requested"] == 3

    @pytest.mark.asyncio
    async def test_unknown_operation(self) -> None:
        """Should reject operations other than set, add and subtract."""
        service = make_service([make_variant(10)])
        with pytest.raises(InvalidStockOperationError):
            await service.update_stock(SELLER, 1, 10, StockChange("multiply", 2))
        service.products.get_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_variant(self) -> None:
        """Should report a variant that is not on the product."""
        service = make_service([make_variant(10)])
        with pytest.raises(VariantNotFoundError):
            await service.update_stock(SELLER, 1, 99, StockChange("set", 1))

    @pytest.mark.asyncio
    async def test_public_scope_cannot_write(self) -> None:
        """Should forbid storefront callers from changing stock."""
        service = make_service([make_variant(10)])
        with pytest.raises(ForbiddenError):
            await service.update_stock(CallerScope.public(7), 1, 10, StockChange("set", 1))

    @pytest.mark.asyncio
    async def test_foreign_seller(self) -> None:
        """Should hide another seller's product."""
        service = make_service([make_variant(10)], seller_id=8)
        with pytest.raises(ProductNotFoundError):
            await service.update_stock(SELLER, 1, 10, StockChange("set", 1))


class TestDeleteVariant:
    """Tests for variant deletion."""

    @pytest.mark.asyncio
    async def test_last_variant_kept(self) -> None:
        """Should refuse to delete a product's only variant."""
        service = make_service([make_variant(10, is_default=True)])
        with pytest.raises(LastVariantDeleteError):
            await service.delete_variant(SELLER, 1, 10)
        service.variants.delete_variant.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_default_reassigned(self) -> None:
        """Should move the default flag to the oldest remaining variant."""
        first = make_variant(10, is_default=True)
        second = make_variant(11)
        third = make_variant(12)
        service = make_service([first, second, third])

        await service.delete_variant(SELLER, 1, 10)

        service.variants.delete_variant.assert_awaited_once_with(first)
        assert second.is_default
        assert not third.is_default
        service.variants.save.assert_awaited_once_with(second)

    @pytest.mark.asyncio
    async def test_non_default_deleted_quietly(self) -> None:
        """Should leave the default alone when deleting another variant."""
        first = make_variant(10, is_default=True)
        service = make_service([first, make_variant(11)])
        await service.delete_variant(SELLER, 1, 11)
        service.variants.save.assert_not_awaited()
        assert first.is_default


class TestFindByOptions:
    """Tests for selection lookup."""

    @pytest.mark.asyncio
    async def test_empty_selection(self) -> None:
        """Should require at least one option."""
        service = make_service([make_variant(10)])
        with pytest.raises(ProductHasNoOptionsError):
            await service.find_by_options(SELLER, 1, {})

    @pytest.mark.asyncio
    async def test_selection_normalised(self) -> None:
        """Should normalise names and values before matching."""
        variant = make_variant(10)
        service = make_service([variant])
        service.variants.find_by_option_values.return_value = variant

        view = await service.find_by_options(SELLER, 1, {"Shoe Size": " XL "})

        service.variants.find_by_option_values.assert_awaited_once_with(1, {"shoe_size": "xl"})
        assert view.id == 10
        assert view.product.name == "Shirt"

    @pytest.mark.asyncio
    async def test_no_match_lists_available_values(self) -> None:
        """Should report requested and available options."""
        service = make_service([make_variant(10)])
        service.options.list_by_product.return_value = [COLOR]

        with pytest.raises(VariantNotFoundWithOptionsError) as exc_info:
            await service.find_by_options(SELLER, 1, {"color": "green"})
        assert exc_info.value.details["requested_options"] == {"color": "green"}
        assert exc_info.value.details["available_options"] == {"color": ["red", "blue", "green"]}


class TestBulkUpdate:
    """Tests for bulk variant updates."""

    @pytest.mark.asyncio
    async def test_empty_list(self) -> None:
        """Should reject an empty patch list."""
        service = make_service([make_variant(10)])
        with pytest.raises(BulkUpdateEmptyListError):
            await service.bulk_update(SELLER, 1, [])

    @pytest.mark.asyncio
    async def test_unknown_id(self) -> None:
        """Should reject patches for variants of other products."""
        service = make_service([make_variant(10)])
        with pytest.raises(VariantNotFoundError):
            await service.bulk_update(SELLER, 1, [EntityPatch(id=99, changes={"stock": 1})])

    @pytest.mark.asyncio
    async def test_last_default_wins(self) -> None:
        """Should make the last patch flagged as default the default."""
        first = make_variant(10, is_default=True)
        second = make_variant(11)
        third = make_variant(12)
        service = make_service(
            [first, second, third],
            options=[COLOR],
            selections={10: {1: 101}, 11: {1: 102}, 12: {1: 103}},
        )

        views = await service.bulk_update(
            SELLER,
            1,
            [
                EntityPatch(id=11, changes={"is_default": True, "stock": 2}),
                EntityPatch(id=12, changes={"is_default": True}),
            ],
        )

        service.variants.unset_defaults.assert_awaited_once_with(1, keep_variant_id=12)
        assert third.is_default
        assert second.stock == 2
        assert [view.id for view in views] == [11, 12]

"""Tests for the product service with mocked repositories."""

import itertools
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_api.application.commands import (
    OptionInput,
    OptionValueInput,
    ProductAttributeInput,
    ProductInput,
    VariantInput,
)
from catalog_api.application.product_service import ProductService
from catalog_api.domain import CallerScope
from catalog_api.domain.exceptions import (
    ForbiddenError,
    ProductCategoryInvalidError,
    ProductNotFoundError,
    ProductOptionInUseError,
    ValidationError,
)

SELLER = CallerScope.seller(7)

DEFINITIONS = {
    8: SimpleNamespace(id=8, key="material", allowed_values=["cotton", "wool"]),
    9: SimpleNamespace(id=9, key="warranty", allowed_values=[]),
}


def save_options(rows: list) -> list:
    """Number options 1, 2, ... and their values 101, 102, 201, ..."""
    for option_id, option in enumerate(rows, start=1):
        option.id = option_id
        for n, value in enumerate(option.values, start=1):
            value.id = option_id * 100 + n
    return list(rows)


def numbering(start: int):
    counter = itertools.count(start)

    def assign(rows: list) -> list:
        for row in rows:
            if row.id is None:
                row.id = next(counter)
        return list(rows)

    return assign


def color_option() -> SimpleNamespace:
    return SimpleNamespace(
        id=1,
        name="color",
        display_name="Color",
        position=0,
        values=[
            SimpleNamespace(id=101, value="red"),
            SimpleNamespace(id=102, value="blue"),
            SimpleNamespace(id=103, value="green"),
        ],
    )


def stored_variant(id: int, is_default: bool = False) -> SimpleNamespace:
    return SimpleNamespace(id=id, sku=f"SKU-{id}", is_default=is_default)


def stored_product(seller_id: int = 7) -> SimpleNamespace:
    return SimpleNamespace(
        id=1,
        seller_id=seller_id,
        category_id=3,
        name="Shirt",
        brand="Acme",
        base_sku="",
        short_description="s",
        long_description="",
        tags=["summer"],
    )


def make_service(
    product: SimpleNamespace | None = None,
    variants: list[SimpleNamespace] | None = None,
    options: list[SimpleNamespace] | None = None,
    applicable: tuple[int, ...] = (8,),
) -> ProductService:
    variants = variants or []

    def save_product(row):
        if row.id is None:
            row.id = 1
        return row

    products = MagicMock()
    products.get_by_id = AsyncMock(return_value=product)
    products.save = AsyncMock(side_effect=save_product)
    products.delete_cascade = AsyncMock()

    categories = MagicMock()
    categories.get_by_id = AsyncMock(
        return_value=SimpleNamespace(id=3, is_global=True, seller_id=None)
    )

    attributes = MagicMock()
    attributes.get_many = AsyncMock(
        side_effect=lambda ids: {i: DEFINITIONS[i] for i in ids if i in DEFINITIONS}
    )
    attributes.list_for_category = AsyncMock(
        return_value=[DEFINITIONS[i] for i in applicable]
    )

    option_repo = MagicMock()
    option_repo.save_all = AsyncMock(side_effect=save_options)
    option_repo.list_by_product = AsyncMock(return_value=options or [])
    option_repo.remove = AsyncMock()

    variant_repo = MagicMock()
    variant_repo.save_all = AsyncMock(side_effect=numbering(50))
    variant_repo.save = AsyncMock(side_effect=lambda row: row)
    variant_repo.add_selections = AsyncMock()
    variant_repo.unset_defaults = AsyncMock()
    variant_repo.delete_variant = AsyncMock()
    variant_repo.clear_selections = AsyncMock()
    variant_repo.list_by_product = AsyncMock(return_value=variants)
    variant_repo.count_by_product = AsyncMock(return_value=len(variants))
    variant_repo.count_using_option = AsyncMock(return_value=0)
    variant_repo.count_using_value = AsyncMock(return_value=0)

    product_attributes = MagicMock()
    product_attributes.save_all = AsyncMock(side_effect=numbering(30))
    product_attributes.list_by_product = AsyncMock(return_value=[])
    product_attributes.remove = AsyncMock()

    package_options = MagicMock()
    package_options.save_all = AsyncMock(side_effect=numbering(40))
    package_options.list_by_product = AsyncMock(return_value=[])
    package_options.remove = AsyncMock()

    views = MagicMock()
    views.detail = AsyncMock(side_effect=lambda row: row)

    return ProductService(
        products,
        categories,
        attributes,
        option_repo,
        variant_repo,
        product_attributes,
        package_options,
        views,
    )


def option_input(name: str, *values: str) -> OptionInput:
    return OptionInput(
        name=name,
        display_name=name.title(),
        values=[OptionValueInput(value=value, display_name=value.title()) for value in values],
    )


def variant_input(sku: str, price: str = "10", **options: str) -> VariantInput:
    return VariantInput(sku=sku, price=Decimal(price), stock=1, options=options)


class TestCreateProduct:
    """Tests for creating a product with its graph."""

    @pytest.mark.asyncio
    async def test_creates_options_variants_and_selections(self) -> None:
        """Should store variants with resolved selections and one default."""
        service = make_service()
        data = ProductInput(
            name="Shirt",
            category_id=3,
            options=[option_input("Color", "red", "blue")],
            variants=[
                variant_input("SKU-R", color="red"),
                VariantInput(
                    sku="SKU-B", price=Decimal("12"), options={"color": "Blue"}, is_default=True
                ),
            ],
            attributes=[ProductAttributeInput(attribute_definition_id=8, value="cotton")],
        )

        product = await service.create_product(SELLER, data)

        assert product.seller_id == 7
        rows = service.variants.save_all.await_args.args[0]
        assert [row.is_default for row in rows] == [False, True]
        service.variants.add_selections.assert_awaited_once_with({50: {1: 101}, 51: {1: 102}})
        service.product_attributes.save_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_combination(self) -> None:
        """Should require a variant for every combination of values."""
        service = make_service()
        data = ProductInput(
            name="Shirt",
            category_id=3,
            options=[option_input("color", "red", "blue"), option_input("size", "s", "m")],
            variants=[
                variant_input("RS", color="red", size="s"),
                variant_input("RM", color="red", size="m"),
                variant_input("BS", color="blue", size="s"),
            ],
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.create_product(SELLER, data)

        assert exc_info.value.details["missing_combinations"] == [{"color": "blue", "size": "m"}]
        service.products.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_free_variant(self) -> None:
        """Should accept a variant priced at zero."""
        service = make_service()
        data = ProductInput(name="Sticker", category_id=3, variants=[variant_input("FREE-1", "0")])

        await service.create_product(SELLER, data)

        rows = service.variants.save_all.await_args.args[0]
        assert rows[0].price == Decimal("0")
        assert rows[0].is_default is True

    @pytest.mark.asyncio
    async def test_attribute_outside_category(self) -> None:
        """Should reject definitions not linked to the category or its ancestors."""
        service = make_service()
        data = ProductInput(
            name="Shirt",
            category_id=3,
            variants=[variant_input("SKU-1")],
            attributes=[ProductAttributeInput(attribute_definition_id=9, value="2 years")],
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.create_product(SELLER, data)

        assert exc_info.value.details["attribute_definition_id"] == 9
        service.attributes.list_for_category.assert_awaited_once_with(3, True)
        service.products.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_category(self) -> None:
        """Should reject another seller's category."""
        service = make_service()
        service.categories.get_by_id.return_value = SimpleNamespace(
            id=3, is_global=False, seller_id=8
        )
        data = ProductInput(name="Shirt", category_id=3, variants=[variant_input("SKU-1")])
        with pytest.raises(ProductCategoryInvalidError):
            await service.create_product(SELLER, data)


class TestUpdateProduct:
    """Tests for partial updates and collection reconciliation."""

    @pytest.mark.asyncio
    async def test_empty_string_clears_only_that_field(self) -> None:
        """Should clear the supplied field and leave the others alone."""
        product = stored_product()
        service = make_service(product)

        await service.update_product(SELLER, 1, {"short_description": ""})

        assert product.short_description == ""
        assert product.brand == "Acme"
        assert product.tags == ["summer"]

    @pytest.mark.asyncio
    async def test_null_text_field_clears(self) -> None:
        """Should treat an explicit null text field as empty."""
        product = stored_product()
        service = make_service(product)
        await service.update_product(SELLER, 1, {"brand": None})
        assert product.brand == ""

    @pytest.mark.asyncio
    async def test_protected_fields_only(self) -> None:
        """Should reject an update holding nothing but protected fields."""
        product = stored_product()
        service = make_service(product)
        with pytest.raises(ValidationError):
            await service.update_product(SELLER, 1, {"seller_id": 9, "id": 4})
        assert product.seller_id == 7
        service.products.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_foreign_product(self) -> None:
        """Should report another seller's product as missing."""
        service = make_service(stored_product(seller_id=8))
        with pytest.raises(ProductNotFoundError):
            await service.update_product(SELLER, 1, {"name": "Other"})

    @pytest.mark.asyncio
    async def test_variants_reconciled_by_id(self) -> None:
        """Should keep ids, drop missing variants and move the default."""
        existing = [stored_variant(10, is_default=True), stored_variant(11), stored_variant(12)]
        service = make_service(stored_product(), existing, [color_option()])

        await service.update_product(
            SELLER,
            1,
            {
                "variants": [
                    VariantInput(
                        id=11, sku="SKU-11B", price=Decimal("9.50"), options={"color": "blue"}
                    ),
                    variant_input("SKU-NEW", color="red"),
                ]
            },
        )

        deleted = [call.args[0].id for call in service.variants.delete_variant.await_args_list]
        assert deleted == [10, 12]
        service.variants.clear_selections.assert_awaited_once_with([11])
        kept = existing[1]
        assert kept.sku == "SKU-11B"
        assert kept.is_default is True
        new_row = service.variants.save_all.await_args.args[0][1]
        assert (new_row.id, new_row.is_default) == (50, False)
        service.variants.add_selections.assert_awaited_once_with({11: {1: 102}, 50: {1: 101}})

    @pytest.mark.asyncio
    async def test_kept_default_survives(self) -> None:
        """Should keep the current default when no variant is flagged."""
        existing = [stored_variant(10, is_default=True), stored_variant(11), stored_variant(12)]
        service = make_service(stored_product(), existing, [color_option()])

        await service.update_product(
            SELLER,
            1,
            {
                "variants": [
                    VariantInput(id=11, sku="SKU-11", price=Decimal("5"), options={"color": "blue"}),
                    VariantInput(id=10, sku="SKU-10", price=Decimal("5"), options={"color": "red"}),
                ]
            },
        )

        assert existing[0].is_default is True
        assert existing[1].is_default is False
        deleted = [call.args[0].id for call in service.variants.delete_variant.await_args_list]
        assert deleted == [12]

    @pytest.mark.asyncio
    async def test_removing_used_option(self) -> None:
        """Should refuse to drop an option variants still select."""
        service = make_service(stored_product(), [stored_variant(10)], [color_option()])
        service.variants.count_using_option.return_value = 3

        with pytest.raises(ProductOptionInUseError) as exc_info:
            await service.update_product(SELLER, 1, {"options": []})

        assert exc_info.value.details == {"option_id": 1, "variant_count": 3}
        service.options.remove.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_new_option_needs_variants(self) -> None:
        """Should refuse a new option unless the variants are rewritten too."""
        service = make_service(stored_product(), [stored_variant(10)], [color_option()])
        color = OptionInput(
            id=1,
            name="color",
            display_name="Color",
            values=[
                OptionValueInput(value="red", display_name="Red", id=101),
                OptionValueInput(value="blue", display_name="Blue", id=102),
                OptionValueInput(value="green", display_name="Green", id=103),
            ],
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.update_product(
                SELLER, 1, {"options": [color, option_input("size", "s", "m")]}
            )

        assert exc_info.value.field == "variants"
        service.options.save_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attributes_checked_against_new_category(self) -> None:
        """Should check attribute applicability against the new category."""
        product = stored_product()
        service = make_service(product)

        await service.update_product(
            SELLER,
            1,
            {
                "category_id": 4,
                "attributes": [ProductAttributeInput(attribute_definition_id=8, value="wool")],
            },
        )

        assert product.category_id == 4
        service.attributes.list_for_category.assert_awaited_once_with(4, True)
        rows = service.product_attributes.save_all.await_args.args[0]
        assert [(row.attribute_definition_id, row.value) for row in rows] == [(8, "wool")]


class TestDeleteProduct:
    """Tests for product deletion."""

    @pytest.mark.asyncio
    async def test_delete_cascades(self) -> None:
        """Should hand the locked product to the cascading delete."""
        product = stored_product()
        service = make_service(product)
        await service.delete_product(SELLER, 1)
        service.products.get_by_id.assert_awaited_once_with(1, for_update=True)
        service.products.delete_cascade.assert_awaited_once_with(product)

    @pytest.mark.asyncio
    async def test_storefront_cannot_delete(self) -> None:
        """Should refuse deletes from read-only callers."""
        service = make_service(stored_product())
        with pytest.raises(ForbiddenError):
            await service.delete_product(CallerScope.public(7), 1)
        service.products.delete_cascade.assert_not_awaited()

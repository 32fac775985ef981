"""Tests for variant endpoints."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from catalog_api.application.views import (
    ProductRef,
    SelectedOption,
    StockView,
    VariantView,
)
from catalog_api.domain.exceptions import (
    InsufficientStockError,
    LastVariantDeleteError,
    VariantNotFoundWithOptionsError,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def variant_view(id: int = 10, **overrides) -> VariantView:
    fields = {
        "id": id,
        "product_id": 1,
        "sku": f"SKU-{id}",
        "price": Decimal("19.99"),
        "stock": 5,
        "in_stock": True,
        "allow_purchase": True,
        "is_default": True,
        "is_popular": False,
        "images": [],
        "selected_options": [
            SelectedOption(
                option_id=1,
                option_name="color",
                option_display_name="Color",
                value_id=11,
                value="red",
                value_display_name="Red",
                color_code="#FF0000",
            )
        ],
        "created_at": NOW,
        "updated_at": NOW,
        "product": ProductRef(id=1, name="Shirt", brand="Acme"),
    }
    fields.update(overrides)
    return VariantView(**fields)


class TestFindVariant:
    """Tests for finding a variant by options."""

    def test_query_params_are_the_selection(
        self, client: TestClient, uow: Any, public_headers: dict[str, str]
    ) -> None:
        """Should pass every query parameter as an option selection."""
        uow.variants.find_by_options = AsyncMock(return_value=variant_view())
        response = client.get(
            "/api/products/1/variants/find?color=red&size=m", headers=public_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["selectedOptions"][0]["valueDisplayName"] == "Red"
        assert data["product"]["brand"] == "Acme"
        assert data["price"] == 19.99
        selection = uow.variants.find_by_options.await_args.args[2]
        assert selection == {"color": "red", "size": "m"}

    def test_no_match(
        self, client: TestClient, uow: Any, public_headers: dict[str, str]
    ) -> None:
        """Should answer 404 with the available options."""
        uow.variants.find_by_options = AsyncMock(
            side_effect=VariantNotFoundWithOptionsError(
                requested_options={"color": "green"},
                available_options={"color": ["red"]},
            )
        )
        response = client.get("/api/products/1/variants/find?color=green", headers=public_headers)
        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "VARIANT_NOT_FOUND_WITH_OPTIONS"
        assert body["details"]["available_options"] == {"color": ["red"]}


class TestVariantWrites:
    """Tests for variant create, update and delete routes."""

    def test_create_variant(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should answer 201 and convert options to a mapping."""
        uow.variants.create_variant = AsyncMock(return_value=variant_view())
        response = client.post(
            "/api/products/1/variants",
            headers=seller_headers,
            json={
                "sku": "SKU-10",
                "price": 19.99,
                "options": [{"optionName": "color", "value": "red"}],
            },
        )
        assert response.status_code == 201
        data = uow.variants.create_variant.await_args.args[2]
        assert data.options == {"color": "red"}
        assert data.stock == 0

    def test_update_only_supplied_fields(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should forward only fields present in the body."""
        uow.variants.update_variant = AsyncMock(return_value=variant_view(stock=9))
        response = client.put(
            "/api/products/1/variants/10",
            headers=seller_headers,
            json={"stock": 9, "isDefault": True},
        )
        assert response.status_code == 200
        assert uow.variants.update_variant.await_args.args[3] == {"stock": 9, "is_default": True}

    def test_bulk_update(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should build one patch per item and count the updates."""
        uow.variants.bulk_update = AsyncMock(
            return_value=[variant_view(10), variant_view(11, is_default=False)]
        )
        response = client.put(
            "/api/products/1/variants/bulk",
            headers=seller_headers,
            json={"variants": [{"id": 10, "price": 21}, {"id": 11, "isPopular": True}]},
        )

        assert response.status_code == 200
        assert response.json()["data"]["updatedCount"] == 2
        patches = uow.variants.bulk_update.await_args.args[2]
        assert [p.id for p in patches] == [10, 11]
        assert patches[0].changes == {"price": Decimal("21")}
        assert patches[1].changes == {"is_popular": True}

    def test_stock_update(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should map the body to a stock change."""
        uow.variants.update_stock = AsyncMock(
            return_value=StockView(variant_id=10, sku="SKU-10", stock=0, in_stock=False)
        )
        response = client.patch(
            "/api/products/1/variants/10/stock",
            headers=seller_headers,
            json={"operation": "subtract", "stock": 5},
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "variantId": 10,
            "sku": "SKU-10",
            "stock": 0,
            "inStock": False,
        }
        change = uow.variants.update_stock.await_args.args[3]
        assert (change.operation, change.quantity) == ("subtract", 5)

    def test_insufficient_stock(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should answer 400 with the stock figures."""
        uow.variants.update_stock = AsyncMock(side_effect=InsufficientStockError(2, 5))
        response = client.patch(
            "/api/products/1/variants/10/stock",
            headers=seller_headers,
            json={"operation": "subtract", "stock": 5},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INSUFFICIENT_STOCK_FOR_OPERATION"
        assert response.json()["details"] == {"current_stock": 2, "requested": 5}

    def test_last_variant_delete(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should refuse to delete the last variant."""
        uow.variants.delete_variant = AsyncMock(side_effect=LastVariantDeleteError())
        response = client.delete("/api/products/1/variants/10", headers=seller_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "LAST_VARIANT_DELETE_NOT_ALLOWED"

"""Tests for category and attribute definition endpoints."""

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from catalog_api.application.views import CategoryNode
from catalog_api.domain.exceptions import (
    CategoryNotFoundError,
    InvalidParentCategoryError,
    UnauthorizedCategoryUpdateError,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def category_row(id: int, name: str, parent_id: int | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        id=id,
        name=name,
        description="",
        parent_id=parent_id,
        is_global=False,
        seller_id=7,
        created_at=NOW,
        updated_at=NOW,
    )


def attribute_row(id: int = 8, key: str = "material") -> SimpleNamespace:
    return SimpleNamespace(
        id=id,
        key=key,
        name=key.title(),
        description="",
        unit="",
        allowed_values=["cotton", "wool"],
        created_at=NOW,
        updated_at=NOW,
    )


class TestCategoryEndpoints:
    """Tests for category routes."""

    def test_list_tree(
        self, client: TestClient, uow: Any, public_headers: dict[str, str]
    ) -> None:
        """Should render nested children."""
        root = CategoryNode.from_model(category_row(1, "Apparel"))
        root.children.append(CategoryNode.from_model(category_row(2, "Shirts", 1)))
        uow.categories.list_tree = AsyncMock(return_value=[root])

        response = client.get("/api/categories", headers=public_headers)

        assert response.status_code == 200
        categories = response.json()["data"]["categories"]
        assert categories[0]["children"][0]["parentId"] == 1
        assert categories[0]["isGlobal"] is False
        assert categories[0]["updatedAt"] == "2026-01-01T12:00:00Z"

    def test_by_parent(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should pass parentId through and return flat rows."""
        uow.categories.list_by_parent = AsyncMock(return_value=[category_row(2, "Shirts", 1)])
        response = client.get("/api/categories/by-parent?parentId=1", headers=seller_headers)
        assert response.status_code == 200
        assert uow.categories.list_by_parent.await_args.args[1] == 1
        assert response.json()["data"]["categories"][0]["children"] == []

    def test_missing_category(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should answer 404 for invisible categories."""
        uow.categories.get_category = AsyncMock(side_effect=CategoryNotFoundError(5))
        response = client.get("/api/categories/5", headers=seller_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "CATEGORY_NOT_FOUND"

    def test_create_category(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should answer 201 with the created category."""
        uow.categories.create_category = AsyncMock(return_value=category_row(9, "Hats"))
        response = client.post(
            "/api/categories", headers=seller_headers, json={"name": "Hats", "parentId": None}
        )
        assert response.status_code == 201
        assert response.json()["data"]["sellerId"] == 7
        data = uow.categories.create_category.await_args.args[1]
        assert (data.name, data.parent_id) == ("Hats", None)

    def test_update_cycle_rejected(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should report re-parenting under a descendant."""
        uow.categories.update_category = AsyncMock(side_effect=InvalidParentCategoryError())
        response = client.put(
            "/api/categories/1", headers=seller_headers, json={"parentId": 3}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PARENT_CATEGORY"
        assert uow.categories.update_category.await_args.args[2] == {"parent_id": 3}

    def test_seller_cannot_update_global(
        self, client: TestClient, uow: Any, seller_headers: dict[str, str]
    ) -> None:
        """Should answer 403 when a seller edits a global category."""
        uow.categories.update_category = AsyncMock(
            side_effect=UnauthorizedCategoryUpdateError()
        )
        response = client.put("/api/categories/1", headers=seller_headers, json={"name": "New"})
        assert response.status_code == 403

    def test_inherited_attributes(
        self, client: TestClient, uow: Any, public_headers: dict[str, str]
    ) -> None:
        """Should honour includeInherited."""
        uow.categories.list_attributes = AsyncMock(return_value=[attribute_row()])
        response = client.get(
            "/api/categories/2/attributes?includeInherited=false", headers=public_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["attributes"][0]["allowedValues"] == ["cotton", "wool"]
        assert uow.categories.list_attributes.await_args.args[2] is False

    def test_unknown_route_uses_envelope(
        self, client: TestClient, seller_headers: dict[str, str]
    ) -> None:
        """Should render unknown routes as NOT_FOUND envelopes."""
        response = client.get("/api/nothing-here", headers=seller_headers)
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Not Found",
            "code": "NOT_FOUND",
            "details": {},
            "requestId": response.headers["X-Request-ID"],
        }


class TestAttributeEndpoints:
    """Tests for attribute definition routes."""

    def test_create_for_category(
        self, client: TestClient, uow: Any, admin_headers: dict[str, str]
    ) -> None:
        """Should create and link in one call."""
        uow.attributes.create_for_category = AsyncMock(return_value=attribute_row())
        response = client.post(
            "/api/attributes/4",
            headers=admin_headers,
            json={"key": "material", "name": "Material", "allowedValues": ["cotton", "wool"]},
        )
        assert response.status_code == 201
        args = uow.attributes.create_for_category.await_args.args
        assert args[1] == 4
        assert args[2].allowed_values == ["cotton", "wool"]

    def test_update_partial(
        self, client: TestClient, uow: Any, admin_headers: dict[str, str]
    ) -> None:
        """Should forward only supplied fields."""
        uow.attributes.update_attribute = AsyncMock(return_value=attribute_row())
        response = client.put("/api/attributes/8", headers=admin_headers, json={"unit": "cm"})
        assert response.status_code == 200
        assert uow.attributes.update_attribute.await_args.args[2] == {"unit": "cm"}

"""Shared fixtures for API tests.

Routers are exercised against a fake facade whose unit of work exposes
mocked services, so no database is needed.
"""

from collections.abc import Callable, Iterator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from catalog_api.api.deps import get_facade
from catalog_api.infrastructure.config import settings
from catalog_api.main import app

class FakeUnitOfWork:
    """Unit of work whose services are mocks configured per test."""

    def __init__(self) -> None:
        self.categories = MagicMock()
        self.attributes = MagicMock()
        self.products = MagicMock()
        self.product_queries = MagicMock()
        self.variants = MagicMock()
        self.options = MagicMock()
        self.product_attributes = MagicMock()
        self.package_options = MagicMock()


class FakeFacade:
    """Facade handing out the same fake unit of work on every request."""

    def __init__(self, uow: FakeUnitOfWork) -> None:
        self.uow = uow

    @asynccontextmanager
    async def unit_of_work(self):
        yield self.uow


def make_token(role: str, **claims) -> str:
    """Sign a bearer token with the configured secret."""
    payload = {"role_name": role, "user_id": 1, **claims}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fake unit of work."""
    return FakeUnitOfWork()


@pytest.fixture
def client(uow: FakeUnitOfWork) -> Iterator[TestClient]:
    """Create test client backed by the fake facade."""
    app.dependency_overrides[get_facade] = lambda: FakeFacade(uow)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def token() -> Callable[..., str]:
    """Get the bearer token factory."""
    return make_token


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Get admin authentication headers."""
    return {"Authorization": f"Bearer {make_token('ADMIN')}"}


@pytest.fixture
def seller_headers() -> dict[str, str]:
    """Get authentication headers for seller 7."""
    return {"Authorization": f"Bearer {make_token('SELLER', seller_id=7)}"}


@pytest.fixture
def public_headers() -> dict[str, str]:
    """Get anonymous storefront headers for seller 7."""
    return {settings.seller_id_header: "7"}

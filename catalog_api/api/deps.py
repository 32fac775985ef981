"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from catalog_api.application.facade import CatalogFacade, get_catalog_facade
from catalog_api.domain.exceptions import AuthenticationRequiredError
from catalog_api.domain.tenancy import CallerScope


def get_facade() -> CatalogFacade:
    """Get the catalog facade."""
    return get_catalog_facade()


def get_caller(request: Request) -> CallerScope:
    """Caller scope resolved by the middleware."""
    caller = getattr(request.state, "caller", None)
    if caller is None:
        raise AuthenticationRequiredError()
    return caller


Facade = Annotated[CatalogFacade, Depends(get_facade)]
Caller = Annotated[CallerScope, Depends(get_caller)]

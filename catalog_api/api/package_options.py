"""Package option API endpoints.

Nested under a product:
- GET /products/{pid}/package-options
- POST /products/{pid}/package-options
- PUT /products/{pid}/package-options/{poid}
- DELETE /products/{pid}/package-options/{poid}
"""

from fastapi import APIRouter, status

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.schemas import (
    ApiResponse,
    ErrorResponse,
    PackageOptionRequest,
    PackageOptionResponse,
    PackageOptionsResponse,
    PackageOptionUpdateRequest,
)
from catalog_api.application.commands import PackageOptionInput

router = APIRouter(prefix="/products/{product_id}/package-options", tags=["Package Options"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


def package_request_to_input(request: PackageOptionRequest) -> PackageOptionInput:
    """Convert a package option request to the service payload."""
    return PackageOptionInput(
        id=request.id,
        name=request.name,
        description=request.description,
        price=request.price,
        quantity=request.quantity,
    )


@router.get(
    "",
    response_model=ApiResponse[PackageOptionsResponse],
    responses=ERRORS,
    summary="List package options",
)
async def list_package_options(
    product_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[PackageOptionsResponse]:
    async with facade.unit_of_work() as uow:
        rows = await uow.package_options.list_package_options(caller, product_id)
        items = [PackageOptionResponse.model_validate(row) for row in rows]
    return ApiResponse(data=PackageOptionsResponse(package_options=items))


@router.post(
    "",
    response_model=ApiResponse[PackageOptionResponse],
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
    summary="Create package option",
)
async def create_package_option(
    product_id: int,
    request: PackageOptionRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[PackageOptionResponse]:
    async with facade.unit_of_work() as uow:
        row = await uow.package_options.create_package_option(
            caller, product_id, package_request_to_input(request)
        )
        data = PackageOptionResponse.model_validate(row)
    return ApiResponse(data=data, message="Package option created")


@router.put(
    "/{package_option_id}",
    response_model=ApiResponse[PackageOptionResponse],
    responses=ERRORS,
    summary="Update package option",
)
async def update_package_option(
    product_id: int,
    package_option_id: int,
    request: PackageOptionUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[PackageOptionResponse]:
    async with facade.unit_of_work() as uow:
        row = await uow.package_options.update_package_option(
            caller, product_id, package_option_id, request.model_dump(exclude_unset=True)
        )
        data = PackageOptionResponse.model_validate(row)
    return ApiResponse(data=data, message="Package option updated")


@router.delete(
    "/{package_option_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete package option",
)
async def delete_package_option(
    product_id: int,
    package_option_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.package_options.delete_package_option(caller, product_id, package_option_id)
    return ApiResponse(message="Package option deleted")

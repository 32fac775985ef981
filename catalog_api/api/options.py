"""Product option API endpoints.

Nested under a product:
- GET /products/{pid}/options - options with values and variant counts
- POST /products/{pid}/options - create an option with values
- PUT /products/{pid}/options/bulk-update - bulk display name/position update
- PUT /products/{pid}/options/{oid} - update display name/position
- DELETE /products/{pid}/options/{oid} - delete an unused option
- POST /products/{pid}/options/{oid}/values - add a value
- POST /products/{pid}/options/{oid}/values/bulk - add several values
- PUT /products/{pid}/options/{oid}/values/{vid} - update a value
- DELETE /products/{pid}/options/{oid}/values/{vid} - delete an unused value
"""

from fastapi import APIRouter, status

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.schemas import (
    ApiResponse,
    ErrorResponse,
    OptionBulkUpdateRequest,
    OptionRequest,
    OptionResponse,
    OptionsListResponse,
    OptionUpdateRequest,
    OptionValueRequest,
    OptionValuesBulkAddRequest,
    OptionValueUpdateRequest,
)
from catalog_api.application.commands import EntityPatch, OptionInput, OptionValueInput

router = APIRouter(prefix="/products/{product_id}/options", tags=["Options"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Converters
# ============================================================================


def value_request_to_input(request: OptionValueRequest) -> OptionValueInput:
    """Convert an option value request to the service payload."""
    return OptionValueInput(
        id=request.id,
        value=request.value,
        display_name=request.display_name,
        color_code=request.color_code,
        position=request.position,
    )


def option_request_to_input(request: OptionRequest) -> OptionInput:
    """Convert an option request (with values) to the service payload."""
    return OptionInput(
        id=request.id,
        name=request.name,
        display_name=request.display_name,
        position=request.position,
        values=[value_request_to_input(v) for v in request.values],
    )


# ============================================================================
# Option Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[OptionsListResponse],
    responses=ERRORS,
    summary="List product options",
)
async def list_options(
    product_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionsListResponse]:
    async with facade.unit_of_work() as uow:
        options = await uow.options.list_options(caller, product_id)
    return ApiResponse(
        data=OptionsListResponse(
            product_id=product_id,
            options=[OptionResponse.model_validate(o) for o in options],
        )
    )


@router.post(
    "",
    response_model=ApiResponse[OptionResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Create product option",
)
async def create_option(
    product_id: int,
    request: OptionRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionResponse]:
    async with facade.unit_of_work() as uow:
        option = await uow.options.create_option(
            caller, product_id, option_request_to_input(request)
        )
    return ApiResponse(data=OptionResponse.model_validate(option), message="Option created")


@router.put(
    "/bulk-update",
    response_model=ApiResponse[OptionsListResponse],
    responses=ERRORS,
    summary="Bulk update product options",
)
async def bulk_update_options(
    product_id: int,
    request: OptionBulkUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionsListResponse]:
    patches = [
        EntityPatch(
            id=item.option_id,
            changes=item.model_dump(exclude_unset=True, exclude={"option_id"}),
        )
        for item in request.options
    ]
    async with facade.unit_of_work() as uow:
        options = await uow.options.bulk_update_options(caller, product_id, patches)
    return ApiResponse(
        data=OptionsListResponse(
            product_id=product_id,
            options=[OptionResponse.model_validate(o) for o in options],
        ),
        message="Options updated",
    )


@router.put(
    "/{option_id}",
    response_model=ApiResponse[OptionResponse],
    responses=ERRORS,
    summary="Update product option",
)
async def update_option(
    product_id: int,
    option_id: int,
    request: OptionUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionResponse]:
    async with facade.unit_of_work() as uow:
        option = await uow.options.update_option(
            caller, product_id, option_id, request.model_dump(exclude_unset=True)
        )
    return ApiResponse(data=OptionResponse.model_validate(option), message="Option updated")


@router.delete(
    "/{option_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete product option",
    description="Refused while any variant uses the option.",
)
async def delete_option(
    product_id: int,
    option_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.options.delete_option(caller, product_id, option_id)
    return ApiResponse(message="Option deleted")


# ============================================================================
# Option Value Endpoints
# ============================================================================


@router.post(
    "/{option_id}/values",
    response_model=ApiResponse[OptionResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Add option value",
)
async def add_value(
    product_id: int,
    option_id: int,
    request: OptionValueRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionResponse]:
    async with facade.unit_of_work() as uow:
        option = await uow.options.add_value(
            caller, product_id, option_id, value_request_to_input(request)
        )
    return ApiResponse(data=OptionResponse.model_validate(option), message="Value added")


@router.post(
    "/{option_id}/values/bulk",
    response_model=ApiResponse[OptionResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Add several option values",
)
async def add_values(
    product_id: int,
    option_id: int,
    request: OptionValuesBulkAddRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionResponse]:
    values = [value_request_to_input(v) for v in request.values]
    async with facade.unit_of_work() as uow:
        option = await uow.options.add_values(caller, product_id, option_id, values)
    return ApiResponse(data=OptionResponse.model_validate(option), message="Values added")


@router.put(
    "/{option_id}/values/{value_id}",
    response_model=ApiResponse[OptionResponse],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Update option value",
)
async def update_value(
    product_id: int,
    option_id: int,
    value_id: int,
    request: OptionValueUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[OptionResponse]:
    async with facade.unit_of_work() as uow:
        option = await uow.options.update_value(
            caller, product_id, option_id, value_id, request.model_dump(exclude_unset=True)
        )
    return ApiResponse(data=OptionResponse.model_validate(option), message="Value updated")


@router.delete(
    "/{option_id}/values/{value_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete option value",
    description="Refused while any variant uses the value.",
)
async def delete_value(
    product_id: int,
    option_id: int,
    value_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.options.delete_value(caller, product_id, option_id, value_id)
    return ApiResponse(message="Value deleted")

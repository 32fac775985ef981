"""Variant API endpoints.

Nested under a product:
- GET /products/{pid}/variants/find?color=red&size=m - find by options
- GET /products/{pid}/variants/{vid} - variant details
- POST /products/{pid}/variants - create a variant
- PUT /products/{pid}/variants/bulk - bulk partial update
- PUT /products/{pid}/variants/{vid} - partial update
- PATCH /products/{pid}/variants/{vid}/stock - set/add/subtract stock
- DELETE /products/{pid}/variants/{vid} - delete a variant
"""

from typing import Any

from fastapi import APIRouter, Request, status

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.schemas import (
    ApiResponse,
    ErrorResponse,
    StockResponse,
    StockUpdateRequest,
    VariantBulkUpdateRequest,
    VariantBulkUpdateResponse,
    VariantOptionInput,
    VariantRequest,
    VariantResponse,
    VariantUpdateRequest,
)
from catalog_api.application.commands import EntityPatch, StockChange, VariantInput

router = APIRouter(prefix="/products/{product_id}/variants", tags=["Variants"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Converters
# ============================================================================


def selection_from_request(options: list[VariantOptionInput]) -> dict[str, str]:
    """Convert a list of option selections to a name -> value mapping."""
    return {item.option_name: item.value for item in options}


def variant_request_to_input(request: VariantRequest) -> VariantInput:
    """Convert a variant request to the service payload."""
    return VariantInput(
        id=request.id,
        sku=request.sku,
        price=request.price,
        stock=request.stock,
        options=selection_from_request(request.options),
        images=list(request.images),
        in_stock=request.in_stock,
        is_popular=request.is_popular,
        is_default=request.is_default,
        allow_purchase=request.allow_purchase,
    )


def variant_changes(request: VariantUpdateRequest) -> dict[str, Any]:
    """Supplied fields of a partial variant update."""
    changes = request.model_dump(exclude_unset=True, exclude={"id"})
    if request.options is not None:
        changes["options"] = selection_from_request(request.options)
    return changes


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/find",
    response_model=ApiResponse[VariantResponse],
    responses=ERRORS,
    summary="Find variant by options",
    description="Each query parameter is an option name with the wanted value.",
)
async def find_variant(
    product_id: int,
    request: Request,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[VariantResponse]:
    selection = dict(request.query_params)
    async with facade.unit_of_work() as uow:
        variant = await uow.variants.find_by_options(caller, product_id, selection)
    return ApiResponse(data=VariantResponse.model_validate(variant))


@router.get(
    "/{variant_id}",
    response_model=ApiResponse[VariantResponse],
    responses=ERRORS,
    summary="Get variant",
)
async def get_variant(
    product_id: int,
    variant_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[VariantResponse]:
    async with facade.unit_of_work() as uow:
        variant = await uow.variants.get_variant(caller, product_id, variant_id)
    return ApiResponse(data=VariantResponse.model_validate(variant))


@router.post(
    "",
    response_model=ApiResponse[VariantResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Create variant",
    description="The first variant of a product becomes the default.",
)
async def create_variant(
    product_id: int,
    request: VariantRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[VariantResponse]:
    async with facade.unit_of_work() as uow:
        variant = await uow.variants.create_variant(
            caller, product_id, variant_request_to_input(request)
        )
    return ApiResponse(data=VariantResponse.model_validate(variant), message="Variant created")


@router.put(
    "/bulk",
    response_model=ApiResponse[VariantBulkUpdateResponse],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Bulk update variants",
    description="All-or-nothing partial update of several variants.",
)
async def bulk_update_variants(
    product_id: int,
    request: VariantBulkUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[VariantBulkUpdateResponse]:
    patches = [EntityPatch(id=item.id, changes=variant_changes(item)) for item in request.variants]
    async with facade.unit_of_work() as uow:
        variants = await uow.variants.bulk_update(caller, product_id, patches)
    return ApiResponse(
        data=VariantBulkUpdateResponse(
            updated_count=len(variants),
            variants=[VariantResponse.model_validate(v) for v in variants],
        ),
        message="Variants updated",
    )


@router.put(
    "/{variant_id}",
    response_model=ApiResponse[VariantResponse],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Update variant",
)
async def update_variant(
    product_id: int,
    variant_id: int,
    request: VariantUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[VariantResponse]:
    async with facade.unit_of_work() as uow:
        variant = await uow.variants.update_variant(
            caller, product_id, variant_id, variant_changes(request)
        )
    return ApiResponse(data=VariantResponse.model_validate(variant), message="Variant updated")


@router.patch(
    "/{variant_id}/stock",
    response_model=ApiResponse[StockResponse],
    responses=ERRORS,
    summary="Update variant stock",
    description="operation is set, add or subtract; inStock follows the result.",
)
async def update_stock(
    product_id: int,
    variant_id: int,
    request: StockUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[StockResponse]:
    change = StockChange(operation=request.operation, quantity=request.stock)
    async with facade.unit_of_work() as uow:
        result = await uow.variants.update_stock(caller, product_id, variant_id, change)
    return ApiResponse(data=StockResponse.model_validate(result), message="Stock updated")


@router.delete(
    "/{variant_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete variant",
    description="The last variant of a product cannot be deleted.",
)
async def delete_variant(
    product_id: int,
    variant_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.variants.delete_variant(caller, product_id, variant_id)
    return ApiResponse(message="Variant deleted")

"""Product attribute API endpoints.

Nested under a product:
- GET /products/{pid}/attributes - attribute values with definitions
- POST /products/{pid}/attributes - set an attribute value
- PUT /products/{pid}/attributes/bulk - bulk partial update
- PUT /products/{pid}/attributes/{aid} - partial update
- DELETE /products/{pid}/attributes/{aid} - remove an attribute value
"""

from fastapi import APIRouter, status

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.schemas import (
    ApiResponse,
    ErrorResponse,
    ProductAttributeBulkRequest,
    ProductAttributeBulkResponse,
    ProductAttributeRequest,
    ProductAttributeResponse,
    ProductAttributesListResponse,
    ProductAttributeUpdateRequest,
)
from catalog_api.application.commands import EntityPatch, ProductAttributeInput

router = APIRouter(prefix="/products/{product_id}/attributes", tags=["Product Attributes"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Converters
# ============================================================================


def attribute_request_to_input(request: ProductAttributeRequest) -> ProductAttributeInput:
    """Convert a product attribute request to the service payload."""
    return ProductAttributeInput(
        id=request.id,
        attribute_definition_id=request.attribute_definition_id,
        value=request.value,
        sort_order=request.sort_order,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[ProductAttributesListResponse],
    responses=ERRORS,
    summary="List product attributes",
)
async def list_product_attributes(
    product_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductAttributesListResponse]:
    async with facade.unit_of_work() as uow:
        attributes = await uow.product_attributes.list_attributes(caller, product_id)
    items = [ProductAttributeResponse.model_validate(a) for a in attributes]
    return ApiResponse(
        data=ProductAttributesListResponse(
            product_id=product_id, attributes=items, total=len(items)
        )
    )


@router.post(
    "",
    response_model=ApiResponse[ProductAttributeResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Add product attribute",
    description="The value must be one of the definition's allowed values, if any.",
)
async def add_product_attribute(
    product_id: int,
    request: ProductAttributeRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductAttributeResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.product_attributes.add_attribute(
            caller, product_id, attribute_request_to_input(request)
        )
    return ApiResponse(
        data=ProductAttributeResponse.model_validate(attribute), message="Attribute added"
    )


@router.put(
    "/bulk",
    response_model=ApiResponse[ProductAttributeBulkResponse],
    responses=ERRORS,
    summary="Bulk update product attributes",
)
async def bulk_update_product_attributes(
    product_id: int,
    request: ProductAttributeBulkRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductAttributeBulkResponse]:
    patches = [
        EntityPatch(
            id=item.attribute_id,
            changes=item.model_dump(exclude_unset=True, exclude={"attribute_id"}),
        )
        for item in request.attributes
    ]
    async with facade.unit_of_work() as uow:
        attributes = await uow.product_attributes.bulk_update(caller, product_id, patches)
    return ApiResponse(
        data=ProductAttributeBulkResponse(
            updated_count=len(patches),
            attributes=[ProductAttributeResponse.model_validate(a) for a in attributes],
        ),
        message="Attributes updated",
    )


@router.put(
    "/{attribute_id}",
    response_model=ApiResponse[ProductAttributeResponse],
    responses=ERRORS,
    summary="Update product attribute",
)
async def update_product_attribute(
    product_id: int,
    attribute_id: int,
    request: ProductAttributeUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductAttributeResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.product_attributes.update_attribute(
            caller, product_id, attribute_id, request.model_dump(exclude_unset=True)
        )
    return ApiResponse(
        data=ProductAttributeResponse.model_validate(attribute), message="Attribute updated"
    )


@router.delete(
    "/{attribute_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete product attribute",
)
async def delete_product_attribute(
    product_id: int,
    attribute_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.product_attributes.delete_attribute(caller, product_id, attribute_id)
    return ApiResponse(message="Attribute deleted")

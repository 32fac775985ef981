"""Attribute definition API endpoints.

Provides endpoints for the attribute registry:
- GET /attributes - list definitions
- GET /attributes/{id} - definition details
- POST /attributes - create a definition (admin)
- POST /attributes/{categoryId} - create and link to a category (admin)
- PUT /attributes/{id} - partial update (admin)
- DELETE /attributes/{id} - delete (admin)
"""

from fastapi import APIRouter, status

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.schemas import (
    ApiResponse,
    AttributeDefinitionCreateRequest,
    AttributeDefinitionResponse,
    AttributeDefinitionsResponse,
    AttributeDefinitionUpdateRequest,
    ErrorResponse,
)
from catalog_api.application.commands import AttributeDefinitionInput

router = APIRouter(prefix="/attributes", tags=["Attributes"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Converters
# ============================================================================


def request_to_input(request: AttributeDefinitionCreateRequest) -> AttributeDefinitionInput:
    """Convert a create request to the service payload."""
    return AttributeDefinitionInput(
        key=request.key,
        name=request.name,
        description=request.description,
        unit=request.unit,
        allowed_values=list(request.allowed_values),
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[AttributeDefinitionsResponse],
    responses=ERRORS,
    summary="List attribute definitions",
)
async def list_attributes(caller: Caller, facade: Facade) -> ApiResponse[AttributeDefinitionsResponse]:
    async with facade.unit_of_work() as uow:
        attributes = await uow.attributes.list_attributes(caller)
        items = [AttributeDefinitionResponse.model_validate(a) for a in attributes]
    return ApiResponse(data=AttributeDefinitionsResponse(attributes=items))


@router.get(
    "/{attribute_id}",
    response_model=ApiResponse[AttributeDefinitionResponse],
    responses=ERRORS,
    summary="Get attribute definition",
)
async def get_attribute(
    attribute_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[AttributeDefinitionResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.attributes.get_attribute(caller, attribute_id)
        data = AttributeDefinitionResponse.model_validate(attribute)
    return ApiResponse(data=data)


@router.post(
    "",
    response_model=ApiResponse[AttributeDefinitionResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Create attribute definition",
    description="Keys are unique and match ^[a-z0-9_]+$. Admin only.",
)
async def create_attribute(
    request: AttributeDefinitionCreateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[AttributeDefinitionResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.attributes.create_attribute(caller, request_to_input(request))
        data = AttributeDefinitionResponse.model_validate(attribute)
    return ApiResponse(data=data, message="Attribute created")


@router.post(
    "/{category_id}",
    response_model=ApiResponse[AttributeDefinitionResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Create attribute for category",
    description="Create a definition and link it to the category in one step.",
)
async def create_attribute_for_category(
    category_id: int,
    request: AttributeDefinitionCreateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[AttributeDefinitionResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.attributes.create_for_category(
            caller, category_id, request_to_input(request)
        )
        data = AttributeDefinitionResponse.model_validate(attribute)
    return ApiResponse(data=data, message="Attribute created")


@router.put(
    "/{attribute_id}",
    response_model=ApiResponse[AttributeDefinitionResponse],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Update attribute definition",
)
async def update_attribute(
    attribute_id: int,
    request: AttributeDefinitionUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[AttributeDefinitionResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.attributes.update_attribute(
            caller, attribute_id, request.model_dump(exclude_unset=True)
        )
        data = AttributeDefinitionResponse.model_validate(attribute)
    return ApiResponse(data=data, message="Attribute updated")


@router.delete(
    "/{attribute_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete attribute definition",
)
async def delete_attribute(attribute_id: int, caller: Caller, facade: Facade) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.attributes.delete_attribute(caller, attribute_id)
    return ApiResponse(message="Attribute deleted")

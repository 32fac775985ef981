"""Category API endpoints.

Provides endpoints for the category hierarchy:
- GET /categories - visible category tree
- GET /categories/by-parent - direct children of a parent (or roots)
- GET /categories/{id} - category with its subtree
- POST /categories - create a category
- PUT /categories/{id} - partial update
- DELETE /categories/{id} - delete a leaf category
- GET /categories/{id}/attributes - effective attributes (inherited)
- POST/DELETE /categories/{id}/attributes/{attributeId} - link/unlink
"""

from fastapi import APIRouter, Query, status

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.schemas import (
    ApiResponse,
    AttributeDefinitionResponse,
    AttributeDefinitionsResponse,
    CategoriesResponse,
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
    ErrorResponse,
)
from catalog_api.application.commands import CategoryInput
from catalog_api.application.views import CategoryNode

router = APIRouter(prefix="/categories", tags=["Categories"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[CategoriesResponse],
    responses=ERRORS,
    summary="List categories",
    description="Visible categories as a tree of roots with nested children.",
)
async def list_categories(caller: Caller, facade: Facade) -> ApiResponse[CategoriesResponse]:
    async with facade.unit_of_work() as uow:
        tree = await uow.categories.list_tree(caller)
    return ApiResponse(
        data=CategoriesResponse(categories=[CategoryResponse.model_validate(n) for n in tree])
    )


@router.get(
    "/by-parent",
    response_model=ApiResponse[CategoriesResponse],
    responses=ERRORS,
    summary="List categories by parent",
    description="Direct children of parentId, or root categories when omitted.",
)
async def list_by_parent(
    caller: Caller,
    facade: Facade,
    parent_id: int | None = Query(default=None, alias="parentId", description="Parent category"),
) -> ApiResponse[CategoriesResponse]:
    async with facade.unit_of_work() as uow:
        categories = await uow.categories.list_by_parent(caller, parent_id)
    return ApiResponse(
        data=CategoriesResponse(
            categories=[
                CategoryResponse.model_validate(CategoryNode.from_model(c)) for c in categories
            ]
        )
    )


@router.get(
    "/{category_id}",
    response_model=ApiResponse[CategoryResponse],
    responses=ERRORS,
    summary="Get category",
)
async def get_category(
    category_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[CategoryResponse]:
    async with facade.unit_of_work() as uow:
        node = await uow.categories.get_category(caller, category_id)
    return ApiResponse(data=CategoryResponse.model_validate(node))


@router.post(
    "",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Create category",
    description="Admins create global categories; sellers create their own.",
)
async def create_category(
    request: CategoryCreateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[CategoryResponse]:
    data = CategoryInput(
        name=request.name,
        description=request.description,
        parent_id=request.parent_id,
    )
    async with facade.unit_of_work() as uow:
        category = await uow.categories.create_category(caller, data)
        node = CategoryNode.from_model(category)
    return ApiResponse(data=CategoryResponse.model_validate(node), message="Category created")


@router.put(
    "/{category_id}",
    response_model=ApiResponse[CategoryResponse],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Update category",
    description="Partial update. Re-parenting under a descendant is rejected.",
)
async def update_category(
    category_id: int,
    request: CategoryUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[CategoryResponse]:
    async with facade.unit_of_work() as uow:
        category = await uow.categories.update_category(
            caller, category_id, request.model_dump(exclude_unset=True)
        )
        node = CategoryNode.from_model(category)
    return ApiResponse(data=CategoryResponse.model_validate(node), message="Category updated")


@router.delete(
    "/{category_id}",
    response_model=ApiResponse[None],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Delete category",
    description="Only categories without children or products can be deleted.",
)
async def delete_category(category_id: int, caller: Caller, facade: Facade) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.categories.delete_category(caller, category_id)
    return ApiResponse(message="Category deleted")


@router.get(
    "/{category_id}/attributes",
    response_model=ApiResponse[AttributeDefinitionsResponse],
    responses=ERRORS,
    summary="List category attributes",
    description="Attributes linked to the category and all of its ancestors.",
)
async def list_category_attributes(
    category_id: int,
    caller: Caller,
    facade: Facade,
    include_inherited: bool = Query(default=True, alias="includeInherited"),
) -> ApiResponse[AttributeDefinitionsResponse]:
    async with facade.unit_of_work() as uow:
        attributes = await uow.categories.list_attributes(caller, category_id, include_inherited)
        items = [AttributeDefinitionResponse.model_validate(a) for a in attributes]
    return ApiResponse(data=AttributeDefinitionsResponse(attributes=items))


@router.post(
    "/{category_id}/attributes/{attribute_id}",
    response_model=ApiResponse[AttributeDefinitionResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Link attribute to category",
)
async def link_attribute(
    category_id: int,
    attribute_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[AttributeDefinitionResponse]:
    async with facade.unit_of_work() as uow:
        attribute = await uow.categories.link_attribute(caller, category_id, attribute_id)
        data = AttributeDefinitionResponse.model_validate(attribute)
    return ApiResponse(data=data, message="Attribute linked")


@router.delete(
    "/{category_id}/attributes/{attribute_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Unlink attribute from category",
)
async def unlink_attribute(
    category_id: int,
    attribute_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.categories.unlink_attribute(caller, category_id, attribute_id)
    return ApiResponse(message="Attribute unlinked")

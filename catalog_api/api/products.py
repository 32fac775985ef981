"""Product API endpoints.

Provides endpoints for products and storefront queries:
- GET /products - filtered, sorted and paginated listing
- GET /products/search - text search with relevance
- GET /products/filters - facet aggregates for the filter sidebar
- GET /products/{id} - product with all owned collections
- GET /products/{id}/related - related products scored in the store
- POST /products - create a product with its whole graph
- PUT /products/{id} - partial update with collection reconciliation
- DELETE /products/{id} - delete a product and everything it owns
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from fastapi import APIRouter, Query, Request, status
from pydantic.alias_generators import to_snake
from starlette.datastructures import QueryParams

from catalog_api.api.deps import Caller, Facade
from catalog_api.api.options import option_request_to_input
from catalog_api.api.package_options import package_request_to_input
from catalog_api.api.product_attributes import attribute_request_to_input
from catalog_api.api.schemas import (
    ApiResponse,
    ErrorResponse,
    PaginationResponse,
    ProductCreateRequest,
    ProductDetailResponse,
    ProductFiltersResponse,
    ProductResponse,
    ProductsResponse,
    ProductUpdateRequest,
    RelatedProductResponse,
    RelatedProductsMeta,
    RelatedProductsResponse,
    SearchResponse,
    SearchResultResponse,
)
from catalog_api.api.variants import variant_request_to_input
from catalog_api.application.commands import ProductInput
from catalog_api.catalog.queries import PaginationParams, ProductFilter
from catalog_api.domain.exceptions import ValidationError
from catalog_api.domain.validators import normalize_option_name, normalize_option_value
from catalog_api.infrastructure.config import settings

router = APIRouter(prefix="/products", tags=["Products"])

ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}

# Listing parameters with a fixed meaning; anything else is an option facet
RESERVED_PARAMS = {
    "categoryId",
    "brand",
    "ids",
    "minPrice",
    "maxPrice",
    "inStock",
    "isPopular",
    "q",
    "sortBy",
    "sortOrder",
    "page",
    "limit",
}


# ============================================================================
# Query Parameter Parsing
# ============================================================================


def _split(params: QueryParams, name: str) -> list[str]:
    """Values of a repeatable, comma-separated parameter."""
    return [
        part.strip()
        for raw in params.getlist(name)
        for part in raw.split(",")
        if part.strip()
    ]


def _int_list(params: QueryParams, name: str) -> list[int]:
    try:
        return [int(value) for value in _split(params, name)]
    except ValueError as exc:
        raise ValidationError(f"{name} must be a list of integers", field=name) from exc


def _int(params: QueryParams, name: str, default: int) -> int:
    raw = params.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer", field=name) from exc


def _decimal(params: QueryParams, name: str) -> Decimal | None:
    raw = params.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise ValidationError(f"{name} must be a number", field=name) from exc
    if not value.is_finite():
        raise ValidationError(f"{name} must be a number", field=name)
    return value


def _bool(params: QueryParams, name: str) -> bool | None:
    raw = params.get(name)
    if raw is None or raw == "":
        return None
    lowered = raw.lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise ValidationError(f"{name} must be true or false", field=name)


def parse_product_filter(params: QueryParams) -> ProductFilter:
    """Build listing filters from query parameters.

    Unknown parameters become option facets (``color=red``).

    Raises:
        ValidationError: If a typed parameter cannot be parsed.
    """
    option_facets = {
        normalize_option_name(key): normalize_option_value(value)
        for key, value in params.items()
        if key not in RESERVED_PARAMS and value.strip()
    }
    return ProductFilter(
        category_ids=_int_list(params, "categoryId"),
        brands=_split(params, "brand"),
        product_ids=_int_list(params, "ids"),
        min_price=_decimal(params, "minPrice"),
        max_price=_decimal(params, "maxPrice"),
        in_stock=_bool(params, "inStock"),
        is_popular=_bool(params, "isPopular"),
        option_facets=option_facets,
        query=(params.get("q") or "").strip() or None,
    )


def parse_pagination(params: QueryParams) -> PaginationParams:
    """Build paging and sorting from query parameters.

    ``sortBy`` accepts camelCase or snake_case keys.
    """
    sort_order = (params.get("sortOrder") or "desc").lower()
    return PaginationParams(
        page=_int(params, "page", 1),
        page_size=_int(params, "limit", settings.default_page_size),
        sort_by=to_snake(params.get("sortBy") or "created_at"),
        sort_order=sort_order if sort_order in ("asc", "desc") else "desc",
    )


# ============================================================================
# Converters
# ============================================================================


def create_request_to_input(request: ProductCreateRequest) -> ProductInput:
    """Convert a product create request to the service payload."""
    return ProductInput(
        name=request.name,
        category_id=request.category_id,
        brand=request.brand,
        base_sku=request.base_sku,
        short_description=request.short_description,
        long_description=request.long_description,
        tags=list(request.tags),
        seller_id=request.seller_id,
        options=[option_request_to_input(o) for o in request.options],
        variants=[variant_request_to_input(v) for v in request.variants],
        attributes=[attribute_request_to_input(a) for a in request.attributes],
        package_options=[package_request_to_input(p) for p in request.package_options],
    )


def update_request_to_changes(request: ProductUpdateRequest) -> dict[str, Any]:
    """Supplied fields of a product update; collections become service payloads."""
    changes = request.model_dump(
        exclude_unset=True,
        exclude={"options", "variants", "attributes", "package_options"},
    )
    if request.options is not None:
        changes["options"] = [option_request_to_input(o) for o in request.options]
    if request.variants is not None:
        changes["variants"] = [variant_request_to_input(v) for v in request.variants]
    if request.attributes is not None:
        changes["attributes"] = [attribute_request_to_input(a) for a in request.attributes]
    if request.package_options is not None:
        changes["package_options"] = [
            package_request_to_input(p) for p in request.package_options
        ]
    return changes


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ApiResponse[ProductsResponse],
    responses=ERRORS,
    summary="List products",
    description=(
        "Filter by categoryId, brand, ids, minPrice, maxPrice, inStock, isPopular "
        "and q. Any other parameter filters on a variant option (color=red)."
    ),
)
async def list_products(
    request: Request,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductsResponse]:
    filters = parse_product_filter(request.query_params)
    pagination = parse_pagination(request.query_params)
    async with facade.unit_of_work() as uow:
        result = await uow.product_queries.list_products(caller, filters, pagination)
    return ApiResponse(
        data=ProductsResponse(
            products=[ProductResponse.model_validate(p) for p in result.items],
            pagination=PaginationResponse.from_result(result),
        )
    )


@router.get(
    "/search",
    response_model=ApiResponse[SearchResponse],
    responses=ERRORS,
    summary="Search products",
    description="Text search over name, short description and tags.",
)
async def search_products(
    request: Request,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[SearchResponse]:
    filters = parse_product_filter(request.query_params)
    pagination = parse_pagination(request.query_params)
    async with facade.unit_of_work() as uow:
        result = await uow.product_queries.search_products(
            caller, request.query_params.get("q"), filters, pagination
        )
    return ApiResponse(
        data=SearchResponse(
            query=result.query,
            results=[SearchResultResponse.model_validate(h) for h in result.page.items],
            pagination=PaginationResponse.from_result(result.page),
            search_time=result.search_time,
        )
    )


@router.get(
    "/filters",
    response_model=ApiResponse[ProductFiltersResponse],
    responses=ERRORS,
    summary="Product facets",
    description="Categories, brands, attributes, price range, variant types and stock.",
)
async def get_filters(caller: Caller, facade: Facade) -> ApiResponse[ProductFiltersResponse]:
    async with facade.unit_of_work() as uow:
        facets = await uow.product_queries.get_facets(caller)
    return ApiResponse(data=ProductFiltersResponse.model_validate(facets))


@router.get(
    "/{product_id}",
    response_model=ApiResponse[ProductDetailResponse],
    responses=ERRORS,
    summary="Get product",
)
async def get_product(
    product_id: int,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductDetailResponse]:
    async with facade.unit_of_work() as uow:
        detail = await uow.products.get_product(caller, product_id)
        data = ProductDetailResponse.model_validate(detail)
    return ApiResponse(data=data)


@router.get(
    "/{product_id}/related",
    response_model=ApiResponse[RelatedProductsResponse],
    responses=ERRORS,
    summary="Related products",
    description="Products related by category, brand, tags, price and popularity.",
)
async def get_related_products(
    product_id: int,
    caller: Caller,
    facade: Facade,
    page: int = Query(default=1, description="Page number"),
    limit: int = Query(default=10, description="Items per page"),
    strategies: str = Query(default="all", description="all or comma-separated strategies"),
) -> ApiResponse[RelatedProductsResponse]:
    async with facade.unit_of_work() as uow:
        result = await uow.product_queries.get_related(
            caller, product_id, page=page, limit=limit, strategies=strategies
        )
    return ApiResponse(
        data=RelatedProductsResponse(
            related_products=[RelatedProductResponse.model_validate(h) for h in result.page.items],
            pagination=PaginationResponse.from_result(result.page),
            meta=RelatedProductsMeta(
                strategies_used=result.strategies_used,
                avg_score=result.avg_score,
                total_strategies=result.total_strategies,
            ),
        )
    )


@router.post(
    "",
    response_model=ApiResponse[ProductDetailResponse],
    status_code=status.HTTP_201_CREATED,
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Create product",
    description="Creates the product with options, variants, attributes and packages.",
)
async def create_product(
    request: ProductCreateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductDetailResponse]:
    async with facade.unit_of_work() as uow:
        detail = await uow.products.create_product(caller, create_request_to_input(request))
        data = ProductDetailResponse.model_validate(detail)
    return ApiResponse(data=data, message="Product created")


@router.put(
    "/{product_id}",
    response_model=ApiResponse[ProductDetailResponse],
    responses={**ERRORS, 409: {"model": ErrorResponse}},
    summary="Update product",
    description="Absent fields are unchanged; supplied collections replace the current ones.",
)
async def update_product(
    product_id: int,
    request: ProductUpdateRequest,
    caller: Caller,
    facade: Facade,
) -> ApiResponse[ProductDetailResponse]:
    async with facade.unit_of_work() as uow:
        detail = await uow.products.update_product(
            caller, product_id, update_request_to_changes(request)
        )
        data = ProductDetailResponse.model_validate(detail)
    return ApiResponse(data=data, message="Product updated")


@router.delete(
    "/{product_id}",
    response_model=ApiResponse[None],
    responses=ERRORS,
    summary="Delete product",
)
async def delete_product(product_id: int, caller: Caller, facade: Facade) -> ApiResponse[None]:
    async with facade.unit_of_work() as uow:
        await uow.products.delete_product(caller, product_id)
    return ApiResponse(message="Product deleted")

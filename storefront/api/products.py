"""Product catalog API endpoints.

Provides endpoints for the home, category and product screens:
- GET /products - newest first, filtered by category or name, paginated
- GET /products/featured - the home screen carousel
- GET /products/{id} - product details
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from storefront.api.converters import product_page_to_response, product_to_schema
from storefront.api.dependencies import get_catalog_service
from storefront.api.errors import raise_error
from storefront.api.schemas import ErrorResponse, ProductListResponse, ProductSchema
from storefront.application.catalog_service import (
    DEFAULT_FEATURED_LIMIT,
    MAX_PAGE_SIZE,
    CatalogService,
)
from storefront.domain.value_objects import ProductCategory

router = APIRouter(prefix="/products", tags=["Products"])


@router.get(
    "",
    response_model=ProductListResponse,
    responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="List products",
)
async def list_products(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    category: ProductCategory | None = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ProductListResponse:
    """List products, newest first.

    search matches product names case-insensitively.
    """
    result = await service.list_products(category, search, limit, offset)
    if not result.success:
        raise_error(result.error_code, result.error, default_code="LIST_FAILED")
    return product_page_to_response(result)


@router.get(
    "/featured",
    response_model=ProductListResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Featured products",
)
async def featured_products(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_FEATURED_LIMIT,
) -> ProductListResponse:
    result = await service.featured_products(limit)
    if not result.success:
        raise_error(result.error_code, result.error, default_code="LIST_FAILED")
    return product_page_to_response(result)


@router.get(
    "/{product_id}",
    response_model=ProductSchema,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def get_product(
    product_id: str,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductSchema:
    result = await service.get_product(product_id)
    if not result.success or result.product is None:
        raise_error(result.error_code, result.error, default_code="PRODUCT_NOT_FOUND")
    return product_to_schema(result.product)

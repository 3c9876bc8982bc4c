"""Cart API endpoints.

Provides endpoints for the customer's cart:
- GET /cart - cart contents and subtotal
- POST /cart/items - add a product
- PATCH /cart/items/{product_id} - set a line's quantity
- DELETE /cart/items/{product_id} - remove a line
- DELETE /cart - empty the cart
- PUT /cart/address - save the shipping address
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.api.converters import cart_to_response
from storefront.api.dependencies import get_cart_service, get_catalog_service
from storefront.api.errors import field_details, raise_error
from storefront.api.schemas import (
    AddressSchema,
    CartItemAddRequest,
    CartItemUpdateRequest,
    CartResponse,
    ErrorResponse,
)
from storefront.application.cart_service import CartService
from storefront.application.catalog_service import CatalogService
from storefront.domain.exceptions import CurrencyMismatchError, OutOfStockError, ValidationError
from storefront.domain.value_objects import Address

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartResponse, summary="Get cart")
async def get_cart(
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Get the cart for the current user or device."""
    return cart_to_response(await service.get_cart())


@router.post(
    "/items",
    response_model=CartResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Add item to cart",
)
async def add_item(
    request: CartItemAddRequest,
    service: Annotated[CartService, Depends(get_cart_service)],
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
) -> CartResponse:
    """Add units of a catalog product.

    Name, price and image are taken from the catalog. Adding a product
    already in the cart increases that line's quantity, up to the units in
    stock. Quantities below 1 leave the cart unchanged.
    """
    found = await catalog.get_product(request.product_id)
    if not found.success or found.product is None:
        raise_error(found.error_code, found.error, default_code="PRODUCT_NOT_FOUND")
    product = found.product

    try:
        cart = await service.add_item(
            product.to_ref(), request.quantity, available=product.stock_quantity
        )
    except OutOfStockError as e:
        raise_error(
            "OUT_OF_STOCK", e.message, details=[{"field": "quantity", "message": e.message}]
        )
    except CurrencyMismatchError as e:
        raise_error(
            "CURRENCY_MISMATCH",
            "This product is priced in a different currency than your cart",
            details=[{"field": "product_id", "message": e.message}],
        )
    return cart_to_response(cart)


@router.patch(
    "/items/{product_id}",
    response_model=CartResponse,
    responses={409: {"model": ErrorResponse}},
    summary="Update quantity",
)
async def update_item(
    product_id: str,
    request: CartItemUpdateRequest,
    service: Annotated[CartService, Depends(get_cart_service)],
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
) -> CartResponse:
    """Set a line's quantity. Zero or less removes the line.

    The quantity is capped by the units in stock while the product is
    still listed.
    """
    found = await catalog.get_product(product_id)
    available = found.product.stock_quantity if found.product is not None else None
    try:
        cart = await service.update_quantity(product_id, request.quantity, available)
    except OutOfStockError as e:
        raise_error(
            "OUT_OF_STOCK", e.message, details=[{"field": "quantity", "message": e.message}]
        )
    return cart_to_response(cart)


@router.delete("/items/{product_id}", response_model=CartResponse, summary="Remove item")
async def remove_item(
    product_id: str,
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Remove a product's line."""
    return cart_to_response(await service.remove_item(product_id))


@router.delete("", response_model=CartResponse, summary="Clear cart")
async def clear_cart(
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Remove every line. The saved address is kept."""
    return cart_to_response(await service.clear_cart())


@router.put(
    "/address",
    response_model=CartResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Save shipping address",
)
async def save_address(
    request: AddressSchema,
    service: Annotated[CartService, Depends(get_cart_service)],
) -> CartResponse:
    """Validate and save the shipping address on the cart."""
    try:
        address = Address.from_dict(request.model_dump())
    except ValidationError as e:
        raise_error(
            "VALIDATION_ERROR",
            "Please correct the highlighted fields",
            details=field_details(e.field_errors),
        )
    return cart_to_response(await service.save_shipping_address(address))

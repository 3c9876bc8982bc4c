"""Order API endpoints.

Provides endpoints for the order history and tracking screens:
- GET /orders - the user's orders, most recent first
- GET /orders/{id} - order details and status
- GET /orders/{id}/tracking - carrier tracking
- POST /orders/{id}/label - generate the shipping label
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.api.converters import (
    order_to_response,
    order_to_summary,
    presentation_schema,
    tracking_to_schema,
)
from storefront.api.dependencies import get_current_user, get_order_query_service
from storefront.api.errors import raise_error
from storefront.api.schemas import (
    ErrorResponse,
    LabelResponse,
    OrderResponse,
    OrdersListResponse,
    TrackingResponse,
)
from storefront.application.order_service import OrderQueryService
from storefront.domain.value_objects import User

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get(
    "",
    response_model=OrdersListResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="List orders",
)
async def list_orders(
    user: Annotated[User | None, Depends(get_current_user)],
    service: Annotated[OrderQueryService, Depends(get_order_query_service)],
) -> OrdersListResponse:
    """List the signed-in user's orders."""
    result = await service.list_orders(user)
    if not result.success or result.orders is None:
        raise_error(result.error_code, result.error, default_code="LIST_FAILED")

    return OrdersListResponse(
        orders=[order_to_summary(order) for order in result.orders],
        total=len(result.orders),
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Get order details",
)
async def get_order(
    order_id: str,
    user: Annotated[User | None, Depends(get_current_user)],
    service: Annotated[OrderQueryService, Depends(get_order_query_service)],
) -> OrderResponse:
    """Get one order with its status presentation."""
    result = await service.get_order(user, order_id)
    if not result.success or result.order is None:
        raise_error(result.error_code, result.error, default_code="ORDER_NOT_FOUND")
    return order_to_response(result.order)


@router.get(
    "/{order_id}/tracking",
    response_model=TrackingResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Track shipment",
)
async def track_order(
    order_id: str,
    user: Annotated[User | None, Depends(get_current_user)],
    service: Annotated[OrderQueryService, Depends(get_order_query_service)],
) -> TrackingResponse:
    """Poll the carrier for the order's shipment.

    Orders that have not shipped yet return no tracking data.
    """
    result = await service.track(user, order_id)
    if not result.success or result.order is None:
        raise_error(result.error_code, result.error, default_code="TRACKING_FAILED")

    order = result.order
    return TrackingResponse(
        order_id=order.id,
        status=order.status.value,
        status_presentation=presentation_schema(order.status),
        shipment_id=order.shipment_id,
        tracking=tracking_to_schema(result.tracking) if result.tracking else None,
    )


@router.post(
    "/{order_id}/label",
    response_model=LabelResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Generate shipping label",
)
async def generate_label(
    order_id: str,
    user: Annotated[User | None, Depends(get_current_user)],
    service: Annotated[OrderQueryService, Depends(get_order_query_service)],
) -> LabelResponse:
    """Generate the shipping label for the order's shipment."""
    result = await service.shipping_label(user, order_id)
    if not result.success or result.order is None or result.label_url is None:
        raise_error(result.error_code, result.error, default_code="LABEL_FAILED")

    return LabelResponse(
        order_id=result.order.id,
        shipment_id=result.order.shipment_id or "",
        label_url=result.label_url,
    )

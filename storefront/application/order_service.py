"""Order read-side service.

Serves the order history and tracking screens. Nothing here changes order
status; that belongs to the checkout orchestrator.
"""

from dataclasses import dataclass

import structlog

from storefront.application.ports import OrderRepository, ShipmentAdapter
from storefront.domain.entities import Order
from storefront.domain.exceptions import (
    AuthRequiredError,
    OrderNotFoundError,
    PersistenceError,
    ShipmentError,
)
from storefront.domain.value_objects import TrackingSnapshot, User

logger = structlog.get_logger()


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class ListOrdersResult:
    """Result of listing a user's orders."""

    orders: list[Order] | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


@dataclass
class GetOrderResult:
    """Result of getting one order."""

    order: Order | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


@dataclass
class TrackingResult:
    """Result of polling the carrier for an order's shipment."""

    order: Order | None = None
    tracking: TrackingSnapshot | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


@dataclass
class LabelResult:
    """Result of generating a shipping label."""

    order: Order | None = None
    label_url: str | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


# ============================================================================
# Order Query Service
# ============================================================================


class OrderQueryService:
    """Application service for reading orders and their shipments."""

    def __init__(
        self,
        orders: OrderRepository,
        shipments: ShipmentAdapter,
        request_id: str | None = None,
    ) -> None:
        self.orders = orders
        self.shipments = shipments
        self.request_id = request_id

    async def list_orders(self, user: User | None) -> ListOrdersResult:
        """List the user's orders, most recent first."""
        if user is None:
            return ListOrdersResult(
                success=False,
                error=AuthRequiredError("view orders").message,
                error_code="AUTH_REQUIRED",
            )
        try:
            orders = await self.orders.get_by_user(user.id)
        except PersistenceError as e:
            logger.error(
                "Failed to list orders",
                user_id=user.id,
                error=e.message,
                request_id=self.request_id,
            )
            return ListOrdersResult(success=False, error=e.message, error_code="PERSISTENCE_ERROR")
        return ListOrdersResult(orders=orders)

    async def get_order(self, user: User | None, order_id: str) -> GetOrderResult:
        """Get one of the user's orders.

        Orders owned by someone else are reported as not found.
        """
        if user is None:
            return GetOrderResult(
                success=False,
                error=AuthRequiredError("view orders").message,
                error_code="AUTH_REQUIRED",
            )
        try:
            order = await self._owned_order(user, order_id)
        except OrderNotFoundError as e:
            return GetOrderResult(success=False, error=e.message, error_code="ORDER_NOT_FOUND")
        except PersistenceError as e:
            logger.error(
                "Failed to get order",
                order_id=order_id,
                error=e.message,
                request_id=self.request_id,
            )
            return GetOrderResult(success=False, error=e.message, error_code="PERSISTENCE_ERROR")
        return GetOrderResult(order=order)

    async def latest_resumable_order(self, user: User) -> Order | None:
        """Most recent order still pending payment, if any.

        A stale pending order is not an error; checkout can pick it up again.
        """
        orders = await self.orders.get_by_user(user.id)
        return next((o for o in orders if o.status.is_resumable()), None)

    async def track(self, user: User | None, order_id: str) -> TrackingResult:
        """Poll the carrier for an order's shipment.

        An order without a shipment succeeds with no tracking data.
        """
        found = await self.get_order(user, order_id)
        if not found.success or found.order is None:
            return TrackingResult(
                success=False, error=found.error, error_code=found.error_code
            )
        order = found.order
        if not order.shipment_id:
            return TrackingResult(order=order)

        try:
            tracking = await self.shipments.track_shipment(order.shipment_id)
        except ShipmentError as e:
            logger.warning(
                "Tracking fetch failed",
                order_id=order.id,
                shipment_id=order.shipment_id,
                error=e.message,
                request_id=self.request_id,
            )
            return TrackingResult(
                order=order,
                success=False,
                error="Could not fetch tracking information. Please try again later.",
                error_code="SHIPMENT_ERROR",
            )
        return TrackingResult(order=order, tracking=tracking)

    async def shipping_label(self, user: User | None, order_id: str) -> LabelResult:
        """Generate the shipping label for an order's shipment."""
        found = await self.get_order(user, order_id)
        if not found.success or found.order is None:
            return LabelResult(success=False, error=found.error, error_code=found.error_code)
        order = found.order
        if not order.shipment_id:
            return LabelResult(
                order=order,
                success=False,
                error="Shipping label is not available for this order.",
                error_code="SHIPMENT_NOT_CREATED",
            )

        try:
            label_url = await self.shipments.generate_label(order.shipment_id)
        except ShipmentError as e:
            logger.warning(
                "Label generation failed",
                order_id=order.id,
                shipment_id=order.shipment_id,
                error=e.message,
                request_id=self.request_id,
            )
            return LabelResult(
                order=order,
                success=False,
                error="Could not generate shipping label. Please try again later.",
                error_code="SHIPMENT_ERROR",
            )

        logger.info(
            "Shipping label generated",
            order_id=order.id,
            shipment_id=order.shipment_id,
            request_id=self.request_id,
        )
        return LabelResult(order=order, label_url=label_url)

    async def _owned_order(self, user: User, order_id: str) -> Order:
        order = await self.orders.get(order_id)
        if order is None or order.user_id != user.id:
            raise OrderNotFoundError(order_id)
        return order

"""Domain events for the order aggregate.

Recorded by the Order aggregate and collected by the checkout
orchestrator, which writes them to the structured log.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from storefront.domain.base import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """A priced order was created from the cart."""

    event_type: ClassVar[str] = "order.created"

    order_id: str = ""
    user_id: str = ""
    total_minor: int = 0
    currency: str = ""
    item_count: int = 0

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "user_id": self.user_id,
            "total_minor": self.total_minor,
            "currency": self.currency,
            "item_count": self.item_count,
        }


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Order or payment status moved."""

    event_type: ClassVar[str] = "order.status_changed"

    order_id: str = ""
    from_status: str = ""
    to_status: str = ""
    payment_status: str | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "payment_status": self.payment_status,
        }


@dataclass(frozen=True)
class ShipmentAttached(DomainEvent):
    """A carrier shipment was recorded on the order."""

    event_type: ClassVar[str] = "order.shipment_attached"

    order_id: str = ""
    shipment_id: str = ""

    def _payload(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "shipment_id": self.shipment_id}


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    OrderCreated.event_type: OrderCreated,
    OrderStatusChanged.event_type: OrderStatusChanged,
    ShipmentAttached.event_type: ShipmentAttached,
}

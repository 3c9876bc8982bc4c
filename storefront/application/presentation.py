"""Display attributes for order statuses.

Kept apart from the state machine so that icons and colors can change
without touching order lifecycle rules.
"""

from dataclasses import dataclass

from storefront.domain.state_machines import OrderStatus


@dataclass(frozen=True)
class StatusPresentation:
    """Icon name and hex color shown for an order status."""

    icon: str
    color: str


AMBER = "#F59E0B"
BLUE = "#3B82F6"
PURPLE = "#8B5CF6"
GREEN = "#10B981"
RED = "#EF4444"
GRAY = "#6B7280"

UNKNOWN_PRESENTATION = StatusPresentation(icon="help", color=GRAY)

_PRESENTATIONS: dict[OrderStatus, StatusPresentation] = {
    OrderStatus.PENDING: StatusPresentation(icon="pending", color=AMBER),
    OrderStatus.PROCESSING: StatusPresentation(icon="local-shipping", color=BLUE),
    OrderStatus.SHIPPED: StatusPresentation(icon="local-shipping", color=PURPLE),
    OrderStatus.DELIVERED: StatusPresentation(icon="check-circle", color=GREEN),
    OrderStatus.CANCELLED: StatusPresentation(icon="cancel", color=RED),
    OrderStatus.RETURNED: StatusPresentation(icon="assignment-return", color=GRAY),
    OrderStatus.FAILED: StatusPresentation(icon="error", color=RED),
}


def status_presentation(status: OrderStatus | str | None) -> StatusPresentation:
    """Map an order status to its icon and color.

    Unknown values, including raw strings that are not statuses, get a
    neutral help icon.
    """
    if status is None:
        return UNKNOWN_PRESENTATION
    try:
        key = OrderStatus(status)
    except ValueError:
        return UNKNOWN_PRESENTATION
    return _PRESENTATIONS.get(key, UNKNOWN_PRESENTATION)

"""State machines for domain entities.

Deterministic state machines that define valid state transitions for
orders, payments and checkout sessions. Transition tables live outside
the enums to avoid Enum member restrictions.
"""

from enum import Enum

from storefront.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Order State Machine
# ============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle states.

    State diagram:
        PENDING ──────────┬──────────────► FAILED
          │               │
          │ paid / COD    └──────────────► CANCELLED
          ▼                                   ▲
        PROCESSING ───────────────────────────┘
          │
          │ ship
          ▼
        SHIPPED
          │
          │ deliver
          ▼
        DELIVERED ───────────────────────► RETURNED
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    FAILED = "failed"

    def can_transition_to(self, target: "OrderStatus") -> bool:
        """Check if transition to target state is valid."""
        return target in _ORDER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["OrderStatus"]:
        """Get list of valid target states."""
        return list(_ORDER_TRANSITIONS.get(self, set()))

    def is_terminal(self) -> bool:
        """Check if no further transitions are possible."""
        return len(_ORDER_TRANSITIONS.get(self, set())) == 0

    def is_resumable(self) -> bool:
        """Check if checkout can pick this order up again.

        A pending order was created but never reached a payment outcome.
        """
        return self == OrderStatus.PENDING


_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal state
    OrderStatus.RETURNED: set(),  # Terminal state
    OrderStatus.FAILED: set(),  # Terminal state
}


# ============================================================================
# Payment State Machine
# ============================================================================


class PaymentStatus(str, Enum):
    """Payment record lifecycle states.

    State diagram:
        PENDING ──────► FAILED
          │
          │ verified
          ▼
        COMPLETED ────► REFUNDED
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    def can_transition_to(self, target: "PaymentStatus") -> bool:
        """Check if transition to target state is valid."""
        return target in _PAYMENT_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["PaymentStatus"]:
        """Get list of valid target states."""
        return list(_PAYMENT_TRANSITIONS.get(self, set()))

    def is_active(self) -> bool:
        """Check if the payment is still awaiting an outcome."""
        return self == PaymentStatus.PENDING


_PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),  # Terminal state
    PaymentStatus.REFUNDED: set(),  # Terminal state
}


# ============================================================================
# Checkout Session State Machine
# ============================================================================


class CheckoutStep(str, Enum):
    """Checkout session steps.

    State diagram:
        ADDRESS ◄──────────► PAYMENT
                               │
                               │ order created
                               ▼
                         ORDER_CREATED ──────────────────────┐
                               │    ▲                        │ COD
                               │    │ abandon                │
                               ▼    │                        │
                     AWAITING_PAYMENT_RESULT                 │
                               │                             │
                               │ gateway callback            │
                               ▼                             ▼
                           VERIFYING ─────────────────► COMPLETED
                               │
                               └──────────────────────► FAILED
    """

    ADDRESS = "address"
    PAYMENT = "payment"
    ORDER_CREATED = "order_created"
    AWAITING_PAYMENT_RESULT = "awaiting_payment_result"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: "CheckoutStep") -> bool:
        """Check if transition to target step is valid."""
        return target in _CHECKOUT_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CheckoutStep"]:
        """Get list of valid target steps."""
        return list(_CHECKOUT_TRANSITIONS.get(self, set()))

    def is_terminal(self) -> bool:
        """Check if the session has reached completed or failed."""
        return len(_CHECKOUT_TRANSITIONS.get(self, set())) == 0

    def is_in_flight(self) -> bool:
        """Check if a payment outcome is outstanding.

        The pay action must stay disabled in these steps.
        """
        return self in {CheckoutStep.AWAITING_PAYMENT_RESULT, CheckoutStep.VERIFYING}


_CHECKOUT_TRANSITIONS: dict[CheckoutStep, set[CheckoutStep]] = {
    CheckoutStep.ADDRESS: {CheckoutStep.PAYMENT},
    CheckoutStep.PAYMENT: {CheckoutStep.ADDRESS, CheckoutStep.ORDER_CREATED},
    CheckoutStep.ORDER_CREATED: {
        CheckoutStep.AWAITING_PAYMENT_RESULT,
        CheckoutStep.COMPLETED,  # COD skips the gateway
    },
    CheckoutStep.AWAITING_PAYMENT_RESULT: {
        CheckoutStep.VERIFYING,
        CheckoutStep.ORDER_CREATED,  # gateway UI dismissed, retry with a new payment
    },
    CheckoutStep.VERIFYING: {CheckoutStep.COMPLETED, CheckoutStep.FAILED},
    CheckoutStep.COMPLETED: set(),  # Terminal state
    CheckoutStep.FAILED: set(),  # Terminal state
}


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_order_transition(
    order_id: str,
    current_status: OrderStatus,
    target_status: OrderStatus,
) -> None:
    """Validate and raise if order state transition is invalid.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Order",
            entity_id=order_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )


def validate_payment_transition(
    payment_id: str,
    current_status: PaymentStatus,
    target_status: PaymentStatus,
) -> None:
    """Validate and raise if payment state transition is invalid.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="Payment",
            entity_id=payment_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )


def validate_checkout_transition(
    session_id: str,
    current_step: CheckoutStep,
    target_step: CheckoutStep,
) -> None:
    """Validate and raise if checkout step transition is invalid.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_step.can_transition_to(target_step):
        raise InvalidStateTransitionError(
            entity_type="Checkout",
            entity_id=session_id,
            current_state=current_step.value,
            target_state=target_step.value,
            allowed_transitions=[s.value for s in current_step.allowed_transitions()],
        )

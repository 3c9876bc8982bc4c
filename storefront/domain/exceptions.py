"""Domain exceptions.

All domain-level errors that represent business rule violations or
failures of the collaborators the checkout flow depends on. The
application layer catches these and translates them into results.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "Order", "Payment").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = sorted(allowed_transitions or [])
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Input Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised when user input is malformed.

    Carries field-level messages so the form can show them inline.
    """

    def __init__(self, field_errors: dict[str, str], message: str | None = None) -> None:
        """Initialize validation error.

        Args:
            field_errors: Mapping of field name to error message.
            message: Optional summary message.
        """
        super().__init__(
            message or "Invalid input: " + ", ".join(sorted(field_errors)),
            details={"field_errors": dict(field_errors)},
        )
        self.field_errors = dict(field_errors)


class AuthRequiredError(DomainError):
    """Raised when an order or payment operation runs without a signed-in user."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Sign in required to {operation}",
            details={"operation": operation},
        )


# ============================================================================
# Cart Errors
# ============================================================================


class CartError(DomainError):
    """Base class for cart-related errors."""

    pass


class CartEmptyError(CartError):
    """Raised when trying to check out an empty cart."""

    def __init__(self) -> None:
        super().__init__("Cannot check out an empty cart")


class InvalidQuantityError(CartError):
    """Raised when a cart line would hold a non-positive quantity."""

    def __init__(self, quantity: int, reason: str = "Quantity must be positive") -> None:
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


class AddressRequiredError(CartError):
    """Raised when the payment step is reached without a shipping address."""

    def __init__(self) -> None:
        super().__init__("Please enter your shipping address first")


class OutOfStockError(CartError):
    """Raised when a cart would hold more units than the catalog has."""

    def __init__(self, product_id: str, available: int) -> None:
        message = (
            f"Sorry, only {available} items are available"
            if available > 0
            else "This product is out of stock"
        )
        super().__init__(message, details={"product_id": product_id, "available": available})


# ============================================================================
# Catalog Errors
# ============================================================================


class ProductNotFoundError(DomainError):
    """Raised when a product ID is not in the catalog."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: {product_id}", details={"product_id": product_id})


# ============================================================================
# Checkout Errors
# ============================================================================


class CheckoutInProgressError(DomainError):
    """Raised when a checkout step is submitted while another is in flight."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Checkout {session_id} is already processing a request",
            details={"session_id": session_id},
        )


class OrderNotFoundError(DomainError):
    """Raised when an order does not exist or belongs to another user."""

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}", details={"order_id": order_id})


# ============================================================================
# Collaborator Errors
# ============================================================================


class PersistenceError(DomainError):
    """Raised when the order or payment store cannot complete a read or write."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Persistence failure during {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )


class GatewayError(DomainError):
    """Raised when the payment gateway cannot be reached or rejects the call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class VerificationMismatchError(DomainError):
    """A payment callback that failed verification.

    A logical outcome rather than a fault: the checkout flow returns it
    instead of raising, and fails the order with its reason.
    """

    def __init__(self, gateway_order_id: str, gateway_payment_id: str, reason: str) -> None:
        super().__init__(
            "Payment verification failed",
            details={
                "gateway_order_id": gateway_order_id,
                "gateway_payment_id": gateway_payment_id,
                "reason": reason,
            },
        )
        self.reason = reason


class ShipmentError(DomainError):
    """Raised when the shipping aggregator rejects or cannot take a call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class OtpChannelError(DomainError):
    """Raised when the OTP provider cannot be reached."""

    pass


# ============================================================================
# Money Errors
# ============================================================================


class MoneyError(DomainError):
    """Base class for money-related errors."""

    pass


class CurrencyMismatchError(MoneyError):
    """Raised when attempting to combine money with different currencies."""

    def __init__(self, currency1: str, currency2: str) -> None:
        super().__init__(
            f"Cannot combine money with different currencies: {currency1} and {currency2}",
            details={"currency1": currency1, "currency2": currency2},
        )


class NegativeMoneyError(MoneyError):
    """Raised when attempting to create money with negative amount."""

    def __init__(self, amount: int) -> None:
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            details={"amount": amount},
        )

"""Domain layer - Entities, value objects, state machines, domain events.

This module exports the core domain building blocks:

- **Entities**: Cart, Order, PaymentDetails
- **Value Objects**: Money, Address, OrderTotals, Product, TrackingSnapshot
- **State Machines**: OrderStatus, PaymentStatus, CheckoutStep
- **Pricing**: PricingPolicy
- **Exceptions**: Domain-specific errors and invariant violations

Example usage:
    from storefront.domain import Cart, Money, PricingPolicy, ProductRef

    cart = Cart()
    cart.add_item(ProductRef("p1", "Kurta", Money.from_decimal("200")), quantity=2)

    totals = PricingPolicy().calculate(cart.subtotal)
    print(totals.total)  # ₹522.00 INR
"""

# Base classes
from storefront.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject

# Entities
from storefront.domain.entities import (
    Cart,
    CartLine,
    Order,
    OrderDraft,
    OrderUpdate,
    PaymentDetails,
)

# Domain Events
from storefront.domain.events import (
    EVENT_REGISTRY,
    OrderCreated,
    OrderStatusChanged,
    ShipmentAttached,
)

# Exceptions
from storefront.domain.exceptions import (
    AddressRequiredError,
    AuthRequiredError,
    CartEmptyError,
    CartError,
    CheckoutInProgressError,
    CurrencyMismatchError,
    DomainError,
    GatewayError,
    InvalidQuantityError,
    InvalidStateTransitionError,
    MoneyError,
    NegativeMoneyError,
    OrderNotFoundError,
    OtpChannelError,
    OutOfStockError,
    PersistenceError,
    ProductNotFoundError,
    ShipmentError,
    ValidationError,
    VerificationMismatchError,
)

# Pricing
from storefront.domain.pricing import PricingPolicy

# State Machines
from storefront.domain.state_machines import (
    CheckoutStep,
    OrderStatus,
    PaymentStatus,
    validate_checkout_transition,
    validate_order_transition,
    validate_payment_transition,
)

# Value Objects
from storefront.domain.value_objects import (
    DEFAULT_CURRENCY,
    Address,
    Money,
    OrderTotals,
    PaymentMethod,
    Product,
    ProductCategory,
    ProductRef,
    TrackingActivity,
    TrackingSnapshot,
    User,
    validate_address_fields,
)

__all__ = [
    # Base
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Entities
    "Cart",
    "CartLine",
    "Order",
    "OrderDraft",
    "OrderUpdate",
    "PaymentDetails",
    # Events
    "EVENT_REGISTRY",
    "OrderCreated",
    "OrderStatusChanged",
    "ShipmentAttached",
    # Exceptions
    "AddressRequiredError",
    "AuthRequiredError",
    "CartEmptyError",
    "CartError",
    "CheckoutInProgressError",
    "CurrencyMismatchError",
    "DomainError",
    "GatewayError",
    "InvalidQuantityError",
    "InvalidStateTransitionError",
    "MoneyError",
    "NegativeMoneyError",
    "OrderNotFoundError",
    "OtpChannelError",
    "OutOfStockError",
    "PersistenceError",
    "ProductNotFoundError",
    "ShipmentError",
    "ValidationError",
    "VerificationMismatchError",
    # Pricing
    "PricingPolicy",
    # State Machines
    "CheckoutStep",
    "OrderStatus",
    "PaymentStatus",
    "validate_checkout_transition",
    "validate_order_transition",
    "validate_payment_transition",
    # Value Objects
    "DEFAULT_CURRENCY",
    "Address",
    "Money",
    "OrderTotals",
    "PaymentMethod",
    "Product",
    "ProductCategory",
    "ProductRef",
    "TrackingActivity",
    "TrackingSnapshot",
    "User",
    "validate_address_fields",
]

"""Domain entities for the storefront.

Entities are domain objects with identity that persists across state changes.
This module contains the shopping cart, the Order aggregate and the payment
record attached to an order.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from storefront.domain.base import AggregateRoot, Entity, utcnow
from storefront.domain.events import OrderCreated, OrderStatusChanged, ShipmentAttached
from storefront.domain.exceptions import (
    CurrencyMismatchError,
    InvalidQuantityError,
    OutOfStockError,
    ValidationError,
)
from storefront.domain.state_machines import (
    OrderStatus,
    PaymentStatus,
    validate_order_transition,
    validate_payment_transition,
)
from storefront.domain.value_objects import (
    DEFAULT_CURRENCY,
    Address,
    Money,
    OrderTotals,
    PaymentMethod,
    ProductRef,
    User,
)

# Raised by Cart.from_dict on a snapshot it cannot read.
SNAPSHOT_ERRORS = (ValueError, KeyError, TypeError, AttributeError, ArithmeticError)


# ============================================================================
# Cart Line
# ============================================================================


@dataclass(frozen=True)
class CartLine:
    """One product in the cart with its quantity.

    Lines are immutable; the cart replaces a line when its quantity changes,
    which also makes an order's item snapshot safe to share.

    Attributes:
        product_id: Catalog product identifier.
        product_name: Name shown to the customer.
        unit_price: Price per unit.
        quantity: Number of units, at least 1.
        image_url: Primary product image.
    """

    product_id: str
    product_name: str
    unit_price: Money
    quantity: int
    image_url: str = ""

    def __post_init__(self) -> None:
        """Validate line constraints."""
        if self.quantity < 1:
            raise InvalidQuantityError(self.quantity)

    @classmethod
    def for_product(cls, product: ProductRef, quantity: int) -> "CartLine":
        return cls(
            product_id=product.product_id,
            product_name=product.name,
            unit_price=product.unit_price,
            quantity=quantity,
            image_url=product.image_url,
        )

    @property
    def line_total(self) -> Money:
        """Unit price multiplied by quantity."""
        return self.unit_price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price": str(self.unit_price.to_decimal()),
            "currency": self.unit_price.currency,
            "quantity": self.quantity,
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartLine":
        currency = data.get("currency") or DEFAULT_CURRENCY
        return cls(
            product_id=str(data["product_id"]),
            product_name=str(data.get("product_name") or ""),
            unit_price=Money.from_decimal(str(data["price"]), currency),
            quantity=int(data["quantity"]),
            image_url=str(data.get("image_url") or ""),
        )


# ============================================================================
# Cart
# ============================================================================


@dataclass
class Cart:
    """The customer's cart.

    Holds at most one line per product. Adding a product that is already
    present merges into the existing line; a line never holds a quantity
    below 1.

    Attributes:
        lines: Cart lines keyed by product ID, in insertion order.
        shipping_address: Address saved for checkout, if any.
    """

    lines: dict[str, CartLine] = field(default_factory=dict)
    shipping_address: Address | None = None

    # ------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------

    def add_item(self, product: ProductRef, quantity: int, available: int | None = None) -> bool:
        """Add units of a product, merging with an existing line.

        Args:
            product: Product to add.
            quantity: Units to add. Values below 1 are ignored.
            available: Units in stock, when known. The merged line may not
                exceed it.

        Returns:
            True if the cart changed.

        Raises:
            CurrencyMismatchError: If the product is priced in another
                currency than the lines already in the cart.
            OutOfStockError: If the line would exceed the available units.
        """
        if quantity < 1:
            return False
        for line in self.lines.values():
            if line.unit_price.currency != product.unit_price.currency:
                raise CurrencyMismatchError(line.unit_price.currency, product.unit_price.currency)
            break
        existing = self.lines.get(product.product_id)
        held = existing.quantity if existing is not None else 0
        if available is not None and held + quantity > available:
            raise OutOfStockError(product.product_id, available)
        if existing is not None:
            self.lines[product.product_id] = replace(existing, quantity=held + quantity)
        else:
            self.lines[product.product_id] = CartLine.for_product(product, quantity)
        return True

    def remove_item(self, product_id: str) -> bool:
        """Remove a product's line. Returns True if a line was removed."""
        return self.lines.pop(product_id, None) is not None

    def update_quantity(self, product_id: str, quantity: int, available: int | None = None) -> bool:
        """Set a line's quantity.

        A quantity of 0 or less removes the line. Unknown products are
        ignored.

        Returns:
            True if the cart changed.

        Raises:
            OutOfStockError: If quantity exceeds available, when given.
        """
        existing = self.lines.get(product_id)
        if existing is None:
            return False
        if quantity <= 0:
            del self.lines[product_id]
            return True
        if existing.quantity == quantity:
            return False
        if available is not None and quantity > available:
            raise OutOfStockError(product_id, available)
        self.lines[product_id] = replace(existing, quantity=quantity)
        return True

    def clear(self) -> None:
        """Drop every line. The saved address is kept."""
        self.lines.clear()

    def save_shipping_address(self, address: Address) -> None:
        self.shipping_address = address

    # ------------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------------

    @property
    def item_count(self) -> int:
        """Total units across all lines."""
        return sum(line.quantity for line in self.lines.values())

    @property
    def subtotal(self) -> Money:
        """Sum of line totals."""
        currency = next(
            (line.unit_price.currency for line in self.lines.values()), DEFAULT_CURRENCY
        )
        total = Money.zero(currency)
        for line in self.lines.values():
            total = total + line.line_total
        return total

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def snapshot_lines(self) -> tuple[CartLine, ...]:
        """Immutable copy of the current lines for an order."""
        return tuple(self.lines.values())

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [line.to_dict() for line in self.lines.values()],
            "shipping_address": (
                self.shipping_address.to_dict() if self.shipping_address else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Cart":
        """Rebuild a cart from a stored snapshot.

        Lines with a quantity below 1 and duplicate product entries are
        folded the same way the cart itself would fold them. A stored
        address that no longer validates is dropped.

        Raises:
            One of SNAPSHOT_ERRORS if the snapshot is malformed.
        """
        cart = cls()
        if not data:
            return cart
        for raw in data.get("items") or []:
            if int(raw.get("quantity") or 0) < 1:
                continue
            line = CartLine.from_dict(raw)
            existing = cart.lines.get(line.product_id)
            if existing is not None:
                line = replace(existing, quantity=existing.quantity + line.quantity)
            cart.lines[line.product_id] = line
        raw_address = data.get("shipping_address")
        if raw_address:
            try:
                cart.shipping_address = Address.from_dict(raw_address)
            except ValidationError:
                cart.shipping_address = None
        return cart


# ============================================================================
# Order Aggregate Root
# ============================================================================


@dataclass(frozen=True)
class OrderUpdate:
    """Fields that may change on an existing order.

    Absent fields are left untouched.
    """

    status: OrderStatus | None = None
    payment_status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    payment_gateway_order_id: str | None = None
    shipment_id: str | None = None

    def is_empty(self) -> bool:
        return not self.fields()

    def fields(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("status", self.status),
                ("payment_status", self.payment_status),
                ("payment_method", self.payment_method),
                ("payment_gateway_order_id", self.payment_gateway_order_id),
                ("shipment_id", self.shipment_id),
            )
            if value is not None
        }


@dataclass(frozen=True)
class OrderDraft:
    """Everything needed to create an order, before it has an identity."""

    user_id: str
    customer_email: str
    customer_name: str
    shipping_address: Address
    items: tuple[CartLine, ...]
    totals: OrderTotals

    @classmethod
    def from_cart(cls, user: User, cart: Cart, totals: OrderTotals) -> "OrderDraft":
        """Snapshot a cart for a signed-in user.

        The customer name is taken from the shipping address, which names
        the person receiving the parcel.
        """
        if cart.shipping_address is None:
            raise ValidationError({"shipping_address": "Shipping address is required"})
        return cls(
            user_id=user.id,
            customer_email=user.email,
            customer_name=cart.shipping_address.name,
            shipping_address=cart.shipping_address,
            items=cart.snapshot_lines(),
            totals=totals,
        )


@dataclass(kw_only=True, eq=False)
class Order(AggregateRoot[str]):
    """Order aggregate root.

    Items and totals are frozen at creation. Only the status fields and the
    gateway and shipment references change afterwards, always through
    apply_update so that status moves follow the order state machine.

    Attributes:
        id: Order identifier assigned by the repository.
        user_id: Owner of the order.
        customer_email: Contact email.
        customer_name: Contact name.
        shipping_address: Delivery address.
        items: Snapshot of the cart lines.
        totals: Priced breakdown.
        status: Order lifecycle state.
        payment_method: Chosen method, once payment starts.
        payment_status: Payment state, once payment starts.
        payment_gateway_order_id: Gateway session reference.
        shipment_id: Carrier shipment reference.
    """

    id: str
    user_id: str
    customer_email: str
    customer_name: str
    shipping_address: Address
    items: tuple[CartLine, ...]
    totals: OrderTotals
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus | None = None
    payment_gateway_order_id: str | None = None
    shipment_id: str | None = None

    @classmethod
    def from_draft(
        cls,
        draft: OrderDraft,
        order_id: str | None = None,
        created_at: datetime | None = None,
    ) -> "Order":
        """Create a pending order from a draft and record OrderCreated."""
        now = created_at or utcnow()
        order = cls(
            id=order_id or str(uuid4()),
            user_id=draft.user_id,
            customer_email=draft.customer_email,
            customer_name=draft.customer_name,
            shipping_address=draft.shipping_address,
            items=draft.items,
            totals=draft.totals,
            created_at=now,
            updated_at=now,
        )
        order._record_event(
            OrderCreated(
                aggregate_id=order.id,
                aggregate_type="Order",
                order_id=order.id,
                user_id=order.user_id,
                total_minor=order.totals.total.amount_minor,
                currency=order.currency,
                item_count=order.item_count,
            )
        )
        return order

    # ------------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------------

    @property
    def currency(self) -> str:
        return self.totals.total.currency

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def subtotal_amount(self) -> Decimal:
        return self.totals.subtotal.to_decimal()

    @property
    def shipping_amount(self) -> Decimal:
        return self.totals.shipping.to_decimal()

    @property
    def tax_amount(self) -> Decimal:
        return self.totals.tax.to_decimal()

    @property
    def discount_amount(self) -> Decimal:
        return self.totals.discount.to_decimal()

    @property
    def total_amount(self) -> Decimal:
        return self.totals.total.to_decimal()

    # ------------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------------

    def check_update(self, update: OrderUpdate) -> None:
        """Validate an update without applying it.

        Raises:
            InvalidStateTransitionError: If the status or payment status
                move is not allowed.
        """
        if update.status is not None and update.status != self.status:
            validate_order_transition(self.id, self.status, update.status)
        if (
            update.payment_status is not None
            and self.payment_status is not None
            and update.payment_status != self.payment_status
        ):
            validate_payment_transition(self.id, self.payment_status, update.payment_status)

    def apply_update(self, update: OrderUpdate) -> None:
        """Apply an update, recording events for status and shipment changes.

        A payment status may restart at pending when a new payment attempt
        begins on a pending order.

        Raises:
            InvalidStateTransitionError: If the status move is not allowed.
        """
        restarting_payment = (
            update.payment_status == PaymentStatus.PENDING
            and self.status == OrderStatus.PENDING
        )
        if not restarting_payment:
            self.check_update(update)
        elif update.status is not None and update.status != self.status:
            validate_order_transition(self.id, self.status, update.status)

        previous_status = self.status
        previous_payment = self.payment_status

        if update.status is not None:
            self.status = update.status
        if update.payment_status is not None:
            self.payment_status = update.payment_status
        if update.payment_method is not None:
            self.payment_method = update.payment_method
        if update.payment_gateway_order_id is not None:
            self.payment_gateway_order_id = update.payment_gateway_order_id

        if update.shipment_id is not None and update.shipment_id != self.shipment_id:
            self.shipment_id = update.shipment_id
            self._record_event(
                ShipmentAttached(
                    aggregate_id=self.id,
                    aggregate_type="Order",
                    order_id=self.id,
                    shipment_id=update.shipment_id,
                )
            )

        if previous_status != self.status or previous_payment != self.payment_status:
            self._record_event(
                OrderStatusChanged(
                    aggregate_id=self.id,
                    aggregate_type="Order",
                    order_id=self.id,
                    from_status=previous_status.value,
                    to_status=self.status.value,
                    payment_status=self.payment_status.value if self.payment_status else None,
                )
            )
        self._touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "customer_email": self.customer_email,
            "customer_name": self.customer_name,
            "shipping_address": self.shipping_address.to_dict(),
            "items": [line.to_dict() for line in self.items],
            **self.totals.to_dict(),
            "currency": self.currency,
            "status": self.status.value,
            "payment_method": self.payment_method.value if self.payment_method else None,
            "payment_status": self.payment_status.value if self.payment_status else None,
            "payment_gateway_order_id": self.payment_gateway_order_id,
            "shipment_id": self.shipment_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ============================================================================
# Payment Details Entity
# ============================================================================


@dataclass(kw_only=True, eq=False)
class PaymentDetails(Entity[str]):
    """One payment attempt against an order.

    A retry creates a new record; at most one record per order is pending
    at any time.

    Attributes:
        id: Payment record identifier.
        order_id: Order being paid.
        amount: Amount charged, equal to the order total.
        payment_method: Method chosen for this attempt.
        status: Attempt state.
        gateway_order_id: Gateway session reference.
        gateway_key: Public key the client uses to open the gateway UI.
        gateway_payment_id: Gateway payment reference from the callback.
        failure_reason: Why the attempt failed.
    """

    id: str
    order_id: str
    amount: Money
    payment_method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    gateway_order_id: str | None = None
    gateway_key: str | None = None
    gateway_payment_id: str | None = None
    failure_reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, order: Order, payment_method: PaymentMethod) -> "PaymentDetails":
        """Start a pending payment attempt for the full order total."""
        return cls(
            id=str(uuid4()),
            order_id=order.id,
            amount=order.totals.total,
            payment_method=payment_method,
        )

    @property
    def currency(self) -> str:
        return self.amount.currency

    @property
    def is_active(self) -> bool:
        return self.status.is_active()

    def attach_gateway_session(self, gateway_order_id: str, gateway_key: str | None) -> None:
        self.gateway_order_id = gateway_order_id
        self.gateway_key = gateway_key
        self.updated_at = utcnow()

    def mark_completed(self, gateway_payment_id: str) -> None:
        """Record a verified payment.

        Raises:
            InvalidStateTransitionError: If the attempt is not pending.
        """
        validate_payment_transition(self.id, self.status, PaymentStatus.COMPLETED)
        self.status = PaymentStatus.COMPLETED
        self.gateway_payment_id = gateway_payment_id
        self.updated_at = utcnow()

    def mark_failed(self, reason: str, gateway_payment_id: str | None = None) -> None:
        """Record a failed attempt.

        Raises:
            InvalidStateTransitionError: If the attempt is not pending.
        """
        validate_payment_transition(self.id, self.status, PaymentStatus.FAILED)
        self.status = PaymentStatus.FAILED
        self.failure_reason = reason
        if gateway_payment_id:
            self.gateway_payment_id = gateway_payment_id
        self.updated_at = utcnow()

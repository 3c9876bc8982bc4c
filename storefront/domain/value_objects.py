"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Self

from storefront.domain.base import ValueObject
from storefront.domain.exceptions import (
    CurrencyMismatchError,
    NegativeMoneyError,
    ValidationError,
)

DEFAULT_CURRENCY = "INR"


# ============================================================================
# Money Value Object
# ============================================================================


@dataclass(frozen=True)
class Money(ValueObject):
    """Represents monetary value with currency.

    Money is stored in the smallest currency unit (paise for INR) so that
    totals reconcile exactly and gateway amounts need no further rounding.

    Attributes:
        amount_minor: Amount in smallest currency unit.
        currency: ISO 4217 currency code.
    """

    amount_minor: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        """Validate money constraints."""
        if self.amount_minor < 0:
            raise NegativeMoneyError(self.amount_minor)
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Self:
        """Create zero amount money."""
        return cls(amount_minor=0, currency=currency)

    @classmethod
    def from_decimal(cls, amount: Decimal | int | str, currency: str = DEFAULT_CURRENCY) -> Self:
        """Create money from an amount in major units.

        Rounds half-up to the minor unit.

        Args:
            amount: Amount in major units (e.g., rupees).
            currency: Currency code.

        Returns:
            Money instance.
        """
        minor = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(amount_minor=int(minor), currency=currency)

    def to_decimal(self) -> Decimal:
        """Convert to decimal amount in major units with two places."""
        return (Decimal(self.amount_minor) / 100).quantize(Decimal("0.01"))

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount_minor=self.amount_minor + other.amount_minor, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        """Subtract money amounts.

        Raises:
            CurrencyMismatchError: If currencies don't match.
            NegativeMoneyError: If result would be negative.
        """
        self._check_currency(other)
        return Money(amount_minor=self.amount_minor - other.amount_minor, currency=self.currency)

    def __mul__(self, quantity: int) -> "Money":
        return Money(amount_minor=self.amount_minor * quantity, currency=self.currency)

    def __rmul__(self, quantity: int) -> "Money":
        return self.__mul__(quantity)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount_minor < other.amount_minor

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount_minor >= other.amount_minor

    def __str__(self) -> str:
        symbol = {"INR": "₹", "USD": "$"}.get(self.currency, "")
        return f"{symbol}{self.to_decimal():.2f} {self.currency}"

    def is_zero(self) -> bool:
        return self.amount_minor == 0


# ============================================================================
# Product Reference
# ============================================================================


@dataclass(frozen=True)
class ProductRef(ValueObject):
    """Minimal product information needed to put it in a cart.

    Attributes:
        product_id: Catalog product identifier.
        name: Product name for display.
        unit_price: Price per unit.
        image_url: Primary image.
    """

    product_id: str
    name: str
    unit_price: Money
    image_url: str = ""

    def __post_init__(self) -> None:
        if not self.product_id or not self.product_id.strip():
            raise ValueError("Product ID cannot be empty")


class ProductCategory(str, Enum):
    """Catalog categories shown as filters in the app."""

    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    HOME = "home"
    BEAUTY = "beauty"
    SPORTS = "sports"
    BOOKS = "books"
    TOYS = "toys"
    GROCERY = "grocery"
    OTHER = "other"


@dataclass(frozen=True)
class Product(ValueObject):
    """A catalog product as the storefront lists it.

    The catalog is the only source of prices: carts take a product's name,
    price and image from here, never from the client.

    Attributes:
        id: Catalog product identifier.
        name: Display name.
        price: Current unit price.
        category: Catalog category.
        description: Long description.
        image_url: Primary image.
        stock_quantity: Units available to order.
        is_featured: Shown on the home screen carousel.
        created_at: When the product was listed; newest first in listings.
    """

    id: str
    name: str
    price: Money
    category: ProductCategory = ProductCategory.OTHER
    description: str = ""
    image_url: str = ""
    stock_quantity: int = 0
    is_featured: bool = False
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValueError("Product ID cannot be empty")
        if self.stock_quantity < 0:
            raise ValueError("Stock quantity cannot be negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], currency: str = DEFAULT_CURRENCY) -> "Product":
        """Build a product from a catalog row with the price in major units.

        Unknown categories are listed as OTHER.

        Raises:
            ValueError, KeyError, TypeError, ArithmeticError: If a field is
                missing or malformed.
            NegativeMoneyError: If the price is negative.
        """
        try:
            category = ProductCategory(data.get("category") or ProductCategory.OTHER.value)
        except ValueError:
            category = ProductCategory.OTHER
        created_at = data.get("created_at")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            price=Money.from_decimal(str(data["price"]), data.get("currency") or currency),
            category=category,
            description=data.get("description") or "",
            image_url=data.get("image_url") or "",
            stock_quantity=int(data.get("stock_quantity") or 0),
            is_featured=bool(data.get("is_featured", False)),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    def to_ref(self) -> ProductRef:
        """What a cart line keeps of this product."""
        return ProductRef(
            product_id=self.id,
            name=self.name,
            unit_price=self.price,
            image_url=self.image_url,
        )


# ============================================================================
# Address Value Object
# ============================================================================


PHONE_PATTERN = re.compile(r"[0-9]{10}")
PINCODE_PATTERN = re.compile(r"[0-9]{6}")

_REQUIRED_ADDRESS_FIELDS: dict[str, str] = {
    "name": "Name",
    "phone": "Phone",
    "address_line1": "Address line 1",
    "city": "City",
    "state": "State",
    "pincode": "Pincode",
}


def validate_address_fields(fields: Mapping[str, Any]) -> dict[str, str]:
    """Check raw address input and collect field-level messages.

    Args:
        fields: Raw form values keyed by address field name.

    Returns:
        Mapping of field name to message; empty when the input is valid.
    """
    errors: dict[str, str] = {}
    for name, label in _REQUIRED_ADDRESS_FIELDS.items():
        value = fields.get(name)
        if value is None or not str(value).strip():
            errors[name] = f"{label} is required"

    phone = str(fields.get("phone") or "").strip()
    if "phone" not in errors and not PHONE_PATTERN.fullmatch(phone):
        errors["phone"] = "Please enter a valid 10-digit phone number"

    pincode = str(fields.get("pincode") or "").strip()
    if "pincode" not in errors and not PINCODE_PATTERN.fullmatch(pincode):
        errors["pincode"] = "Please enter a valid 6-digit pincode"

    return errors


@dataclass(frozen=True)
class Address(ValueObject):
    """Shipping address.

    Values are trimmed on construction; an invalid address cannot exist.

    Raises:
        ValidationError: If any field fails validation.
    """

    name: str
    phone: str
    address_line1: str
    city: str
    state: str
    pincode: str
    address_line2: str | None = None
    country: str = "India"

    def __post_init__(self) -> None:
        errors = validate_address_fields(self.__dict__)
        if errors:
            raise ValidationError(errors)
        for name in ("name", "phone", "address_line1", "city", "state", "pincode", "country"):
            object.__setattr__(self, name, str(getattr(self, name)).strip())
        line2 = (self.address_line2 or "").strip()
        object.__setattr__(self, "address_line2", line2 or None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Address":
        """Build an address from form or stored values.

        Raises:
            ValidationError: If any field fails validation.
        """
        errors = validate_address_fields(data)
        if errors:
            raise ValidationError(errors)
        return cls(
            name=str(data["name"]),
            phone=str(data["phone"]),
            address_line1=str(data["address_line1"]),
            city=str(data["city"]),
            state=str(data["state"]),
            pincode=str(data["pincode"]),
            address_line2=data.get("address_line2"),
            country=data.get("country") or "India",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "address_line1": self.address_line1,
            "address_line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "country": self.country,
        }


# ============================================================================
# Order Totals
# ============================================================================


@dataclass(frozen=True)
class OrderTotals(ValueObject):
    """Priced breakdown frozen into an order at creation.

    Attributes:
        subtotal: Sum of line totals.
        shipping: Shipping fee.
        tax: Tax on the subtotal.
        discount: Externally supplied discount.
        total: subtotal + shipping + tax - discount.
    """

    subtotal: Money
    shipping: Money
    tax: Money
    discount: Money
    total: Money

    def reconciles(self) -> bool:
        """Check that the total equals its parts to the minor unit."""
        expected = (
            self.subtotal.amount_minor
            + self.shipping.amount_minor
            + self.tax.amount_minor
            - self.discount.amount_minor
        )
        return expected == self.total.amount_minor

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal_amount": str(self.subtotal.to_decimal()),
            "shipping_amount": str(self.shipping.to_decimal()),
            "tax_amount": str(self.tax.to_decimal()),
            "discount_amount": str(self.discount.to_decimal()),
            "total_amount": str(self.total.to_decimal()),
        }


# ============================================================================
# Payment Method
# ============================================================================


class PaymentMethod(str, Enum):
    """Payment methods offered at checkout."""

    CARD = "CARD"
    UPI = "UPI"
    NETBANKING = "NETBANKING"
    WALLET = "WALLET"
    COD = "COD"

    @property
    def is_online(self) -> bool:
        """Online methods go through the payment gateway."""
        return self != PaymentMethod.COD


# ============================================================================
# User
# ============================================================================


@dataclass(frozen=True)
class User(ValueObject):
    """Authenticated customer identity."""

    id: str
    email: str
    full_name: str | None = None
    phone: str | None = None


# ============================================================================
# Tracking
# ============================================================================


@dataclass(frozen=True)
class TrackingActivity(ValueObject):
    """One carrier scan event."""

    date: str
    activity: str
    location: str = ""


@dataclass(frozen=True)
class TrackingSnapshot(ValueObject):
    """Carrier status for a shipment at the time it was polled.

    Activities are ordered most recent first, as the carrier reports them.
    """

    shipment_id: str
    current_status: str
    status_date: datetime | None = None
    activities: tuple[TrackingActivity, ...] = field(default_factory=tuple)

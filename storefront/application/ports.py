"""Interfaces the application layer depends on.

Services receive implementations through their constructors, so tests
can pass in-memory fakes or mocks in place of the hosted backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from storefront.domain.entities import Cart, Order, OrderDraft, OrderUpdate, PaymentDetails
from storefront.domain.value_objects import (
    PaymentMethod,
    Product,
    ProductCategory,
    TrackingSnapshot,
    User,
)


# ============================================================================
# Authentication
# ============================================================================


class AuthService(ABC):
    """Resolves the signed-in customer, if any."""

    @abstractmethod
    async def current_user(self) -> User | None:
        """Get the authenticated user or None for a guest."""


# ============================================================================
# Cart Storage
# ============================================================================


class CartStore(ABC):
    """One persistence tier for cart snapshots."""

    @abstractmethod
    async def load(self, key: str) -> Cart | None:
        """Load the cart stored under key.

        Returns:
            The stored cart, or None when nothing is stored.

        Raises:
            PersistenceError: If the tier cannot be read.
        """

    @abstractmethod
    async def save(self, key: str, cart: Cart) -> None:
        """Replace the cart stored under key.

        Raises:
            PersistenceError: If the tier cannot be written.
        """


# ============================================================================
# Catalog
# ============================================================================


@dataclass(frozen=True)
class ProductQuery:
    """Filters and page for a catalog listing.

    Attributes:
        category: Only products in this category.
        search: Case-insensitive substring of the product name.
        limit: Page size.
        offset: Products to skip.
    """

    category: ProductCategory | None = None
    search: str | None = None
    limit: int = 20
    offset: int = 0


class ProductRepository(ABC):
    """Read access to the product catalog.

    Listings are ordered newest first. Every method raises
    PersistenceError when the backing store fails.
    """

    @abstractmethod
    async def get(self, product_id: str) -> Product | None:
        """Get a product by ID, or None if it is not listed."""

    @abstractmethod
    async def search(self, query: ProductQuery) -> tuple[list[Product], int]:
        """Get one page of matching products.

        Returns:
            The page, and the number of matches across all pages.
        """

    @abstractmethod
    async def featured(self, limit: int) -> list[Product]:
        """Get up to limit featured products."""


# ============================================================================
# Order Storage
# ============================================================================


class OrderRepository(ABC):
    """Source of truth for order records.

    Every method raises PersistenceError when the backing store fails.
    """

    @abstractmethod
    async def create(self, draft: OrderDraft) -> Order:
        """Insert a pending order and return it with its assigned ID."""

    @abstractmethod
    async def update_status(self, order_id: str, update: OrderUpdate) -> Order:
        """Apply a partial update and return the stored order.

        Raises:
            OrderNotFoundError: If no such order exists.
            InvalidStateTransitionError: If the status move is not allowed.
        """

    @abstractmethod
    async def get(self, order_id: str) -> Order | None:
        """Get an order by ID."""

    @abstractmethod
    async def get_by_user(self, user_id: str) -> list[Order]:
        """Get a user's orders, most recent first."""


class PaymentRepository(ABC):
    """Storage for payment attempts."""

    @abstractmethod
    async def create(self, payment: PaymentDetails) -> PaymentDetails:
        """Insert a payment attempt."""

    @abstractmethod
    async def update(self, payment: PaymentDetails) -> PaymentDetails:
        """Overwrite a payment attempt's mutable fields."""

    @abstractmethod
    async def list_for_order(self, order_id: str) -> list[PaymentDetails]:
        """Get all attempts for an order, oldest first."""


# ============================================================================
# Payment Gateway
# ============================================================================


@dataclass(frozen=True)
class GatewaySession:
    """Gateway-side handle for collecting one payment.

    Attributes:
        gateway_order_id: Gateway's order reference.
        gateway_key: Publishable key the client opens the gateway UI with.
        amount_minor: Amount the gateway will collect, in minor units.
        currency: Currency code.
        receipt: Merchant receipt reference sent to the gateway.
    """

    gateway_order_id: str
    gateway_key: str
    amount_minor: int
    currency: str
    receipt: str


class PaymentGatewayAdapter(ABC):
    """Payment processor contract used by checkout."""

    @abstractmethod
    async def create_session(self, order: Order, method: PaymentMethod) -> GatewaySession:
        """Open a payment session for the order total.

        Raises:
            GatewayError: On network or authentication failure.
        """

    @abstractmethod
    async def verify(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        """Check a payment callback signature.

        A mismatch returns False.

        Raises:
            GatewayError: If the verification dependency cannot be reached.
        """


# ============================================================================
# Shipping
# ============================================================================


class ShipmentAdapter(ABC):
    """Shipping aggregator contract."""

    @abstractmethod
    async def create_shipment(self, order: Order) -> str:
        """Create a shipment and return its ID.

        Raises:
            ShipmentError: If the carrier rejects or cannot take the request.
        """

    @abstractmethod
    async def track_shipment(self, shipment_id: str) -> TrackingSnapshot:
        """Poll the carrier for the shipment's status."""

    @abstractmethod
    async def generate_label(self, shipment_id: str) -> str:
        """Generate a shipping label and return its download URL."""

    @abstractmethod
    async def cancel_shipment(self, shipment_id: str) -> None:
        """Cancel a shipment with the carrier."""


# ============================================================================
# OTP Channel
# ============================================================================


@dataclass(frozen=True)
class OtpResult:
    """Outcome of an OTP send or verify call."""

    success: bool
    message: str | None = None


class OtpChannel(ABC):
    """Phone verification provider."""

    @abstractmethod
    async def send(self, phone: str) -> OtpResult:
        """Send a code to the phone.

        Raises:
            OtpChannelError: If the provider cannot be reached.
        """

    @abstractmethod
    async def verify(self, phone: str, code: str) -> OtpResult:
        """Check a code sent to the phone.

        Raises:
            OtpChannelError: If the provider cannot be reached.
        """

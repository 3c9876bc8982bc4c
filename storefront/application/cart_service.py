"""Cart application service.

Owns the customer's cart and keeps its persisted copies in step:
- The local (device) tier is written after every mutation
- The remote tier, keyed by user, is written too when a user is signed in
- On load the remote record wins when present, else the device record is used

Persistence failures are logged and swallowed; the in-memory cart stays
authoritative for the caller.
"""

from decimal import Decimal

import structlog

from storefront.application.ports import AuthService, CartStore
from storefront.domain.entities import Cart, CartLine
from storefront.domain.exceptions import DomainError
from storefront.domain.value_objects import Address, Money, ProductRef, User

logger = structlog.get_logger()


# ============================================================================
# Persistence Strategy
# ============================================================================


class PersistenceStrategy:
    """Two-tier cart persistence.

    The local tier is the resilience fallback: it is always written, and
    every tier failure is logged at warning level rather than raised.
    """

    def __init__(self, local: CartStore, remote: CartStore | None = None) -> None:
        """Initialize strategy.

        Args:
            local: Device tier, keyed by device ID.
            remote: User tier, keyed by user ID. None disables it.
        """
        self.local = local
        self.remote = remote

    async def load_remote(self, user_id: str) -> Cart | None:
        if self.remote is None:
            return None
        try:
            return await self.remote.load(user_id)
        except DomainError as e:
            logger.warning("Remote cart load failed", user_id=user_id, error=e.message)
            return None

    async def load_local(self, device_id: str) -> Cart | None:
        try:
            return await self.local.load(device_id)
        except DomainError as e:
            logger.warning("Local cart load failed", device_id=device_id, error=e.message)
            return None

    async def try_remote(self, user_id: str, cart: Cart) -> bool:
        """Write the remote tier. Returns False when it is disabled or fails."""
        if self.remote is None:
            return False
        try:
            await self.remote.save(user_id, cart)
            return True
        except DomainError as e:
            logger.warning(
                "Remote cart save failed, kept local copy",
                user_id=user_id,
                error=e.message,
            )
            return False

    async def write_local(self, device_id: str, cart: Cart) -> bool:
        try:
            await self.local.save(device_id, cart)
            return True
        except DomainError as e:
            logger.warning("Local cart save failed", device_id=device_id, error=e.message)
            return False

    async def load(self, device_id: str, user: User | None) -> Cart:
        """Load the remote record if present, else the device record, else empty."""
        if user is not None:
            remote = await self.load_remote(user.id)
            if remote is not None:
                return remote
        local = await self.load_local(device_id)
        return local if local is not None else Cart()

    async def persist(self, device_id: str, user: User | None, cart: Cart) -> None:
        await self.write_local(device_id, cart)
        if user is not None:
            await self.try_remote(user.id, cart)


# ============================================================================
# Cart Service
# ============================================================================


class CartService:
    """Application service for the customer's cart.

    All mutations go through this service so that the persisted snapshot
    and the in-memory cart never diverge.
    """

    def __init__(
        self,
        auth: AuthService,
        strategy: PersistenceStrategy,
        device_id: str,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            auth: Resolves the signed-in user.
            strategy: Two-tier persistence.
            device_id: Key for the local tier.
            request_id: Request ID for correlation.
        """
        self.auth = auth
        self.strategy = strategy
        self.device_id = device_id
        self.request_id = request_id
        self._cart: Cart | None = None

    async def load(self) -> Cart:
        """Load the cart from storage, replacing the in-memory copy."""
        user = await self.auth.current_user()
        self._cart = await self.strategy.load(self.device_id, user)
        logger.debug(
            "Cart loaded",
            device_id=self.device_id,
            user_id=user.id if user else None,
            item_count=self._cart.item_count,
            request_id=self.request_id,
        )
        return self._cart

    async def get_cart(self) -> Cart:
        if self._cart is None:
            return await self.load()
        return self._cart

    async def _persist(self) -> None:
        user = await self.auth.current_user()
        await self.strategy.persist(self.device_id, user, self.cart)

    # ------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------

    async def add_item(
        self, product: ProductRef, quantity: int = 1, available: int | None = None
    ) -> Cart:
        """Add units of a product. Quantities below 1 are ignored.

        Raises:
            CurrencyMismatchError: If the cart holds another currency.
            OutOfStockError: If the line would exceed available units.
        """
        cart = await self.get_cart()
        if cart.add_item(product, quantity, available):
            logger.info(
                "Cart item added",
                product_id=product.product_id,
                quantity=quantity,
                request_id=self.request_id,
            )
            await self._persist()
        return cart

    async def remove_item(self, product_id: str) -> Cart:
        cart = await self.get_cart()
        if cart.remove_item(product_id):
            logger.info("Cart item removed", product_id=product_id, request_id=self.request_id)
            await self._persist()
        return cart

    async def update_quantity(
        self, product_id: str, quantity: int, available: int | None = None
    ) -> Cart:
        """Set a line's quantity; 0 or less removes the line."""
        cart = await self.get_cart()
        if cart.update_quantity(product_id, quantity, available):
            logger.info(
                "Cart item quantity updated",
                product_id=product_id,
                quantity=quantity,
                request_id=self.request_id,
            )
            await self._persist()
        return cart

    async def clear_cart(self) -> Cart:
        """Empty the cart, keeping the saved address."""
        cart = await self.get_cart()
        cart.clear()
        logger.info("Cart cleared", device_id=self.device_id, request_id=self.request_id)
        await self._persist()
        return cart

    async def save_shipping_address(self, address: Address) -> Cart:
        cart = await self.get_cart()
        cart.save_shipping_address(address)
        logger.info("Shipping address saved", device_id=self.device_id, request_id=self.request_id)
        await self._persist()
        return cart

    # ------------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------------

    @property
    def cart(self) -> Cart:
        if self._cart is None:
            raise RuntimeError("Cart not loaded; await load() first")
        return self._cart

    @property
    def lines(self) -> list[CartLine]:
        return list(self.cart.lines.values())

    @property
    def item_count(self) -> int:
        return self.cart.item_count

    @property
    def subtotal(self) -> Money:
        return self.cart.subtotal

    @property
    def subtotal_amount(self) -> Decimal:
        return self.cart.subtotal.to_decimal()

    @property
    def shipping_address(self) -> Address | None:
        return self.cart.shipping_address

    @property
    def is_empty(self) -> bool:
        return self.cart.is_empty

    def snapshot_lines(self) -> tuple[CartLine, ...]:
        return self.cart.snapshot_lines()

"""In-memory repositories.

Used for local development and tests. Each returns copies of what it
stores so callers cannot mutate stored state behind the repository's back.
"""

from copy import deepcopy

from storefront.application.ports import (
    CartStore,
    OrderRepository,
    PaymentRepository,
    ProductQuery,
    ProductRepository,
)
from storefront.domain.entities import Cart, Order, OrderDraft, OrderUpdate, PaymentDetails
from storefront.domain.exceptions import OrderNotFoundError
from storefront.domain.value_objects import Product


class InMemoryOrderRepository(OrderRepository):
    """In-memory repository for orders."""

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}

    async def create(self, draft: OrderDraft) -> Order:
        order = Order.from_draft(draft)
        self._orders[order.id] = order
        created = deepcopy(order)
        order.collect_events()
        return created

    async def update_status(self, order_id: str, update: OrderUpdate) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        order.apply_update(update)
        updated = deepcopy(order)
        order.collect_events()
        return updated

    async def get(self, order_id: str) -> Order | None:
        order = self._orders.get(order_id)
        return deepcopy(order) if order else None

    async def get_by_user(self, user_id: str) -> list[Order]:
        orders = [o for o in self._orders.values() if o.user_id == user_id]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return [deepcopy(o) for o in orders]

    def count(self) -> int:
        return len(self._orders)


class InMemoryPaymentRepository(PaymentRepository):
    """In-memory repository for payment attempts."""

    def __init__(self) -> None:
        self._payments: dict[str, PaymentDetails] = {}

    async def create(self, payment: PaymentDetails) -> PaymentDetails:
        self._payments[payment.id] = deepcopy(payment)
        return payment

    async def update(self, payment: PaymentDetails) -> PaymentDetails:
        self._payments[payment.id] = deepcopy(payment)
        return payment

    async def list_for_order(self, order_id: str) -> list[PaymentDetails]:
        payments = [p for p in self._payments.values() if p.order_id == order_id]
        payments.sort(key=lambda p: p.created_at)
        return [deepcopy(p) for p in payments]


class InMemoryCartStore(CartStore):
    """In-memory cart tier."""

    def __init__(self) -> None:
        self._carts: dict[str, Cart] = {}

    async def load(self, key: str) -> Cart | None:
        cart = self._carts.get(key)
        return deepcopy(cart) if cart else None

    async def save(self, key: str, cart: Cart) -> None:
        self._carts[key] = deepcopy(cart)


class InMemoryProductRepository(ProductRepository):
    """In-memory product catalog.

    Listings follow the database backend: newest first, with products that
    have no listing date last.
    """

    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[str, Product] = {}
        for product in products or []:
            self.add(product)

    def add(self, product: Product) -> None:
        self._products[product.id] = product

    def _newest_first(self, products: list[Product]) -> list[Product]:
        listed = [p for p in products if p.created_at is not None]
        unlisted = [p for p in products if p.created_at is None]
        listed.sort(key=lambda p: p.created_at, reverse=True)
        return listed + unlisted

    async def get(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    async def search(self, query: ProductQuery) -> tuple[list[Product], int]:
        matches = list(self._products.values())
        if query.category is not None:
            matches = [p for p in matches if p.category == query.category]
        if query.search:
            needle = query.search.casefold()
            matches = [p for p in matches if needle in p.name.casefold()]
        matches = self._newest_first(matches)
        return matches[query.offset : query.offset + query.limit], len(matches)

    async def featured(self, limit: int) -> list[Product]:
        featured = [p for p in self._products.values() if p.is_featured]
        return self._newest_first(featured)[:limit]


# Global repository instances
_order_repo: InMemoryOrderRepository | None = None
_payment_repo: InMemoryPaymentRepository | None = None
_product_repo: InMemoryProductRepository | None = None


def get_order_repository() -> InMemoryOrderRepository:
    """Get order repository singleton."""
    global _order_repo
    if _order_repo is None:
        _order_repo = InMemoryOrderRepository()
    return _order_repo


def get_payment_repository() -> InMemoryPaymentRepository:
    """Get payment repository singleton."""
    global _payment_repo
    if _payment_repo is None:
        _payment_repo = InMemoryPaymentRepository()
    return _payment_repo


def get_product_repository() -> InMemoryProductRepository:
    """Get product catalog singleton."""
    global _product_repo
    if _product_repo is None:
        _product_repo = InMemoryProductRepository()
    return _product_repo


def reset_repositories() -> None:
    """Drop the singletons. For tests."""
    global _order_repo, _payment_repo, _product_repo
    _order_repo = None
    _payment_repo = None
    _product_repo = None

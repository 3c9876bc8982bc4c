"""SQLAlchemy-backed repositories.

Each operation runs in its own session and commits before returning, so a
returned value has been durably written. Driver and SQL errors surface as
PersistenceError.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from sqlalchemy import and_, func, select, true
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.application.ports import (
    CartStore,
    OrderRepository,
    PaymentRepository,
    ProductQuery,
    ProductRepository,
)
from storefront.domain.entities import (
    SNAPSHOT_ERRORS,
    Cart,
    CartLine,
    Order,
    OrderDraft,
    OrderUpdate,
    PaymentDetails,
)
from storefront.domain.exceptions import OrderNotFoundError, PersistenceError
from storefront.domain.state_machines import OrderStatus, PaymentStatus
from storefront.domain.value_objects import (
    Address,
    Money,
    OrderTotals,
    PaymentMethod,
    Product,
    ProductCategory,
)
from storefront.infrastructure.models import CartModel, OrderModel, PaymentModel, ProductModel

logger = structlog.get_logger()

R = TypeVar("R")


async def _in_session(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
    work: Callable[[AsyncSession], Awaitable[R]],
) -> R:
    """Run work in a fresh session and commit it.

    Raises:
        PersistenceError: If the database call fails.
    """
    try:
        async with session_factory() as session:
            result = await work(session)
            await session.commit()
            return result
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database operation failed", operation=operation, error=str(e))
        raise PersistenceError(operation, str(e)) from e


# ============================================================================
# Mapping
# ============================================================================


def order_to_model(order: Order) -> OrderModel:
    model = OrderModel(id=order.id)
    _copy_order_fields(order, model)
    return model


def _copy_order_fields(order: Order, model: OrderModel) -> None:
    model.user_id = order.user_id
    model.customer_email = order.customer_email
    model.customer_name = order.customer_name
    model.shipping_address = order.shipping_address.to_dict()
    model.items = [line.to_dict() for line in order.items]
    model.subtotal_amount = order.subtotal_amount
    model.shipping_amount = order.shipping_amount
    model.tax_amount = order.tax_amount
    model.discount_amount = order.discount_amount
    model.total_amount = order.total_amount
    model.currency = order.currency
    model.status = order.status.value
    model.payment_method = order.payment_method.value if order.payment_method else None
    model.payment_status = order.payment_status.value if order.payment_status else None
    model.payment_gateway_order_id = order.payment_gateway_order_id
    model.shipment_id = order.shipment_id
    model.created_at = order.created_at
    model.updated_at = order.updated_at


def model_to_order(model: OrderModel) -> Order:
    currency = model.currency
    totals = OrderTotals(
        subtotal=Money.from_decimal(model.subtotal_amount, currency),
        shipping=Money.from_decimal(model.shipping_amount, currency),
        tax=Money.from_decimal(model.tax_amount, currency),
        discount=Money.from_decimal(model.discount_amount, currency),
        total=Money.from_decimal(model.total_amount, currency),
    )
    return Order(
        id=model.id,
        user_id=model.user_id,
        customer_email=model.customer_email,
        customer_name=model.customer_name,
        shipping_address=Address.from_dict(model.shipping_address),
        items=tuple(CartLine.from_dict(raw) for raw in model.items),
        totals=totals,
        status=OrderStatus(model.status),
        payment_method=PaymentMethod(model.payment_method) if model.payment_method else None,
        payment_status=PaymentStatus(model.payment_status) if model.payment_status else None,
        payment_gateway_order_id=model.payment_gateway_order_id,
        shipment_id=model.shipment_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _copy_payment_fields(payment: PaymentDetails, model: PaymentModel) -> None:
    model.order_id = payment.order_id
    model.amount = payment.amount.to_decimal()
    model.currency = payment.currency
    model.payment_method = payment.payment_method.value
    model.status = payment.status.value
    model.gateway_order_id = payment.gateway_order_id
    model.gateway_key = payment.gateway_key
    model.gateway_payment_id = payment.gateway_payment_id
    model.failure_reason = payment.failure_reason
    model.created_at = payment.created_at
    model.updated_at = payment.updated_at


def model_to_payment(model: PaymentModel) -> PaymentDetails:
    return PaymentDetails(
        id=model.id,
        order_id=model.order_id,
        amount=Money.from_decimal(model.amount, model.currency),
        payment_method=PaymentMethod(model.payment_method),
        status=PaymentStatus(model.status),
        gateway_order_id=model.gateway_order_id,
        gateway_key=model.gateway_key,
        gateway_payment_id=model.gateway_payment_id,
        failure_reason=model.failure_reason,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_product(model: ProductModel) -> Product:
    try:
        category = ProductCategory(model.category)
    except ValueError:
        category = ProductCategory.OTHER
    return Product(
        id=model.id,
        name=model.name,
        price=Money.from_decimal(model.price, model.currency),
        category=category,
        description=model.description or "",
        image_url=model.image_url or "",
        stock_quantity=max(model.stock_quantity or 0, 0),
        is_featured=bool(model.is_featured),
        created_at=model.created_at,
    )


def _like_pattern(text: str) -> str:
    """Substring pattern with LIKE wildcards in text taken literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ============================================================================
# Repositories
# ============================================================================


class SqlAlchemyOrderRepository(OrderRepository):
    """Order repository on the orders table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create(self, draft: OrderDraft) -> Order:
        order = Order.from_draft(draft)

        async def work(session: AsyncSession) -> None:
            session.add(order_to_model(order))

        await _in_session(self.session_factory, "create order", work)
        return order

    async def update_status(self, order_id: str, update: OrderUpdate) -> Order:
        async def work(session: AsyncSession) -> Order:
            model = await session.get(OrderModel, order_id, with_for_update=True)
            if model is None:
                raise OrderNotFoundError(order_id)
            order = model_to_order(model)
            order.apply_update(update)
            _copy_order_fields(order, model)
            return order

        return await _in_session(self.session_factory, "update order", work)

    async def get(self, order_id: str) -> Order | None:
        async def work(session: AsyncSession) -> Order | None:
            model = await session.get(OrderModel, order_id)
            return model_to_order(model) if model else None

        return await _in_session(self.session_factory, "get order", work)

    async def get_by_user(self, user_id: str) -> list[Order]:
        async def work(session: AsyncSession) -> list[Order]:
            result = await session.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc())
            )
            return [model_to_order(m) for m in result.scalars().all()]

        return await _in_session(self.session_factory, "list orders", work)


class SqlAlchemyPaymentRepository(PaymentRepository):
    """Payment repository on the payments table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create(self, payment: PaymentDetails) -> PaymentDetails:
        async def work(session: AsyncSession) -> None:
            model = PaymentModel(id=payment.id)
            _copy_payment_fields(payment, model)
            session.add(model)

        await _in_session(self.session_factory, "create payment", work)
        return payment

    async def update(self, payment: PaymentDetails) -> PaymentDetails:
        async def work(session: AsyncSession) -> None:
            model = await session.get(PaymentModel, payment.id)
            if model is None:
                model = PaymentModel(id=payment.id)
                session.add(model)
            _copy_payment_fields(payment, model)

        await _in_session(self.session_factory, "update payment", work)
        return payment

    async def list_for_order(self, order_id: str) -> list[PaymentDetails]:
        async def work(session: AsyncSession) -> list[PaymentDetails]:
            result = await session.execute(
                select(PaymentModel)
                .where(PaymentModel.order_id == order_id)
                .order_by(PaymentModel.created_at.asc())
            )
            return [model_to_payment(m) for m in result.scalars().all()]

        return await _in_session(self.session_factory, "list payments", work)


class SqlAlchemyCartStore(CartStore):
    """Remote cart tier on the carts table, keyed by user ID."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def load(self, key: str) -> Cart | None:
        async def work(session: AsyncSession) -> dict[str, Any] | None:
            model = await session.get(CartModel, key)
            if model is None:
                return None
            return {"items": model.items, "shipping_address": model.shipping_address}

        data = await _in_session(self.session_factory, "load cart", work)
        if data is None:
            return None
        try:
            return Cart.from_dict(data)
        except SNAPSHOT_ERRORS as e:
            raise PersistenceError("load cart", f"unreadable snapshot: {e}") from e

    async def save(self, key: str, cart: Cart) -> None:
        snapshot = cart.to_dict()

        async def work(session: AsyncSession) -> None:
            await session.merge(
                CartModel(
                    user_id=key,
                    items=snapshot["items"],
                    shipping_address=snapshot["shipping_address"],
                )
            )

        await _in_session(self.session_factory, "save cart", work)


class SqlAlchemyProductRepository(ProductRepository):
    """Product catalog on the products table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get(self, product_id: str) -> Product | None:
        async def work(session: AsyncSession) -> Product | None:
            model = await session.get(ProductModel, product_id)
            return model_to_product(model) if model else None

        return await _in_session(self.session_factory, "get product", work)

    async def search(self, query: ProductQuery) -> tuple[list[Product], int]:
        conditions = []
        if query.category is not None:
            conditions.append(ProductModel.category == query.category.value)
        if query.search:
            conditions.append(ProductModel.name.ilike(_like_pattern(query.search), escape="\\"))

        async def work(session: AsyncSession) -> tuple[list[Product], int]:
            total = await session.scalar(
                select(func.count(ProductModel.id)).where(and_(true(), *conditions))
            )
            result = await session.execute(
                select(ProductModel)
                .where(and_(true(), *conditions))
                .order_by(ProductModel.created_at.desc(), ProductModel.id)
                .limit(query.limit)
                .offset(query.offset)
            )
            return [model_to_product(m) for m in result.scalars()], total or 0

        return await _in_session(self.session_factory, "search products", work)

    async def featured(self, limit: int) -> list[Product]:
        async def work(session: AsyncSession) -> list[Product]:
            result = await session.execute(
                select(ProductModel)
                .where(ProductModel.is_featured.is_(True))
                .order_by(ProductModel.created_at.desc(), ProductModel.id)
                .limit(limit)
            )
            return [model_to_product(m) for m in result.scalars()]

        return await _in_session(self.session_factory, "list featured products", work)

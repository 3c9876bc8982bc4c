"""Tests for the SQLAlchemy repositories against in-memory SQLite."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront.application.ports import ProductQuery
from storefront.domain.entities import Cart, OrderDraft, OrderUpdate, PaymentDetails
from storefront.domain.exceptions import OrderNotFoundError, PersistenceError
from storefront.domain.pricing import PricingPolicy
from storefront.domain.state_machines import OrderStatus, PaymentStatus
from storefront.domain.value_objects import Money, PaymentMethod, ProductCategory
from storefront.infrastructure.database import Base
from storefront.infrastructure.models import CartModel, ProductModel
from storefront.infrastructure.sql_repositories import (
    SqlAlchemyCartStore,
    SqlAlchemyOrderRepository,
    SqlAlchemyPaymentRepository,
    SqlAlchemyProductRepository,
)


async def sqlite_session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


def draft_for(user, cart) -> OrderDraft:
    return OrderDraft.from_cart(user, cart, PricingPolicy().calculate(cart.subtotal))


class TestSqlAlchemyOrderRepository:
    """Tests for order persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, user, cart) -> None:
        engine, factory = await sqlite_session_factory()
        repo = SqlAlchemyOrderRepository(factory)

        created = await repo.create(draft_for(user, cart))
        loaded = await repo.get(created.id)
        await engine.dispose()

        assert loaded.id == created.id
        assert loaded.status == OrderStatus.PENDING
        assert loaded.totals.total == Money(52200)
        assert loaded.items == created.items
        assert loaded.shipping_address == created.shipping_address

    @pytest.mark.asyncio
    async def test_update_status(self, user, cart) -> None:
        engine, factory = await sqlite_session_factory()
        repo = SqlAlchemyOrderRepository(factory)
        created = await repo.create(draft_for(user, cart))

        updated = await repo.update_status(
            created.id,
            OrderUpdate(status=OrderStatus.PROCESSING, payment_method=PaymentMethod.COD),
        )
        loaded = await repo.get(created.id)
        await engine.dispose()

        assert updated.status == OrderStatus.PROCESSING
        assert loaded.status == OrderStatus.PROCESSING
        assert loaded.payment_method == PaymentMethod.COD

    @pytest.mark.asyncio
    async def test_update_unknown_order(self) -> None:
        engine, factory = await sqlite_session_factory()
        repo = SqlAlchemyOrderRepository(factory)

        with pytest.raises(OrderNotFoundError):
            await repo.update_status("missing", OrderUpdate(status=OrderStatus.FAILED))
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_get_by_user(self, user, cart) -> None:
        engine, factory = await sqlite_session_factory()
        repo = SqlAlchemyOrderRepository(factory)
        await repo.create(draft_for(user, cart))
        await repo.create(draft_for(user, cart))

        orders = await repo.get_by_user(user.id)
        others = await repo.get_by_user("user-2")
        await engine.dispose()

        assert len(orders) == 2
        assert others == []


class TestSqlAlchemyPaymentRepository:
    """Tests for payment attempt persistence."""

    @pytest.mark.asyncio
    async def test_attempts_listed_in_order(self, user, cart) -> None:
        engine, factory = await sqlite_session_factory()
        orders = SqlAlchemyOrderRepository(factory)
        payments = SqlAlchemyPaymentRepository(factory)
        order = await orders.create(draft_for(user, cart))

        first = PaymentDetails.create(order, PaymentMethod.CARD)
        await payments.create(first)
        first.mark_failed("dismissed")
        await payments.update(first)
        second = PaymentDetails.create(order, PaymentMethod.UPI)
        await payments.create(second)

        attempts = await payments.list_for_order(order.id)
        await engine.dispose()

        assert [p.id for p in attempts] == [first.id, second.id]
        assert attempts[0].status == PaymentStatus.FAILED
        assert attempts[0].failure_reason == "dismissed"
        assert attempts[1].amount == Money(52200)


class TestSqlAlchemyCartStore:
    """Tests for the remote cart tier."""

    @pytest.mark.asyncio
    async def test_save_overwrites(self, cart, mug) -> None:
        engine, factory = await sqlite_session_factory()
        store = SqlAlchemyCartStore(factory)

        await store.save("user-1", cart)
        cart.add_item(mug, 1)
        await store.save("user-1", cart)
        loaded = await store.load("user-1")
        missing = await store.load("user-2")
        await engine.dispose()

        assert loaded.item_count == 3
        assert loaded.shipping_address == cart.shipping_address
        assert missing is None

    @pytest.mark.asyncio
    async def test_empty_cart_round_trip(self) -> None:
        engine, factory = await sqlite_session_factory()
        store = SqlAlchemyCartStore(factory)

        await store.save("user-1", Cart())
        loaded = await store.load("user-1")
        await engine.dispose()

        assert loaded is not None
        assert loaded.is_empty

    @pytest.mark.asyncio
    async def test_malformed_row_raises_persistence_error(self) -> None:
        engine, factory = await sqlite_session_factory()
        async with factory() as session:
            session.add(
                CartModel(
                    user_id="user-1",
                    items=[{"product_id": "p", "price": "1", "quantity": "two"}],
                )
            )
            await session.commit()

        with pytest.raises(PersistenceError):
            await SqlAlchemyCartStore(factory).load("user-1")
        await engine.dispose()


async def seeded_catalog(factory) -> None:
    async with factory() as session:
        session.add_all(
            [
                ProductModel(
                    id="tee-1",
                    name="Cotton Tee",
                    price=Decimal("200.00"),
                    category="clothing",
                    stock_quantity=10,
                    created_at=datetime(2026, 9, 1, tzinfo=timezone.utc),
                ),
                ProductModel(
                    id="tee-2",
                    name="100% Linen Tee",
                    price=Decimal("650.00"),
                    category="clothing",
                    stock_quantity=2,
                    is_featured=True,
                    created_at=datetime(2026, 9, 4, tzinfo=timezone.utc),
                ),
                ProductModel(
                    id="mug-1",
                    name="Steel Mug",
                    price=Decimal("350.00"),
                    category="home",
                    is_featured=True,
                    created_at=datetime(2026, 9, 2, tzinfo=timezone.utc),
                ),
                ProductModel(
                    id="odd-1",
                    name="Mystery Box",
                    price=Decimal("99.00"),
                    category="gadgets",
                    created_at=datetime(2026, 8, 1, tzinfo=timezone.utc),
                ),
            ]
        )
        await session.commit()


class TestSqlAlchemyProductRepository:
    """Tests for the products table."""

    @pytest.mark.asyncio
    async def test_get(self) -> None:
        engine, factory = await sqlite_session_factory()
        await seeded_catalog(factory)

        product = await SqlAlchemyProductRepository(factory).get("tee-1")
        missing = await SqlAlchemyProductRepository(factory).get("ghost")
        await engine.dispose()

        assert product.price == Money(20000)
        assert product.category == ProductCategory.CLOTHING
        assert product.stock_quantity == 10
        assert missing is None

    @pytest.mark.asyncio
    async def test_search_newest_first_with_total(self) -> None:
        engine, factory = await sqlite_session_factory()
        await seeded_catalog(factory)

        page, total = await SqlAlchemyProductRepository(factory).search(
            ProductQuery(limit=2, offset=1)
        )
        await engine.dispose()

        assert [p.id for p in page] == ["mug-1", "tee-1"]
        assert total == 4

    @pytest.mark.asyncio
    async def test_category_and_name_filters(self) -> None:
        engine, factory = await sqlite_session_factory()
        await seeded_catalog(factory)
        repo = SqlAlchemyProductRepository(factory)

        clothing, clothing_total = await repo.search(
            ProductQuery(category=ProductCategory.CLOTHING)
        )
        cotton, _ = await repo.search(ProductQuery(search="COTTON"))
        await engine.dispose()

        assert [p.id for p in clothing] == ["tee-2", "tee-1"]
        assert clothing_total == 2
        assert [p.id for p in cotton] == ["tee-1"]

    @pytest.mark.asyncio
    async def test_search_wildcards_are_literal(self) -> None:
        engine, factory = await sqlite_session_factory()
        await seeded_catalog(factory)

        page, total = await SqlAlchemyProductRepository(factory).search(
            ProductQuery(search="%")
        )
        await engine.dispose()

        assert [p.id for p in page] == ["tee-2"]
        assert total == 1

    @pytest.mark.asyncio
    async def test_featured(self) -> None:
        engine, factory = await sqlite_session_factory()
        await seeded_catalog(factory)

        featured = await SqlAlchemyProductRepository(factory).featured(limit=10)
        await engine.dispose()

        assert [p.id for p in featured] == ["tee-2", "mug-1"]

    @pytest.mark.asyncio
    async def test_unknown_category_listed_as_other(self) -> None:
        engine, factory = await sqlite_session_factory()
        await seeded_catalog(factory)

        product = await SqlAlchemyProductRepository(factory).get("odd-1")
        await engine.dispose()

        assert product.category == ProductCategory.OTHER

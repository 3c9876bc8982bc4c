"""Tests for the order query service."""

from unittest.mock import AsyncMock

import pytest

from storefront.application.order_service import OrderQueryService
from storefront.application.ports import OrderRepository
from storefront.application.repositories import InMemoryOrderRepository
from storefront.domain.entities import OrderDraft, OrderUpdate
from storefront.domain.exceptions import PersistenceError
from storefront.domain.pricing import PricingPolicy
from storefront.domain.state_machines import OrderStatus
from storefront.domain.value_objects import User
from storefront.infrastructure.shiprocket_client import InMemoryShipmentAdapter


@pytest.fixture
def draft(user, cart) -> OrderDraft:
    return OrderDraft.from_cart(user, cart, PricingPolicy().calculate(cart.subtotal))


@pytest.fixture
def repo() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def shipments() -> InMemoryShipmentAdapter:
    return InMemoryShipmentAdapter()


@pytest.fixture
def service(repo, shipments) -> OrderQueryService:
    return OrderQueryService(repo, shipments)


async def shipped_order(repo, shipments, draft):
    order = await repo.create(draft)
    await repo.update_status(order.id, OrderUpdate(status=OrderStatus.PROCESSING))
    shipment_id = await shipments.create_shipment(order)
    return await repo.update_status(order.id, OrderUpdate(shipment_id=shipment_id))


class TestListOrders:
    """Tests for order history."""

    @pytest.mark.asyncio
    async def test_lists_only_users_orders(self, service, repo, draft, user, cart) -> None:
        await repo.create(draft)
        other = User(id="user-2", email="ravi@example.com")
        await repo.create(
            OrderDraft.from_cart(other, cart, PricingPolicy().calculate(cart.subtotal))
        )

        result = await service.list_orders(user)

        assert result.success
        assert [o.user_id for o in result.orders] == ["user-1"]

    @pytest.mark.asyncio
    async def test_requires_user(self, service) -> None:
        result = await service.list_orders(None)

        assert result.error_code == "AUTH_REQUIRED"

    @pytest.mark.asyncio
    async def test_store_failure_reported(self, user) -> None:
        repo = AsyncMock(spec=OrderRepository)
        repo.get_by_user.side_effect = PersistenceError("list_orders", "timeout")
        service = OrderQueryService(repo, InMemoryShipmentAdapter())

        result = await service.list_orders(user)

        assert result.error_code == "PERSISTENCE_ERROR"


class TestGetOrder:
    """Tests for order detail."""

    @pytest.mark.asyncio
    async def test_returns_owned_order(self, service, repo, draft, user) -> None:
        created = await repo.create(draft)

        result = await service.get_order(user, created.id)

        assert result.order.id == created.id

    @pytest.mark.asyncio
    async def test_other_users_order_not_found(self, service, repo, draft) -> None:
        created = await repo.create(draft)

        result = await service.get_order(User(id="user-2", email="x@example.com"), created.id)

        assert result.error_code == "ORDER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_latest_resumable_order(self, service, repo, draft, user) -> None:
        failed = await repo.create(draft)
        await repo.update_status(failed.id, OrderUpdate(status=OrderStatus.FAILED))
        pending = await repo.create(draft)

        found = await service.latest_resumable_order(user)

        assert found.id == pending.id


class TestTracking:
    """Tests for shipment tracking and labels."""

    @pytest.mark.asyncio
    async def test_tracks_shipment(self, service, repo, shipments, draft, user) -> None:
        order = await shipped_order(repo, shipments, draft)

        result = await service.track(user, order.id)

        assert result.success
        assert result.tracking.current_status == "PICKUP SCHEDULED"

    @pytest.mark.asyncio
    async def test_order_without_shipment_has_no_tracking(
        self, service, repo, draft, user
    ) -> None:
        order = await repo.create(draft)

        result = await service.track(user, order.id)

        assert result.success
        assert result.tracking is None

    @pytest.mark.asyncio
    async def test_carrier_failure_reported(self, service, repo, shipments, draft, user) -> None:
        order = await shipped_order(repo, shipments, draft)
        shipments.shipments.clear()

        result = await service.track(user, order.id)

        assert result.error_code == "SHIPMENT_ERROR"
        assert result.order.id == order.id

    @pytest.mark.asyncio
    async def test_label_for_shipped_order(self, service, repo, shipments, draft, user) -> None:
        order = await shipped_order(repo, shipments, draft)

        result = await service.shipping_label(user, order.id)

        assert result.label_url == f"https://labels.example.invalid/{order.shipment_id}.pdf"

    @pytest.mark.asyncio
    async def test_label_needs_shipment(self, service, repo, draft, user) -> None:
        order = await repo.create(draft)

        result = await service.shipping_label(user, order.id)

        assert result.error_code == "SHIPMENT_NOT_CREATED"

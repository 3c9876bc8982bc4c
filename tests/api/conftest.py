"""Shared fixtures for API tests."""

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from storefront.api.dependencies import (
    get_current_user,
    get_payment_gateway,
    get_shipment_adapter,
    reset_dependencies,
)
from storefront.application.checkout_service import reset_checkout_session_repository
from storefront.application.repositories import (
    InMemoryProductRepository,
    get_product_repository,
    reset_repositories,
)
from storefront.domain.value_objects import Money, Product, ProductCategory, User
from storefront.infrastructure.payment_gateway import SimulatedPaymentGateway
from storefront.infrastructure.shiprocket_client import InMemoryShipmentAdapter
from storefront.main import app

DEVICE_HEADERS = {"X-Device-ID": "device-1"}


@pytest.fixture(autouse=True)
def fresh_state() -> Iterator[None]:
    """Start every test with empty stores and no overrides."""
    reset_repositories()
    reset_checkout_session_repository()
    reset_dependencies()
    yield
    app.dependency_overrides.clear()
    reset_repositories()
    reset_checkout_session_repository()
    reset_dependencies()


@pytest.fixture
def gateway() -> SimulatedPaymentGateway:
    return SimulatedPaymentGateway(key_secret="test-secret")


@pytest.fixture
def shipments() -> InMemoryShipmentAdapter:
    return InMemoryShipmentAdapter()


@pytest.fixture
def adapters(gateway, shipments) -> None:
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_shipment_adapter] = lambda: shipments


@pytest.fixture
def client(adapters) -> TestClient:
    """Anonymous client on device-1."""
    app.dependency_overrides[get_current_user] = lambda: None
    return TestClient(app, headers=DEVICE_HEADERS)


@pytest.fixture
def auth_client(adapters, user) -> TestClient:
    """Client signed in as the shared test user, on device-1."""
    app.dependency_overrides[get_current_user] = lambda: user
    return TestClient(app, headers=DEVICE_HEADERS)


@pytest.fixture
def other_user() -> User:
    return User(id="user-2", email="ravi@example.com", full_name="Ravi Menon")


@pytest.fixture(autouse=True)
def catalog(fresh_state) -> InMemoryProductRepository:
    """The in-memory catalog the API reads, seeded with a few products."""
    repo = get_product_repository()
    repo.add(
        Product(
            id="tee-1",
            name="Cotton Tee",
            price=Money.from_decimal("200.00"),
            category=ProductCategory.CLOTHING,
            image_url="https://cdn.example.com/tee.jpg",
            stock_quantity=10,
            created_at=datetime(2026, 9, 1, tzinfo=timezone.utc),
        )
    )
    repo.add(
        Product(
            id="mug-1",
            name="Steel Mug",
            price=Money.from_decimal("350.00"),
            category=ProductCategory.HOME,
            stock_quantity=3,
            is_featured=True,
            created_at=datetime(2026, 9, 5, tzinfo=timezone.utc),
        )
    )
    repo.add(
        Product(
            id="lamp-1",
            name="Desk Lamp",
            price=Money.from_decimal("1200.00"),
            category=ProductCategory.HOME,
            stock_quantity=0,
            is_featured=True,
            created_at=datetime(2026, 9, 3, tzinfo=timezone.utc),
        )
    )
    return repo


@pytest.fixture
def add_tees():
    """Put catalog tees worth 200.00 each in the client's cart."""

    def add(client: TestClient, quantity: int = 2) -> None:
        response = client.post(
            "/cart/items", json={"product_id": "tee-1", "quantity": quantity}
        )
        assert response.status_code == 200

    return add

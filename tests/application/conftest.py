"""Fixtures for application service tests."""

from dataclasses import dataclass

import pytest

from storefront.application.auth import RequestAuthService
from storefront.application.cart_service import CartService, PersistenceStrategy
from storefront.application.checkout_service import CheckoutOrchestrator, CheckoutSession
from storefront.application.repositories import (
    InMemoryCartStore,
    InMemoryOrderRepository,
    InMemoryPaymentRepository,
)
from storefront.infrastructure.payment_gateway import SimulatedPaymentGateway
from storefront.infrastructure.shiprocket_client import InMemoryShipmentAdapter


@dataclass
class CheckoutHarness:
    """Orchestrator wired to in-memory collaborators."""

    orchestrator: CheckoutOrchestrator
    cart: CartService
    local: InMemoryCartStore
    orders: InMemoryOrderRepository
    payments: InMemoryPaymentRepository
    gateway: SimulatedPaymentGateway
    shipments: InMemoryShipmentAdapter
    session: CheckoutSession


@pytest.fixture
def harness(user) -> CheckoutHarness:
    """Checkout for a signed-in user on device-1."""
    auth = RequestAuthService(user)
    local = InMemoryCartStore()
    cart = CartService(
        auth=auth,
        strategy=PersistenceStrategy(local=local, remote=InMemoryCartStore()),
        device_id="device-1",
    )
    orders = InMemoryOrderRepository()
    payments = InMemoryPaymentRepository()
    gateway = SimulatedPaymentGateway(key_secret="test-secret")
    shipments = InMemoryShipmentAdapter()
    orchestrator = CheckoutOrchestrator(
        cart=cart,
        auth=auth,
        orders=orders,
        payments=payments,
        gateway=gateway,
        shipments=shipments,
    )
    return CheckoutHarness(
        orchestrator=orchestrator,
        cart=cart,
        local=local,
        orders=orders,
        payments=payments,
        gateway=gateway,
        shipments=shipments,
        session=CheckoutSession.create("device-1"),
    )

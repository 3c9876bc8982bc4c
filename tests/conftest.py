"""Shared fixtures for all tests."""

import pytest

from storefront.domain.entities import Cart, Order, OrderDraft
from storefront.domain.pricing import PricingPolicy
from storefront.domain.value_objects import Address, Money, ProductRef, User


@pytest.fixture
def user() -> User:
    """Signed-in customer."""
    return User(id="user-1", email="asha@example.com", full_name="Asha Rao", phone="9876543210")


@pytest.fixture
def address_fields() -> dict[str, str]:
    """Valid raw address form values."""
    return {
        "name": "Asha Rao",
        "phone": "9876543210",
        "address_line1": "12 MG Road",
        "address_line2": "Flat 4B",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
    }


@pytest.fixture
def address(address_fields) -> Address:
    return Address.from_dict(address_fields)


@pytest.fixture
def tshirt() -> ProductRef:
    """Product priced at 200.00."""
    return ProductRef(product_id="tee-1", name="Cotton Tee", unit_price=Money(20000))


@pytest.fixture
def mug() -> ProductRef:
    """Product priced at 150.00."""
    return ProductRef(product_id="mug-1", name="Steel Mug", unit_price=Money(15000))


@pytest.fixture
def cart(tshirt, address) -> Cart:
    """Cart with two tees (400.00) and a saved address."""
    cart = Cart()
    cart.add_item(tshirt, 2)
    cart.save_shipping_address(address)
    return cart


@pytest.fixture
def order(user, cart) -> Order:
    """Pending order priced from the cart fixture."""
    totals = PricingPolicy().calculate(cart.subtotal)
    order = Order.from_draft(OrderDraft.from_cart(user, cart, totals))
    order.collect_events()
    return order

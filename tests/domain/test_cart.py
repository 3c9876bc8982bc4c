"""Tests for the Cart entity."""

import pytest

from storefront.domain.entities import Cart, CartLine
from storefront.domain.exceptions import (
    CurrencyMismatchError,
    InvalidQuantityError,
    OutOfStockError,
)
from storefront.domain.value_objects import Money, ProductRef


class TestCartLine:
    """Tests for CartLine."""

    def test_line_total(self, tshirt) -> None:
        line = CartLine.for_product(tshirt, 3)

        assert line.line_total == Money(60000)

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, tshirt, quantity) -> None:
        with pytest.raises(InvalidQuantityError):
            CartLine.for_product(tshirt, quantity)


class TestAddItem:
    """Tests for adding products."""

    def test_adding_same_product_merges_lines(self, tshirt) -> None:
        """Adding 2 then 3 of a product gives one line of 5."""
        cart = Cart()
        cart.add_item(tshirt, 2)
        cart.add_item(tshirt, 3)

        assert len(cart.lines) == 1
        assert cart.lines["tee-1"].quantity == 5

    def test_distinct_products_get_distinct_lines(self, tshirt, mug) -> None:
        cart = Cart()
        cart.add_item(tshirt, 1)
        cart.add_item(mug, 2)

        assert list(cart.lines) == ["tee-1", "mug-1"]
        assert cart.item_count == 3

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity_ignored(self, tshirt, quantity) -> None:
        cart = Cart()

        changed = cart.add_item(tshirt, quantity)

        assert not changed
        assert cart.is_empty

    def test_other_currency_rejected_without_change(self, cart) -> None:
        imported = ProductRef(product_id="usd-1", name="Import Tee", unit_price=Money(900, "USD"))

        with pytest.raises(CurrencyMismatchError):
            cart.add_item(imported, 1)

        assert list(cart.lines) == ["tee-1"]
        assert cart.subtotal == Money(40000)

    def test_any_currency_into_empty_cart(self) -> None:
        cart = Cart()
        imported = ProductRef(product_id="usd-1", name="Import", unit_price=Money(900, "USD"))

        cart.add_item(imported, 1)

        assert cart.subtotal == Money(900, "USD")

    def test_merge_limited_by_stock(self, cart, tshirt) -> None:
        with pytest.raises(OutOfStockError) as exc:
            cart.add_item(tshirt, 2, available=3)

        assert exc.value.details == {"product_id": "tee-1", "available": 3}
        assert cart.lines["tee-1"].quantity == 2

    def test_up_to_stock_allowed(self, cart, tshirt) -> None:
        assert cart.add_item(tshirt, 1, available=3)
        assert cart.lines["tee-1"].quantity == 3

    def test_sold_out_message(self, tshirt) -> None:
        with pytest.raises(OutOfStockError, match="out of stock"):
            Cart().add_item(tshirt, 1, available=0)


class TestUpdateQuantity:
    """Tests for setting a line's quantity."""

    def test_sets_quantity(self, cart) -> None:
        assert cart.update_quantity("tee-1", 7)
        assert cart.lines["tee-1"].quantity == 7

    def test_quantity_limited_by_stock(self, cart) -> None:
        with pytest.raises(OutOfStockError):
            cart.update_quantity("tee-1", 7, available=5)

        assert cart.lines["tee-1"].quantity == 2

    def test_removal_ignores_stock(self, cart) -> None:
        assert cart.update_quantity("tee-1", 0, available=0)
        assert cart.is_empty

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_zero_or_less_removes_line(self, cart, quantity) -> None:
        assert cart.update_quantity("tee-1", quantity)
        assert "tee-1" not in cart.lines

    def test_unknown_product_ignored(self, cart) -> None:
        assert not cart.update_quantity("nope", 3)

    def test_same_quantity_is_not_a_change(self, cart) -> None:
        assert not cart.update_quantity("tee-1", 2)


class TestDerivedViews:
    """Tests for subtotal and counts."""

    def test_subtotal_sums_line_totals(self, tshirt, mug) -> None:
        cart = Cart()
        cart.add_item(tshirt, 2)
        cart.add_item(mug, 1)

        assert cart.subtotal == Money(55000)

    def test_empty_cart_subtotal_is_zero(self) -> None:
        assert Cart().subtotal.is_zero()

    def test_snapshot_is_a_copy(self, cart, mug) -> None:
        snapshot = cart.snapshot_lines()
        cart.add_item(mug, 1)

        assert len(snapshot) == 1


class TestClear:
    """Tests for clearing the cart."""

    def test_clear_keeps_address(self, cart, address) -> None:
        cart.clear()

        assert cart.is_empty
        assert cart.shipping_address == address


class TestSerialization:
    """Tests for stored snapshots."""

    def test_round_trip(self, cart) -> None:
        restored = Cart.from_dict(cart.to_dict())

        assert restored.lines == cart.lines
        assert restored.shipping_address == cart.shipping_address

    def test_from_dict_skips_non_positive_lines(self) -> None:
        cart = Cart.from_dict(
            {
                "items": [
                    {"product_id": "a", "product_name": "A", "price": "10.00", "quantity": 0},
                    {"product_id": "b", "product_name": "B", "price": "10.00", "quantity": 2},
                ]
            }
        )

        assert list(cart.lines) == ["b"]

    def test_from_dict_merges_duplicate_products(self) -> None:
        cart = Cart.from_dict(
            {
                "items": [
                    {"product_id": "a", "product_name": "A", "price": "10.00", "quantity": 2},
                    {"product_id": "a", "product_name": "A", "price": "10.00", "quantity": 3},
                ]
            }
        )

        assert cart.lines["a"].quantity == 5

    def test_from_dict_drops_invalid_address(self, address_fields) -> None:
        address_fields["pincode"] = "x"

        cart = Cart.from_dict({"items": [], "shipping_address": address_fields})

        assert cart.shipping_address is None

    def test_from_empty_snapshot(self) -> None:
        assert Cart.from_dict(None).is_empty

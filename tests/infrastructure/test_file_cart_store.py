"""Tests for the file-backed cart tier."""

import pytest

from storefront.application.cart_service import PersistenceStrategy
from storefront.application.repositories import InMemoryCartStore
from storefront.domain.exceptions import PersistenceError
from storefront.infrastructure.file_cart_store import FileCartStore


@pytest.mark.asyncio
async def test_missing_cart_is_none(tmp_path) -> None:
    assert await FileCartStore(tmp_path).load("device-1") is None


@pytest.mark.asyncio
async def test_save_and_load(tmp_path, cart) -> None:
    store = FileCartStore(tmp_path / "carts")

    await store.save("device-1", cart)
    loaded = await store.load("device-1")

    assert loaded.lines == cart.lines
    assert loaded.shipping_address == cart.shipping_address
    assert not list((tmp_path / "carts").glob("*.tmp"))


@pytest.mark.asyncio
async def test_unsafe_key_stays_in_directory(tmp_path, cart) -> None:
    store = FileCartStore(tmp_path)

    await store.save("../escape", cart)

    assert [p.name for p in tmp_path.iterdir()] == [".._escape.json"]


@pytest.mark.asyncio
async def test_corrupt_file_raises(tmp_path) -> None:
    (tmp_path / "device-1.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError):
        await FileCartStore(tmp_path).load("device-1")


@pytest.mark.asyncio
async def test_malformed_snapshot_raises_persistence_error(tmp_path) -> None:
    (tmp_path / "device-1.json").write_text(
        '{"items": [{"product_id": "p", "price": "1", "quantity": "two"}]}', encoding="utf-8"
    )

    with pytest.raises(PersistenceError):
        await FileCartStore(tmp_path).load("device-1")


@pytest.mark.asyncio
async def test_malformed_snapshot_falls_back_to_empty_cart(tmp_path) -> None:
    (tmp_path / "device-1.json").write_text(
        '{"items": [{"product_id": "p", "price": "abc", "quantity": 1}]}', encoding="utf-8"
    )
    strategy = PersistenceStrategy(local=FileCartStore(tmp_path), remote=InMemoryCartStore())

    cart = await strategy.load("device-1", None)

    assert cart.is_empty

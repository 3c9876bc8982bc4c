"""Tests for the catalog service and the in-memory catalog."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from storefront.application.catalog_service import MAX_PAGE_SIZE, CatalogService
from storefront.application.ports import ProductRepository
from storefront.application.repositories import InMemoryProductRepository
from storefront.domain.exceptions import PersistenceError
from storefront.domain.value_objects import Money, Product, ProductCategory

LISTED = datetime(2026, 9, 1, tzinfo=timezone.utc)


def make_product(index: int, **overrides) -> Product:
    fields = {
        "id": f"p-{index}",
        "name": f"Product {index}",
        "price": Money.from_decimal("100.00"),
        "stock_quantity": 5,
        "created_at": LISTED + timedelta(days=index),
    }
    fields.update(overrides)
    return Product(**fields)


@pytest.fixture
def repo() -> InMemoryProductRepository:
    return InMemoryProductRepository(
        [
            make_product(1, name="Cotton Kurta", category=ProductCategory.CLOTHING),
            make_product(2, name="Silk Kurta", category=ProductCategory.CLOTHING, is_featured=True),
            make_product(3, name="Kettle", category=ProductCategory.HOME, is_featured=True),
            make_product(4, name="Old Stock", created_at=None),
        ]
    )


@pytest.fixture
def service(repo) -> CatalogService:
    return CatalogService(repo)


class TestListProducts:
    """Tests for catalog listings."""

    @pytest.mark.asyncio
    async def test_newest_first_undated_last(self, service) -> None:
        result = await service.list_products()

        assert [p.id for p in result.products] == ["p-3", "p-2", "p-1", "p-4"]
        assert result.total == 4

    @pytest.mark.asyncio
    async def test_category_and_search_combine(self, service) -> None:
        result = await service.list_products(ProductCategory.CLOTHING, search="silk")

        assert [p.id for p in result.products] == ["p-2"]
        assert result.total == 1

    @pytest.mark.asyncio
    async def test_blank_search_ignored(self, service) -> None:
        result = await service.list_products(search="   ")

        assert result.total == 4

    @pytest.mark.asyncio
    async def test_page_reports_total(self, service) -> None:
        result = await service.list_products(limit=2, offset=0)

        assert len(result.products) == 2
        assert result.total == 4
        assert result.has_more

    @pytest.mark.asyncio
    async def test_offset_past_end(self, service) -> None:
        result = await service.list_products(offset=10)

        assert result.products == []
        assert result.total == 4
        assert not result.has_more

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit, offset", [(0, 0), (MAX_PAGE_SIZE + 1, 0), (10, -1)])
    async def test_bad_page_rejected(self, service, limit, offset) -> None:
        result = await service.list_products(limit=limit, offset=offset)

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_store_failure_reported(self) -> None:
        repo = AsyncMock(spec=ProductRepository)
        repo.search.side_effect = PersistenceError("search products", "timeout")

        result = await CatalogService(repo).list_products()

        assert result.error_code == "PERSISTENCE_ERROR"


class TestFeatured:
    """Tests for featured products."""

    @pytest.mark.asyncio
    async def test_featured_newest_first(self, service) -> None:
        result = await service.featured_products()

        assert [p.id for p in result.products] == ["p-3", "p-2"]

    @pytest.mark.asyncio
    async def test_limit_clamped(self, service) -> None:
        result = await service.featured_products(limit=0)

        assert [p.id for p in result.products] == ["p-3"]


class TestGetProduct:
    """Tests for single product lookup."""

    @pytest.mark.asyncio
    async def test_found(self, service) -> None:
        result = await service.get_product("p-1")

        assert result.product.name == "Cotton Kurta"

    @pytest.mark.asyncio
    async def test_missing(self, service) -> None:
        result = await service.get_product("p-99")

        assert not result.success
        assert result.error_code == "PRODUCT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_store_failure_reported(self) -> None:
        repo = AsyncMock(spec=ProductRepository)
        repo.get.side_effect = PersistenceError("get product", "timeout")

        result = await CatalogService(repo).get_product("p-1")

        assert result.error_code == "PERSISTENCE_ERROR"

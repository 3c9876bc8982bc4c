"""Product catalog service.

Serves the home, category and product screens and is the only place the
cart learns a product's price from.
"""

from dataclasses import dataclass, field

import structlog

from storefront.application.ports import ProductQuery, ProductRepository
from storefront.domain.exceptions import PersistenceError, ProductNotFoundError
from storefront.domain.value_objects import Product, ProductCategory

logger = structlog.get_logger()

MAX_PAGE_SIZE = 100
DEFAULT_FEATURED_LIMIT = 10


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class ProductPageResult:
    """One page of a catalog listing."""

    products: list[Product] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0
    success: bool = True
    error: str | None = None
    error_code: str | None = None

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.products) < self.total


@dataclass
class ProductResult:
    """Result of looking up one product."""

    product: Product | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None


# ============================================================================
# Catalog Service
# ============================================================================


class CatalogService:
    """Application service for browsing the product catalog."""

    def __init__(self, products: ProductRepository, request_id: str | None = None) -> None:
        self.products = products
        self.request_id = request_id

    async def list_products(
        self,
        category: ProductCategory | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ProductPageResult:
        """List products newest first, optionally by category or name.

        Args:
            category: Only this category.
            search: Case-insensitive name substring. Blank means no filter.
            limit: Page size, 1 to MAX_PAGE_SIZE.
            offset: Products to skip.
        """
        if not 1 <= limit <= MAX_PAGE_SIZE or offset < 0:
            return ProductPageResult(
                success=False,
                error=f"limit must be 1-{MAX_PAGE_SIZE} and offset must not be negative",
                error_code="VALIDATION_ERROR",
            )
        query = ProductQuery(
            category=category,
            search=(search or "").strip() or None,
            limit=limit,
            offset=offset,
        )
        try:
            products, total = await self.products.search(query)
        except PersistenceError as e:
            logger.error("Failed to list products", error=e.message, request_id=self.request_id)
            return ProductPageResult(success=False, error=e.message, error_code="PERSISTENCE_ERROR")
        return ProductPageResult(products=products, total=total, limit=limit, offset=offset)

    async def featured_products(self, limit: int = DEFAULT_FEATURED_LIMIT) -> ProductPageResult:
        """Featured products for the home screen, newest first."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        try:
            products = await self.products.featured(limit)
        except PersistenceError as e:
            logger.error(
                "Failed to list featured products", error=e.message, request_id=self.request_id
            )
            return ProductPageResult(success=False, error=e.message, error_code="PERSISTENCE_ERROR")
        return ProductPageResult(products=products, total=len(products), limit=limit)

    async def get_product(self, product_id: str) -> ProductResult:
        try:
            product = await self.products.get(product_id)
        except PersistenceError as e:
            logger.error(
                "Failed to load product",
                product_id=product_id,
                error=e.message,
                request_id=self.request_id,
            )
            return ProductResult(success=False, error=e.message, error_code="PERSISTENCE_ERROR")
        if product is None:
            return ProductResult(
                success=False,
                error=ProductNotFoundError(product_id).message,
                error_code="PRODUCT_NOT_FOUND",
            )
        return ProductResult(product=product)

"""Catalog seed file for the in-memory backend.

The file is a JSON array of product rows shaped like the products table,
prices in major units.
"""

import json
from pathlib import Path

import structlog

from storefront.application.repositories import InMemoryProductRepository
from storefront.domain.entities import SNAPSHOT_ERRORS
from storefront.domain.exceptions import MoneyError, PersistenceError
from storefront.domain.value_objects import Product

logger = structlog.get_logger()


def load_catalog_file(path: str | Path, currency: str) -> list[Product]:
    """Read every product in a seed file.

    Raises:
        PersistenceError: If the file is missing, is not JSON, or holds a
            row that is not a valid product.
    """
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            rows = json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError("load catalog", str(e)) from e
    if not isinstance(rows, list):
        raise PersistenceError("load catalog", "expected a JSON array of products")

    products = []
    for index, row in enumerate(rows):
        try:
            products.append(Product.from_dict(row, currency))
        except (*SNAPSHOT_ERRORS, MoneyError) as e:
            raise PersistenceError("load catalog", f"row {index}: {e}") from e
    return products


def seed_catalog(repo: InMemoryProductRepository, path: str | Path, currency: str) -> int:
    """Add the seed file's products to repo. Returns how many were added."""
    products = load_catalog_file(path, currency)
    for product in products:
        repo.add(product)
    logger.info("Catalog seeded", path=str(path), product_count=len(products))
    return len(products)

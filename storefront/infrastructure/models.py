"""SQLAlchemy models for database tables.

Provides ORM models for products, orders, payments and carts.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB

from storefront.infrastructure.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Order Models
# ============================================================================


class OrderModel(Base):
    """Order model for database persistence.

    Mirrors the Order aggregate field for field. Items and the shipping
    address are stored as JSON snapshots.
    """

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    customer_email = Column(String(255), nullable=False)
    customer_name = Column(String(255), nullable=False)
    shipping_address = Column(JSONType, nullable=False)
    items = Column(JSONType, nullable=False)

    # Totals
    subtotal_amount = Column(Numeric(12, 2), nullable=False)
    shipping_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")

    # Lifecycle
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_method = Column(String(20), nullable=True)
    payment_status = Column(String(20), nullable=True)
    payment_gateway_order_id = Column(String(100), nullable=True, index=True)
    shipment_id = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


class PaymentModel(Base):
    """Payment attempt model.

    One row per attempt; retries add rows rather than rewriting old ones.
    """

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    payment_method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_key = Column(String(100), nullable=True)
    gateway_payment_id = Column(String(100), nullable=True)
    failure_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


# ============================================================================
# Cart Models
# ============================================================================


class CartModel(Base):
    """Remote cart record, one per signed-in user."""

    __tablename__ = "carts"

    user_id = Column(String(36), primary_key=True)
    items = Column(JSONType, nullable=False, default=list)
    shipping_address = Column(JSONType, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )


# ============================================================================
# Catalog Models
# ============================================================================


class ProductModel(Base):
    """Catalog product. Read-only for this service."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    image_url = Column(Text, nullable=False, default="")
    category = Column(String(20), nullable=False, default="other", index=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

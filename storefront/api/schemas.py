"""API schemas for the storefront API.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class MoneySchema(BaseModel):
    """Money representation."""

    amount: int = Field(..., description="Amount in smallest currency unit (paise)")
    currency: str = Field(default="INR", description="Currency code")
    display: str = Field(..., description="Amount in major units, e.g. '522.00'")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    redirect: str | None = Field(
        default=None, description="Screen the client should navigate to"
    )
    actions: list[str] = Field(
        default_factory=list, description="Actions the client should offer"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class AddressSchema(BaseModel):
    """Shipping address as entered by the customer.

    Fields are plain strings so that validation messages come back per
    field rather than as a schema error.
    """

    name: str = Field(default="", description="Recipient name")
    phone: str = Field(default="", description="10-digit phone number")
    address_line1: str = Field(default="", description="Street address")
    address_line2: str | None = Field(default=None, description="Apartment, landmark")
    city: str = Field(default="")
    state: str = Field(default="")
    pincode: str = Field(default="", description="6-digit postal code")
    country: str = Field(default="India")


# ============================================================================
# Catalog Schemas
# ============================================================================


class ProductSchema(BaseModel):
    """A catalog product."""

    id: str
    name: str
    description: str
    price: MoneySchema
    image_url: str
    category: str
    stock_quantity: int
    in_stock: bool
    is_featured: bool
    created_at: datetime | None = None


class ProductListResponse(BaseModel):
    """One page of a catalog listing."""

    products: list[ProductSchema]
    total: int = Field(..., description="Matches across all pages")
    limit: int
    offset: int
    has_more: bool


# ============================================================================
# Cart Schemas
# ============================================================================


class CartItemAddRequest(BaseModel):
    """Request to add a product to the cart.

    Name, price and image come from the catalog, never from the client.
    """

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, description="Units to add; below 1 is ignored")


class CartItemUpdateRequest(BaseModel):
    """Request to set a line's quantity. Zero or less removes the line."""

    quantity: int


class CartLineSchema(BaseModel):
    """One cart or order line."""

    product_id: str
    product_name: str
    image_url: str
    quantity: int
    unit_price: MoneySchema
    line_total: MoneySchema


class CartResponse(BaseModel):
    """Cart contents and derived totals."""

    items: list[CartLineSchema]
    item_count: int
    subtotal: MoneySchema
    shipping_address: AddressSchema | None = None


# ============================================================================
# Order Schemas
# ============================================================================


class OrderTotalsSchema(BaseModel):
    """Priced totals of an order."""

    subtotal: MoneySchema
    shipping: MoneySchema
    tax: MoneySchema
    discount: MoneySchema
    total: MoneySchema


class StatusPresentationSchema(BaseModel):
    """Icon and colour for an order status badge."""

    icon: str
    color: str


class OrderResponse(BaseModel):
    """Full order details."""

    id: str
    user_id: str
    customer_email: str
    customer_name: str
    shipping_address: AddressSchema
    items: list[CartLineSchema]
    totals: OrderTotalsSchema
    status: str
    status_presentation: StatusPresentationSchema
    payment_method: str | None = None
    payment_status: str | None = None
    payment_gateway_order_id: str | None = None
    shipment_id: str | None = None
    created_at: datetime
    updated_at: datetime


class OrderSummarySchema(BaseModel):
    """Order summary for the history list."""

    id: str
    status: str
    status_presentation: StatusPresentationSchema
    payment_method: str | None = None
    payment_status: str | None = None
    item_count: int
    total: MoneySchema
    created_at: datetime


class OrdersListResponse(BaseModel):
    """The user's orders, most recent first."""

    orders: list[OrderSummarySchema]
    total: int


class TrackingActivitySchema(BaseModel):
    """One carrier scan."""

    date: str
    activity: str
    location: str = ""


class TrackingSchema(BaseModel):
    """Latest carrier tracking data."""

    shipment_id: str
    current_status: str
    status_date: datetime | None = None
    activities: list[TrackingActivitySchema] = Field(default_factory=list)


class TrackingResponse(BaseModel):
    """Order status together with carrier tracking, when shipped."""

    order_id: str
    status: str
    status_presentation: StatusPresentationSchema
    shipment_id: str | None = None
    tracking: TrackingSchema | None = None


class LabelResponse(BaseModel):
    """Shipping label location."""

    order_id: str
    shipment_id: str
    label_url: str


# ============================================================================
# Checkout Schemas
# ============================================================================


class CheckoutSessionCreateRequest(BaseModel):
    """Request to open a checkout session.

    When resume_pending is set and the signed-in user has an order still
    awaiting payment, the session picks that order up.
    """

    resume_pending: bool = False


class PaymentStepRequest(BaseModel):
    """Request to reach the payment step."""

    discount: Decimal | None = Field(
        default=None, ge=0, description="Discount in major units, supplied by the caller"
    )


class PaymentStartRequest(BaseModel):
    """Request to start paying for the session's order."""

    method: str = Field(..., description="CARD, UPI, NETBANKING, WALLET or COD")


class PaymentVerifyRequest(BaseModel):
    """Gateway callback values forwarded by the client."""

    gateway_payment_id: str = Field(..., min_length=1)
    gateway_order_id: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)


class PaymentAbandonRequest(BaseModel):
    """Request to record that the gateway UI was closed."""

    reason: str = Field(default="dismissed")


class ResumeOrderRequest(BaseModel):
    """Request to attach a pending order to the session."""

    order_id: str = Field(..., min_length=1)


class GatewaySessionSchema(BaseModel):
    """Values the client needs to open the gateway UI."""

    gateway_order_id: str
    gateway_key: str
    amount: int = Field(..., description="Amount in smallest currency unit")
    currency: str
    receipt: str
    prefill: dict[str, Any] = Field(default_factory=dict)


class CheckoutSessionResponse(BaseModel):
    """Checkout session state after a call."""

    id: str
    step: str
    order: OrderResponse | None = None
    payment_id: str | None = None
    payment_status: str | None = None
    gateway_session: GatewaySessionSchema | None = None
    redirect: str | None = None
    actions: list[str] = Field(default_factory=list)
    failure_reason: str | None = None
    shipment_pending: bool = False
    created_at: datetime
    updated_at: datetime


# ============================================================================
# OTP Schemas
# ============================================================================


class OtpSendRequest(BaseModel):
    """Request to send a verification code."""

    phone: str


class OtpVerifyRequest(BaseModel):
    """Request to check a verification code."""

    phone: str
    code: str


class OtpResponse(BaseModel):
    """Outcome of an OTP call."""

    success: bool
    message: str | None = None

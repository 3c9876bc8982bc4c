"""FastAPI dependency providers.

Adapters are chosen from settings once and shared across requests;
services are built per request around the resolved user and device.
Tests swap any provider through app.dependency_overrides.
"""

from typing import Annotated, Any

import structlog
from fastapi import Depends, Header, Request

from storefront.api.errors import raise_error
from storefront.application.auth import RequestAuthService
from storefront.application.catalog_service import CatalogService
from storefront.application.cart_service import CartService, PersistenceStrategy
from storefront.application.checkout_service import (
    CheckoutOrchestrator,
    get_checkout_orchestrator,
)
from storefront.application.order_service import OrderQueryService
from storefront.application.otp_service import PhoneVerificationService
from storefront.application.ports import (
    AuthService,
    OrderRepository,
    OtpChannel,
    PaymentGatewayAdapter,
    PaymentRepository,
    ProductRepository,
    ShipmentAdapter,
)
from storefront.application.repositories import (
    InMemoryCartStore,
    get_order_repository,
    get_payment_repository,
    get_product_repository,
)
from storefront.domain.pricing import PricingPolicy
from storefront.domain.value_objects import User
from storefront.infrastructure.auth_client import SupabaseAuthClient
from storefront.infrastructure.config import settings
from storefront.infrastructure.file_cart_store import FileCartStore
from storefront.infrastructure.otp_client import TwilioOtpClient
from storefront.infrastructure.payment_gateway import RazorpayGateway, SimulatedPaymentGateway
from storefront.infrastructure.shiprocket_client import InMemoryShipmentAdapter, ShiprocketClient

# Shared adapter instances, created on first use
_auth_client: SupabaseAuthClient | None = None
_cart_strategy: PersistenceStrategy | None = None
_gateway: PaymentGatewayAdapter | None = None
_shipments: ShipmentAdapter | None = None
_otp_channel: OtpChannel | None = None


def _use_database() -> bool:
    return settings.storage_backend == "database"


def _session_factory() -> Any:
    from storefront.infrastructure.database import get_session_factory

    return get_session_factory()


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


# ============================================================================
# Identity
# ============================================================================


def get_auth_client() -> SupabaseAuthClient:
    global _auth_client
    if _auth_client is None:
        _auth_client = SupabaseAuthClient()
    return _auth_client


async def get_current_user(
    request: Request,
    auth_client: Annotated[SupabaseAuthClient, Depends(get_auth_client)],
    authorization: Annotated[str | None, Header()] = None,
) -> User | None:
    """Resolve the bearer token, if any, to a user.

    No Authorization header means an anonymous request. A header that is
    malformed or carries a rejected token is a 401. A resolved user is
    bound to the log context and recorded on request.state for the access
    log.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise_error(
            "AUTH_REQUIRED",
            "Invalid Authorization header format. Use 'Bearer <token>'",
        )

    user = await auth_client.resolve(token.strip())
    if user is None:
        raise_error("AUTH_REQUIRED", "Invalid or expired access token")

    request.state.user_id = user.id
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


def get_auth_service(
    user: Annotated[User | None, Depends(get_current_user)],
) -> AuthService:
    return RequestAuthService(user)


def get_device_id(
    user: Annotated[User | None, Depends(get_current_user)],
    x_device_id: Annotated[str | None, Header()] = None,
) -> str:
    """Key for the local cart tier.

    Falls back to a per-user key for signed-in clients that send no device
    header.
    """
    if x_device_id and x_device_id.strip():
        return x_device_id.strip()
    if user is not None:
        return f"user-{user.id}"
    raise_error("DEVICE_ID_REQUIRED", "X-Device-ID header is required")


# ============================================================================
# Adapters
# ============================================================================


def get_order_repo() -> OrderRepository:
    if _use_database():
        from storefront.infrastructure.sql_repositories import SqlAlchemyOrderRepository

        return SqlAlchemyOrderRepository(_session_factory())
    return get_order_repository()


def get_payment_repo() -> PaymentRepository:
    if _use_database():
        from storefront.infrastructure.sql_repositories import SqlAlchemyPaymentRepository

        return SqlAlchemyPaymentRepository(_session_factory())
    return get_payment_repository()


def get_product_repo() -> ProductRepository:
    if _use_database():
        from storefront.infrastructure.sql_repositories import SqlAlchemyProductRepository

        return SqlAlchemyProductRepository(_session_factory())
    return get_product_repository()


def get_cart_strategy() -> PersistenceStrategy:
    """Two-tier cart persistence.

    With the database backend the device tier is a JSON file per device
    and the user tier is the carts table; otherwise both live in memory.
    """
    global _cart_strategy
    if _cart_strategy is None:
        if _use_database():
            from storefront.infrastructure.sql_repositories import SqlAlchemyCartStore

            _cart_strategy = PersistenceStrategy(
                local=FileCartStore(settings.cart_storage_dir),
                remote=SqlAlchemyCartStore(_session_factory()),
            )
        else:
            _cart_strategy = PersistenceStrategy(
                local=InMemoryCartStore(), remote=InMemoryCartStore()
            )
    return _cart_strategy


def get_payment_gateway() -> PaymentGatewayAdapter:
    global _gateway
    if _gateway is None:
        if settings.payment_gateway == "razorpay":
            _gateway = RazorpayGateway()
        else:
            _gateway = SimulatedPaymentGateway()
    return _gateway


def get_shipment_adapter() -> ShipmentAdapter:
    global _shipments
    if _shipments is None:
        if settings.shipment_backend == "shiprocket":
            _shipments = ShiprocketClient()
        else:
            _shipments = InMemoryShipmentAdapter()
    return _shipments


def get_otp_channel() -> OtpChannel:
    global _otp_channel
    if _otp_channel is None:
        _otp_channel = TwilioOtpClient()
    return _otp_channel


def get_pricing_policy() -> PricingPolicy:
    return PricingPolicy.from_amounts(
        settings.free_shipping_threshold,
        settings.flat_shipping_fee,
        settings.tax_rate,
        currency=settings.currency,
    )


async def close_adapters() -> None:
    """Close HTTP clients held by the shared adapters."""
    for adapter in (_auth_client, _gateway, _shipments, _otp_channel):
        close = getattr(adapter, "close", None)
        if close is not None:
            await close()


def reset_dependencies() -> None:
    """Drop the shared adapters. For tests."""
    global _auth_client, _cart_strategy, _gateway, _shipments, _otp_channel
    _auth_client = None
    _cart_strategy = None
    _gateway = None
    _shipments = None
    _otp_channel = None


# ============================================================================
# Services
# ============================================================================


def get_catalog_service(
    products: Annotated[ProductRepository, Depends(get_product_repo)],
    request_id: Annotated[str | None, Depends(get_request_id)],
) -> CatalogService:
    return CatalogService(products, request_id=request_id)


def get_cart_service(
    auth: Annotated[AuthService, Depends(get_auth_service)],
    device_id: Annotated[str, Depends(get_device_id)],
    strategy: Annotated[PersistenceStrategy, Depends(get_cart_strategy)],
    request_id: Annotated[str | None, Depends(get_request_id)],
) -> CartService:
    return CartService(auth=auth, strategy=strategy, device_id=device_id, request_id=request_id)


def get_orchestrator(
    cart: Annotated[CartService, Depends(get_cart_service)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    orders: Annotated[OrderRepository, Depends(get_order_repo)],
    payments: Annotated[PaymentRepository, Depends(get_payment_repo)],
    gateway: Annotated[PaymentGatewayAdapter, Depends(get_payment_gateway)],
    shipments: Annotated[ShipmentAdapter, Depends(get_shipment_adapter)],
    pricing: Annotated[PricingPolicy, Depends(get_pricing_policy)],
    request_id: Annotated[str | None, Depends(get_request_id)],
) -> CheckoutOrchestrator:
    return get_checkout_orchestrator(
        cart=cart,
        auth=auth,
        orders=orders,
        payments=payments,
        gateway=gateway,
        shipments=shipments,
        pricing=pricing,
        request_id=request_id,
    )


def get_order_query_service(
    orders: Annotated[OrderRepository, Depends(get_order_repo)],
    shipments: Annotated[ShipmentAdapter, Depends(get_shipment_adapter)],
    request_id: Annotated[str | None, Depends(get_request_id)],
) -> OrderQueryService:
    return OrderQueryService(orders=orders, shipments=shipments, request_id=request_id)


def get_phone_verification_service(
    channel: Annotated[OtpChannel, Depends(get_otp_channel)],
    request_id: Annotated[str | None, Depends(get_request_id)],
) -> PhoneVerificationService:
    return PhoneVerificationService(
        channel=channel,
        country_code=settings.otp_country_code,
        request_id=request_id,
    )

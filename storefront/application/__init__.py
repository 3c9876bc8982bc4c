"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure.
"""

from storefront.application.auth import RequestAuthService
from storefront.application.cart_service import CartService, PersistenceStrategy
from storefront.application.catalog_service import CatalogService
from storefront.application.checkout_service import (
    CheckoutOrchestrator,
    CheckoutResult,
    CheckoutSession,
    Redirect,
    UserAction,
    get_checkout_orchestrator,
    get_checkout_session_repository,
)
from storefront.application.order_service import OrderQueryService
from storefront.application.otp_service import PhoneVerificationService
from storefront.application.presentation import StatusPresentation, status_presentation

__all__ = [
    "CartService",
    "CatalogService",
    "CheckoutOrchestrator",
    "CheckoutResult",
    "CheckoutSession",
    "OrderQueryService",
    "PersistenceStrategy",
    "PhoneVerificationService",
    "Redirect",
    "RequestAuthService",
    "StatusPresentation",
    "UserAction",
    "get_checkout_orchestrator",
    "get_checkout_session_repository",
    "status_presentation",
]

"""API layer module.

Contains FastAPI routers and request/response schemas.
"""

from storefront.api.cart import router as cart_router
from storefront.api.checkout import router as checkout_router
from storefront.api.health import router as health_router
from storefront.api.orders import router as orders_router
from storefront.api.otp import router as otp_router
from storefront.api.products import router as products_router

__all__ = [
    "cart_router",
    "checkout_router",
    "health_router",
    "orders_router",
    "otp_router",
    "products_router",
]

"""API middleware for the storefront API.

Provides:
- Request context (request ID, device ID and signed-in user) for logs
- Standard error bodies for exceptions no route handled
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.api.errors import error_response
from storefront.domain.exceptions import (
    DomainError,
    GatewayError,
    PersistenceError,
    ShipmentError,
)

logger = structlog.get_logger()


# ============================================================================
# Request Context Middleware
# ============================================================================


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind per-request identifiers to the log context.

    The request ID is taken from X-Request-ID or generated, stored on
    request.state and echoed in the response. The X-Device-ID header, when
    present, is bound as device_id so cart and checkout logs can be
    followed per device. The user ID is recorded by the auth dependency on
    request.state and added to the access log line.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    DEVICE_ID_HEADER = "X-Device-ID"

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(self.REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        context = {"request_id": request_id}
        device_id = (request.headers.get(self.DEVICE_ID_HEADER) or "").strip()
        if device_id:
            context["device_id"] = device_id
        structlog.contextvars.bind_contextvars(**context)

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            status_code = getattr(response, "status_code", 500)
            log = logger.warning if status_code >= 500 else logger.info
            log(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                user_id=getattr(request.state, "user_id", None),
            )
            structlog.contextvars.clear_contextvars()

        response.headers[self.REQUEST_ID_HEADER] = request_id
        return response


# ============================================================================
# Error Handling Middleware
# ============================================================================

# Domain errors that can escape a route, most specific first
ESCAPED_ERRORS: tuple[tuple[type[DomainError], str, int, str], ...] = (
    (
        PersistenceError,
        "PERSISTENCE_ERROR",
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Storage is temporarily unavailable",
    ),
    (
        GatewayError,
        "GATEWAY_ERROR",
        status.HTTP_502_BAD_GATEWAY,
        "Payment service is temporarily unavailable",
    ),
    (
        ShipmentError,
        "SHIPMENT_ERROR",
        status.HTTP_502_BAD_GATEWAY,
        "Shipping service is temporarily unavailable",
    ),
)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn exceptions that escaped a route into the standard error body.

    Storage and carrier failures keep their own error code so clients can
    retry; anything else is an INTERNAL_ERROR.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            for error_type, error_code, status_code, message in ESCAPED_ERRORS:
                if isinstance(e, error_type):
                    logger.error(
                        "Unhandled service error",
                        path=request.url.path,
                        error_code=error_code,
                        error=str(e),
                    )
                    return error_response(request, status_code, error_code, message)

            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return error_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "INTERNAL_ERROR",
                "An internal error occurred",
            )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    # Error handling (inside the request context so the body carries the ID)
    app.add_middleware(ErrorHandlerMiddleware)

    # Request context (outermost)
    app.add_middleware(RequestContextMiddleware)

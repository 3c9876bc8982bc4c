"""Mapping from service error codes to HTTP responses."""

from typing import Any, NoReturn

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

ERROR_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "AUTH_REQUIRED": status.HTTP_401_UNAUTHORIZED,
    "DEVICE_ID_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "INVALID_PAYMENT_METHOD": status.HTTP_400_BAD_REQUEST,
    "INVALID_AMOUNT": status.HTTP_400_BAD_REQUEST,
    "CART_EMPTY": status.HTTP_409_CONFLICT,
    "ADDRESS_REQUIRED": status.HTTP_409_CONFLICT,
    "INVALID_STATE": status.HTTP_409_CONFLICT,
    "CHECKOUT_IN_PROGRESS": status.HTTP_409_CONFLICT,
    "ORDER_NOT_RESUMABLE": status.HTTP_409_CONFLICT,
    "SHIPMENT_NOT_CREATED": status.HTTP_409_CONFLICT,
    "SESSION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PRODUCT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "OUT_OF_STOCK": status.HTTP_409_CONFLICT,
    "CURRENCY_MISMATCH": status.HTTP_409_CONFLICT,
    "PAYMENT_VERIFICATION_FAILED": status.HTTP_402_PAYMENT_REQUIRED,
    "GATEWAY_ERROR": status.HTTP_502_BAD_GATEWAY,
    "SHIPMENT_ERROR": status.HTTP_502_BAD_GATEWAY,
    "PERSISTENCE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    "CHECKOUT_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "INTERNAL_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Optional body keys passed through from an HTTPException detail
PASSTHROUGH_KEYS = ("redirect", "actions")


def status_for(error_code: str | None) -> int:
    return ERROR_STATUS.get(error_code or "", status.HTTP_400_BAD_REQUEST)


def field_details(field_errors: dict[str, str] | None) -> list[dict[str, str]]:
    """Turn a field -> message mapping into ErrorDetail entries."""
    return [{"field": name, "message": message} for name, message in (field_errors or {}).items()]


def raise_error(
    error_code: str | None,
    message: str | None,
    default_code: str = "ERROR",
    **extra: Any,
) -> NoReturn:
    """Raise an HTTPException carrying the standard error body.

    Args:
        error_code: Service error code, mapped to the HTTP status.
        message: Human-readable message.
        default_code: Code used when the service gave none.
        **extra: Additional body keys (details, redirect, actions).
    """
    code = error_code or default_code
    raise HTTPException(
        status_code=status_for(code),
        detail={"error_code": code, "message": message or "Request failed", **extra},
    )


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """Build the standard error body.

    Every error the API returns, whether raised by a route, rejected by
    validation or caught by the middleware, goes through here so the
    shape and the request ID stay the same.
    """
    content: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
        "details": details or [],
    }
    content.update({key: value for key, value in extra.items() if value})
    content["request_id"] = getattr(request.state, "request_id", None)
    return JSONResponse(status_code=status_code, content=content, headers=headers)

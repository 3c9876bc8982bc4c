"""Phone verification endpoints.

- POST /otp/send - send a one-time code
- POST /otp/verify - check a one-time code
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_phone_verification_service
from storefront.api.errors import field_details, raise_error
from storefront.api.schemas import ErrorResponse, OtpResponse, OtpSendRequest, OtpVerifyRequest
from storefront.application.otp_service import PhoneVerificationService
from storefront.domain.exceptions import ValidationError

router = APIRouter(prefix="/otp", tags=["OTP"])


@router.post(
    "/send",
    response_model=OtpResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Send verification code",
)
async def send_code(
    request: OtpSendRequest,
    service: Annotated[PhoneVerificationService, Depends(get_phone_verification_service)],
) -> OtpResponse:
    """Send a code to a 10-digit phone number.

    Provider failures come back as success=false with a retry message.
    """
    try:
        result = await service.send_code(request.phone)
    except ValidationError as e:
        raise_error("VALIDATION_ERROR", e.message, details=field_details(e.field_errors))
    return OtpResponse(success=result.success, message=result.message)


@router.post(
    "/verify",
    response_model=OtpResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Verify code",
)
async def verify_code(
    request: OtpVerifyRequest,
    service: Annotated[PhoneVerificationService, Depends(get_phone_verification_service)],
) -> OtpResponse:
    """Check a 4-digit code for a phone number."""
    try:
        result = await service.verify_code(request.phone, request.code)
    except ValidationError as e:
        raise_error("VALIDATION_ERROR", e.message, details=field_details(e.field_errors))
    return OtpResponse(success=result.success, message=result.message)

"""Phone verification service.

Sends and checks one-time codes through the OTP channel. Independent of
checkout: a verified phone is a profile concern, not an order state.
"""

import re

import structlog

from storefront.application.ports import OtpChannel, OtpResult
from storefront.domain.exceptions import OtpChannelError, ValidationError
from storefront.domain.value_objects import PHONE_PATTERN

logger = structlog.get_logger()

OTP_CODE_PATTERN = re.compile(r"[0-9]{4}")

SEND_FAILED_MESSAGE = "Failed to send OTP. Please try again."
VERIFY_FAILED_MESSAGE = "Failed to verify OTP. Please try again."


class PhoneVerificationService:
    """Application service for OTP phone verification."""

    def __init__(
        self,
        channel: OtpChannel,
        country_code: str = "+91",
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            channel: OTP provider.
            country_code: Prefix added to 10-digit local numbers.
            request_id: Request ID for correlation.
        """
        self.channel = channel
        self.country_code = country_code
        self.request_id = request_id

    def _normalize_phone(self, phone: str) -> str:
        digits = (phone or "").strip()
        if not PHONE_PATTERN.fullmatch(digits):
            raise ValidationError({"phone": "Please enter a valid 10-digit phone number"})
        return f"{self.country_code}{digits}"

    async def send_code(self, phone: str) -> OtpResult:
        """Send a verification code.

        Raises:
            ValidationError: If the phone number is malformed.
        """
        number = self._normalize_phone(phone)
        try:
            result = await self.channel.send(number)
        except OtpChannelError as e:
            logger.error("OTP send failed", error=e.message, request_id=self.request_id)
            return OtpResult(success=False, message=SEND_FAILED_MESSAGE)

        logger.info("OTP sent", success=result.success, request_id=self.request_id)
        return result

    async def verify_code(self, phone: str, code: str) -> OtpResult:
        """Check a verification code.

        Raises:
            ValidationError: If the phone number or code is malformed.
        """
        number = self._normalize_phone(phone)
        if not OTP_CODE_PATTERN.fullmatch((code or "").strip()):
            raise ValidationError({"code": "Please enter a valid 4-digit verification code."})

        try:
            result = await self.channel.verify(number, code.strip())
        except OtpChannelError as e:
            logger.error("OTP verify failed", error=e.message, request_id=self.request_id)
            return OtpResult(success=False, message=VERIFY_FAILED_MESSAGE)

        logger.info("OTP checked", success=result.success, request_id=self.request_id)
        return result

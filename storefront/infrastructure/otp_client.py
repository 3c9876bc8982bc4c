"""OTP channel backed by a hosted Twilio Verify function."""

import httpx
import structlog

from storefront.application.ports import OtpChannel, OtpResult
from storefront.domain.exceptions import OtpChannelError
from storefront.infrastructure.config import settings

logger = structlog.get_logger()


class TwilioOtpClient(OtpChannel):
    """HTTP client for the send-otp and verify-otp functions."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.otp_function_url
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: dict[str, str]) -> dict:
        client = await self._get_client()
        try:
            response = await client.post(path, json=payload)
        except httpx.RequestError as e:
            logger.error("OTP request failed", path=path, error=str(e))
            raise OtpChannelError(f"OTP service unreachable: {e}") from e
        if response.status_code != 200:
            logger.error("OTP call rejected", path=path, status_code=response.status_code)
            raise OtpChannelError(
                f"OTP service returned {response.status_code}",
                details={"status_code": response.status_code},
            )
        return response.json()

    async def send(self, phone: str) -> OtpResult:
        data = await self._post("/send-otp", {"phoneNumber": phone})
        return OtpResult(success=True, message=data.get("message"))

    async def verify(self, phone: str, code: str) -> OtpResult:
        data = await self._post("/verify-otp", {"phoneNumber": phone, "code": code})
        return OtpResult(success=bool(data.get("success")), message=data.get("message"))

"""Tests for the OTP and auth HTTP clients."""

import json

import httpx
import pytest

from storefront.domain.exceptions import OtpChannelError
from storefront.infrastructure.auth_client import SupabaseAuthClient, user_from_payload
from storefront.infrastructure.otp_client import TwilioOtpClient


class TestTwilioOtpClient:
    """Tests for the OTP client."""

    @pytest.mark.asyncio
    async def test_send(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"success": True, "message": "OTP sent"})

        client = TwilioOtpClient(base_url="https://otp.test", transport=httpx.MockTransport(handler))

        result = await client.send("+919876543210")
        await client.close()

        assert result.success
        assert captured[0].url.path == "/send-otp"
        assert json.loads(captured[0].content) == {"phoneNumber": "+919876543210"}

    @pytest.mark.asyncio
    async def test_verify_rejected_code(self) -> None:
        client = TwilioOtpClient(
            base_url="https://otp.test",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(
                    200, json={"success": False, "message": "Invalid code"}
                )
            ),
        )

        result = await client.verify("+919876543210", "0000")

        assert not result.success
        assert result.message == "Invalid code"

    @pytest.mark.asyncio
    async def test_non_200_raises(self) -> None:
        client = TwilioOtpClient(
            base_url="https://otp.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )

        with pytest.raises(OtpChannelError):
            await client.send("+919876543210")

    @pytest.mark.asyncio
    async def test_unreachable_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        client = TwilioOtpClient(base_url="https://otp.test", transport=httpx.MockTransport(handler))

        with pytest.raises(OtpChannelError):
            await client.verify("+919876543210", "1234")


class TestSupabaseAuthClient:
    """Tests for access token resolution."""

    @pytest.mark.asyncio
    async def test_resolves_user(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200,
                json={
                    "id": "user-1",
                    "email": "asha@example.com",
                    "user_metadata": {"full_name": "Asha Rao", "phone": "9876543210"},
                },
            )

        client = SupabaseAuthClient(
            base_url="https://auth.test",
            anon_key="anon",
            transport=httpx.MockTransport(handler),
        )

        user = await client.resolve("token-abc")

        assert user.id == "user-1"
        assert user.full_name == "Asha Rao"
        assert user.phone == "9876543210"
        assert captured[0].url.path == "/auth/v1/user"
        assert captured[0].headers["authorization"] == "Bearer token-abc"
        assert captured[0].headers["apikey"] == "anon"

    @pytest.mark.asyncio
    async def test_rejected_token(self) -> None:
        client = SupabaseAuthClient(
            base_url="https://auth.test",
            anon_key="anon",
            transport=httpx.MockTransport(lambda request: httpx.Response(401)),
        )

        assert await client.resolve("expired") is None

    def test_payload_without_id(self) -> None:
        assert user_from_payload({"email": "x@example.com"}) is None

"""Bearer token resolution against the hosted auth backend."""

from typing import Any

import httpx
import structlog

from storefront.domain.value_objects import User
from storefront.infrastructure.config import settings

logger = structlog.get_logger()


class SupabaseAuthClient:
    """Resolves access tokens to users via GET /auth/v1/user."""

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.supabase_url
        self.anon_key = anon_key or settings.supabase_anon_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"apikey": self.anon_key},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def resolve(self, access_token: str) -> User | None:
        """Look up the user behind an access token.

        Returns:
            The user, or None if the token is invalid or the backend is down.
        """
        client = await self._get_client()
        try:
            response = await client.get(
                "/auth/v1/user", headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.RequestError as e:
            logger.warning("Auth backend unreachable", error=str(e))
            return None

        if response.status_code != 200:
            logger.info("Access token rejected", status_code=response.status_code)
            return None
        return user_from_payload(response.json())


def user_from_payload(data: dict[str, Any]) -> User | None:
    user_id = data.get("id")
    if not user_id:
        return None
    metadata = data.get("user_metadata") or {}
    return User(
        id=str(user_id),
        email=str(data.get("email") or ""),
        full_name=metadata.get("full_name"),
        phone=data.get("phone") or metadata.get("phone"),
    )

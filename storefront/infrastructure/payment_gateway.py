"""Payment gateway adapters.

RazorpayGateway talks to the Razorpay Orders API; SimulatedPaymentGateway
is a deterministic stand-in for development and tests. Both verify
callbacks the same way: HMAC-SHA256 over "<gateway_order_id>|<payment_id>"
keyed with the shared secret, hex encoded.
"""

import hashlib
import hmac
from uuid import uuid4

import httpx
import structlog

from storefront.application.ports import GatewaySession, PaymentGatewayAdapter
from storefront.domain.entities import Order
from storefront.domain.exceptions import GatewayError
from storefront.domain.value_objects import PaymentMethod
from storefront.infrastructure.config import settings

logger = structlog.get_logger()


def compute_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    """Compute the callback signature for a gateway order and payment.

    Args:
        gateway_order_id: Gateway's order reference.
        gateway_payment_id: Gateway's payment reference.
        secret: Shared key secret.

    Returns:
        Hex-encoded HMAC-SHA256 digest.
    """
    message = f"{gateway_order_id}|{gateway_payment_id}"
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signature_matches(
    gateway_order_id: str, gateway_payment_id: str, signature: str, secret: str
) -> bool:
    expected = compute_signature(gateway_order_id, gateway_payment_id, secret)
    # Compared as bytes; non-ASCII input is a mismatch.
    return hmac.compare_digest(
        expected.encode("ascii"), (signature or "").encode("utf-8", "replace")
    )


def receipt_for(order: Order) -> str:
    return f"order_{order.id}"


# ============================================================================
# Razorpay
# ============================================================================


class RazorpayGateway(PaymentGatewayAdapter):
    """Razorpay Orders API adapter.

    Session creation is a network call with basic auth; verification is
    local and never touches the network.
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize gateway.

        Args:
            key_id: Publishable key ID, also the basic auth username.
            key_secret: Key secret, used for auth and signatures.
            base_url: API base URL.
            timeout: Request timeout in seconds.
            transport: Optional transport, for tests.
        """
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.base_url = base_url or settings.razorpay_api_url
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                auth=(self.key_id, self.key_secret),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def create_session(self, order: Order, method: PaymentMethod) -> GatewaySession:
        """Create a Razorpay order for the order total.

        Raises:
            GatewayError: On network, authentication or API failure.
        """
        payload = {
            "amount": order.totals.total.amount_minor,
            "currency": order.currency,
            "receipt": receipt_for(order),
            "payment_capture": 1,
        }
        try:
            client = await self._get_client()
            response = await client.post("/orders", json=payload)
        except httpx.RequestError as e:
            logger.error("Razorpay request failed", order_id=order.id, error=str(e))
            raise GatewayError(f"Payment gateway unreachable: {e}") from e

        if response.status_code not in (200, 201):
            logger.error(
                "Razorpay order creation rejected",
                order_id=order.id,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise GatewayError(
                f"Payment gateway rejected order: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            session = GatewaySession(
                gateway_order_id=str(data["id"]),
                gateway_key=self.key_id,
                amount_minor=int(data.get("amount", payload["amount"])),
                currency=data.get("currency", order.currency),
                receipt=data.get("receipt", payload["receipt"]),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(
                "Razorpay order response unreadable",
                order_id=order.id,
                body=response.text[:500],
                error=str(e),
            )
            raise GatewayError(f"Payment gateway returned an invalid response: {e}") from e

        logger.info(
            "Razorpay order created",
            order_id=order.id,
            gateway_order_id=session.gateway_order_id,
            method=method.value,
        )
        return session

    async def verify(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        return signature_matches(gateway_order_id, gateway_payment_id, signature, self.key_secret)


# ============================================================================
# Simulated Gateway
# ============================================================================


class SimulatedPaymentGateway(PaymentGatewayAdapter):
    """Deterministic in-process gateway.

    Issues sequential gateway order IDs and signs payments with the same
    scheme as Razorpay, so a client can complete a checkout without a real
    processor.

    Attributes:
        sessions: Sessions created, in order.
        verifications: Verify calls received, as (order, payment, result).
    """

    def __init__(self, key_secret: str | None = None, key_id: str = "sim_key") -> None:
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.key_id = key_id
        self.sessions: list[GatewaySession] = []
        self.verifications: list[tuple[str, str, bool]] = []
        self.fail_next_session: str | None = None

    async def create_session(self, order: Order, method: PaymentMethod) -> GatewaySession:
        if self.fail_next_session:
            message, self.fail_next_session = self.fail_next_session, None
            raise GatewayError(message, status_code=503)

        session = GatewaySession(
            gateway_order_id=f"order_sim_{uuid4().hex[:14]}",
            gateway_key=self.key_id,
            amount_minor=order.totals.total.amount_minor,
            currency=order.currency,
            receipt=receipt_for(order),
        )
        self.sessions.append(session)
        logger.info(
            "Simulated payment session created",
            order_id=order.id,
            gateway_order_id=session.gateway_order_id,
            method=method.value,
        )
        return session

    async def verify(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> bool:
        result = signature_matches(gateway_order_id, gateway_payment_id, signature, self.key_secret)
        self.verifications.append((gateway_order_id, gateway_payment_id, result))
        return result

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        """Produce the signature a real gateway would send for this payment."""
        return compute_signature(gateway_order_id, gateway_payment_id, self.key_secret)

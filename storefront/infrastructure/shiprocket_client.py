"""Shipping aggregator adapters.

ShiprocketClient calls the Shiprocket external API with a bearer token
obtained from /auth/login. The token is cached for a fixed window and
refreshed lazily on the first call after it lapses.
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import httpx
import structlog

from storefront.application.ports import ShipmentAdapter
from storefront.domain.base import utcnow
from storefront.domain.entities import Order
from storefront.domain.exceptions import ShipmentError
from storefront.domain.value_objects import PaymentMethod, TrackingActivity, TrackingSnapshot
from storefront.infrastructure.config import settings

logger = structlog.get_logger()

# Fixed parcel dimensions (cm) and weight (kg) sent with every shipment.
PARCEL_LENGTH = 10
PARCEL_BREADTH = 10
PARCEL_HEIGHT = 10
PARCEL_WEIGHT = 0.5


def build_shipment_payload(order: Order, pickup_location: str = "Primary") -> dict[str, Any]:
    """Map an order to the Shiprocket ad-hoc order payload.

    Args:
        order: Order with its address and item snapshot.
        pickup_location: Registered pickup location name.

    Returns:
        JSON-ready payload.
    """
    address = order.shipping_address
    return {
        "order_id": order.id,
        "order_date": order.created_at.date().isoformat(),
        "pickup_location": pickup_location,
        "billing_customer_name": address.name,
        "billing_last_name": "",
        "billing_address": address.address_line1,
        "billing_address_2": address.address_line2 or "",
        "billing_city": address.city,
        "billing_pincode": address.pincode,
        "billing_state": address.state,
        "billing_country": "India",
        "billing_email": order.customer_email,
        "billing_phone": address.phone,
        "shipping_is_billing": True,
        "order_items": [
            {
                "name": line.product_name,
                "sku": line.product_id,
                "units": line.quantity,
                "selling_price": float(line.unit_price.to_decimal()),
            }
            for line in order.items
        ],
        "payment_method": "COD" if order.payment_method == PaymentMethod.COD else "Prepaid",
        "sub_total": float(order.subtotal_amount),
        "length": PARCEL_LENGTH,
        "breadth": PARCEL_BREADTH,
        "height": PARCEL_HEIGHT,
        "weight": PARCEL_WEIGHT,
    }


def parse_tracking(shipment_id: str, data: dict[str, Any]) -> TrackingSnapshot:
    """Parse a tracking response into a snapshot.

    Accepts both the flat shape and the shape nested under tracking_data.
    """
    tracking = data.get("tracking_data", data)
    current_status = tracking.get("current_status")
    status_date = tracking.get("shipment_status_date")

    shipment_track = tracking.get("shipment_track") or []
    if shipment_track:
        first = shipment_track[0]
        current_status = current_status or first.get("current_status")
        status_date = status_date or first.get("updated_time") or first.get("delivered_date")

    activities = tuple(
        TrackingActivity(
            date=str(a.get("date", "")),
            activity=str(a.get("activity", "")),
            location=str(a.get("location", "")),
        )
        for a in tracking.get("shipment_track_activities") or []
    )

    parsed_date: datetime | None = None
    if status_date:
        try:
            parsed_date = datetime.fromisoformat(str(status_date))
        except ValueError:
            parsed_date = None

    return TrackingSnapshot(
        shipment_id=shipment_id,
        current_status=str(current_status or "unknown"),
        status_date=parsed_date,
        activities=activities,
    )


# ============================================================================
# Shiprocket
# ============================================================================


class ShiprocketClient(ShipmentAdapter):
    """HTTP client for the Shiprocket external API."""

    def __init__(
        self,
        email: str | None = None,
        password: str | None = None,
        base_url: str | None = None,
        token_validity: timedelta | None = None,
        pickup_location: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            email: API user email.
            password: API user password.
            base_url: API base URL.
            token_validity: How long a token is reused before logging in again.
            pickup_location: Registered pickup location name.
            timeout: Request timeout in seconds.
            transport: Optional transport, for tests.
        """
        self.email = email if email is not None else settings.shiprocket_email
        self.password = password if password is not None else settings.shiprocket_password
        self.base_url = base_url or settings.shiprocket_api_url
        self.token_validity = token_validity or timedelta(
            days=settings.shiprocket_token_validity_days
        )
        self.pickup_location = pickup_location or settings.shiprocket_pickup_location
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None
        self._token_expires_at: datetime | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _token_valid(self) -> bool:
        return (
            self._token is not None
            and self._token_expires_at is not None
            and self._token_expires_at > utcnow()
        )

    async def _authenticate(self) -> str:
        """Return a cached token, logging in again if it has lapsed.

        Raises:
            ShipmentError: If login fails.
        """
        if self._token_valid():
            return self._token  # type: ignore[return-value]

        client = await self._get_client()
        try:
            response = await client.post(
                "/auth/login", json={"email": self.email, "password": self.password}
            )
        except httpx.RequestError as e:
            logger.error("Shiprocket login request failed", error=str(e))
            raise ShipmentError(f"Shipping service unreachable: {e}") from e

        if response.status_code != 200:
            logger.error("Shiprocket login rejected", status_code=response.status_code)
            raise ShipmentError(
                f"Shipping service login failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            token = response.json()["token"]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Shiprocket login response unreadable", body=response.text[:500])
            raise ShipmentError(f"Shipping service login returned no token: {e}") from e
        if not isinstance(token, str) or not token:
            raise ShipmentError("Shipping service login returned no token")

        self._token = token
        self._token_expires_at = utcnow() + self.token_validity
        logger.info("Shiprocket token refreshed", expires_at=self._token_expires_at.isoformat())
        return self._token

    async def _request(
        self, method: str, path: str, operation: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        token = await self._authenticate()
        client = await self._get_client()
        try:
            response = await client.request(
                method, path, json=json, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.RequestError as e:
            logger.error("Shiprocket request failed", operation=operation, error=str(e))
            raise ShipmentError(f"Shipping service unreachable: {e}") from e

        if response.status_code == 401:
            # Token revoked early; the next call logs in again.
            self._token = None
            self._token_expires_at = None

        if response.status_code not in (200, 201):
            logger.error(
                "Shiprocket call rejected",
                operation=operation,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise ShipmentError(
                f"Failed to {operation}: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "Shiprocket response unreadable", operation=operation, body=response.text[:500]
            )
            raise ShipmentError(f"Failed to {operation}: invalid response") from e
        if not isinstance(data, dict):
            raise ShipmentError(f"Failed to {operation}: unexpected response")
        return data

    async def create_shipment(self, order: Order) -> str:
        """Create an ad-hoc order and return the shipment ID.

        Raises:
            ShipmentError: If the carrier rejects or cannot take the request.
        """
        payload = build_shipment_payload(order, self.pickup_location)
        data = await self._request("POST", "/orders/create/adhoc", "create shipment", json=payload)

        shipment_id = data.get("shipment_id")
        if not shipment_id:
            raise ShipmentError("Shipping service returned no shipment ID")

        logger.info("Shiprocket shipment created", order_id=order.id, shipment_id=shipment_id)
        return str(shipment_id)

    async def track_shipment(self, shipment_id: str) -> TrackingSnapshot:
        data = await self._request(
            "GET", f"/courier/track/shipment/{shipment_id}", "track shipment"
        )
        try:
            return parse_tracking(shipment_id, data)
        except (AttributeError, TypeError, IndexError) as e:
            raise ShipmentError(f"Failed to track shipment: unexpected response: {e}") from e

    async def generate_label(self, shipment_id: str) -> str:
        data = await self._request(
            "POST",
            "/courier/generate/label",
            "generate label",
            json={"shipment_id": [shipment_id]},
        )
        label_url = data.get("label_url")
        if not label_url:
            raise ShipmentError("Shipping service returned no label URL")
        return str(label_url)

    async def cancel_shipment(self, shipment_id: str) -> None:
        await self._request("POST", "/orders/cancel", "cancel shipment", json={"ids": [shipment_id]})
        logger.info("Shiprocket shipment cancelled", shipment_id=shipment_id)


# ============================================================================
# In-Memory Shipments
# ============================================================================


class InMemoryShipmentAdapter(ShipmentAdapter):
    """Shipment adapter that records shipments in memory.

    Attributes:
        shipments: Orders shipped, keyed by shipment ID.
        cancelled: Shipment IDs cancelled.
    """

    def __init__(self) -> None:
        self.shipments: dict[str, Order] = {}
        self.cancelled: set[str] = set()
        self.fail_next: str | None = None

    async def create_shipment(self, order: Order) -> str:
        if self.fail_next:
            message, self.fail_next = self.fail_next, None
            raise ShipmentError(message, status_code=503)
        shipment_id = f"ship_{uuid4().hex[:12]}"
        self.shipments[shipment_id] = order
        return shipment_id

    async def track_shipment(self, shipment_id: str) -> TrackingSnapshot:
        if shipment_id not in self.shipments:
            raise ShipmentError(f"Unknown shipment: {shipment_id}", status_code=404)
        status = "CANCELLED" if shipment_id in self.cancelled else "PICKUP SCHEDULED"
        return TrackingSnapshot(shipment_id=shipment_id, current_status=status)

    async def generate_label(self, shipment_id: str) -> str:
        if shipment_id not in self.shipments:
            raise ShipmentError(f"Unknown shipment: {shipment_id}", status_code=404)
        return f"https://labels.example.invalid/{shipment_id}.pdf"

    async def cancel_shipment(self, shipment_id: str) -> None:
        if shipment_id not in self.shipments:
            raise ShipmentError(f"Unknown shipment: {shipment_id}", status_code=404)
        self.cancelled.add(shipment_id)

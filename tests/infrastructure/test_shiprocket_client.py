"""Tests for the Shiprocket adapter."""

import json
from datetime import timedelta

import httpx
import pytest

from storefront.domain.entities import OrderUpdate
from storefront.domain.exceptions import ShipmentError
from storefront.domain.value_objects import PaymentMethod
from storefront.infrastructure.shiprocket_client import (
    InMemoryShipmentAdapter,
    ShiprocketClient,
    build_shipment_payload,
    parse_tracking,
)

BASE_URL = "https://shiprocket.test/v1/external"


class FakeShiprocket:
    """Routes requests to canned Shiprocket responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.logins = 0
        self.reject_next_with: int | None = None
        self.raw_next: httpx.Response | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v1/external")

        if self.raw_next is not None:
            response, self.raw_next = self.raw_next, None
            return response

        if path == "/auth/login":
            self.logins += 1
            return httpx.Response(200, json={"token": f"token-{self.logins}"})

        if self.reject_next_with is not None:
            status, self.reject_next_with = self.reject_next_with, None
            return httpx.Response(status, json={"message": "rejected"})

        if path == "/orders/create/adhoc":
            return httpx.Response(200, json={"order_id": 991, "shipment_id": 7001})
        if path == "/courier/track/shipment/7001":
            return httpx.Response(
                200,
                json={
                    "tracking_data": {
                        "shipment_track": [
                            {"current_status": "IN TRANSIT", "updated_time": "2024-05-02 10:00:00"}
                        ],
                        "shipment_track_activities": [
                            {"date": "2024-05-02", "activity": "Reached hub", "location": "Pune"}
                        ],
                    }
                },
            )
        if path == "/courier/generate/label":
            return httpx.Response(200, json={"label_created": 1, "label_url": "https://cdn.test/l.pdf"})
        if path == "/orders/cancel":
            return httpx.Response(200, json={"status": 200})
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
def fake() -> FakeShiprocket:
    return FakeShiprocket()


@pytest.fixture
def client(fake) -> ShiprocketClient:
    return ShiprocketClient(
        email="ops@example.com",
        password="secret",
        base_url=BASE_URL,
        transport=httpx.MockTransport(fake),
    )


class TestShipmentPayload:
    """Tests for mapping orders to shipments."""

    def test_prepaid_payload(self, order) -> None:
        payload = build_shipment_payload(order, "Warehouse")

        assert payload["order_id"] == order.id
        assert payload["pickup_location"] == "Warehouse"
        assert payload["billing_pincode"] == "560001"
        assert payload["payment_method"] == "Prepaid"
        assert payload["order_items"] == [
            {"name": "Cotton Tee", "sku": "tee-1", "units": 2, "selling_price": 200.0}
        ]
        assert payload["sub_total"] == 400.0

    def test_cod_payload(self, order) -> None:
        order.apply_update(OrderUpdate(payment_method=PaymentMethod.COD))

        assert build_shipment_payload(order)["payment_method"] == "COD"


class TestParseTracking:
    """Tests for tracking responses."""

    def test_nested_shape(self) -> None:
        snapshot = parse_tracking(
            "s1",
            {
                "tracking_data": {
                    "shipment_track": [{"current_status": "DELIVERED"}],
                    "shipment_track_activities": [{"date": "d", "activity": "a"}],
                }
            },
        )

        assert snapshot.current_status == "DELIVERED"
        assert snapshot.activities[0].activity == "a"

    def test_flat_shape(self) -> None:
        snapshot = parse_tracking(
            "s1", {"current_status": "SHIPPED", "shipment_status_date": "2024-05-01T09:30:00"}
        )

        assert snapshot.current_status == "SHIPPED"
        assert snapshot.status_date.day == 1

    def test_missing_status_is_unknown(self) -> None:
        snapshot = parse_tracking("s1", {"shipment_status_date": "not a date"})

        assert snapshot.current_status == "unknown"
        assert snapshot.status_date is None


class TestShiprocketClient:
    """Tests for the HTTP client."""

    @pytest.mark.asyncio
    async def test_create_shipment_logs_in_first(self, client, fake, order) -> None:
        shipment_id = await client.create_shipment(order)

        assert shipment_id == "7001"
        assert [r.url.path for r in fake.requests] == [
            "/v1/external/auth/login",
            "/v1/external/orders/create/adhoc",
        ]
        assert fake.requests[1].headers["authorization"] == "Bearer token-1"
        assert json.loads(fake.requests[1].content)["order_id"] == order.id

    @pytest.mark.asyncio
    async def test_token_reused_within_validity(self, client, fake, order) -> None:
        await client.create_shipment(order)
        await client.track_shipment("7001")

        assert fake.logins == 1

    @pytest.mark.asyncio
    async def test_lapsed_token_refreshed(self, fake, order) -> None:
        client = ShiprocketClient(
            email="ops@example.com",
            password="secret",
            base_url=BASE_URL,
            token_validity=timedelta(seconds=-1),
            transport=httpx.MockTransport(fake),
        )

        await client.create_shipment(order)
        await client.track_shipment("7001")

        assert fake.logins == 2

    @pytest.mark.asyncio
    async def test_unauthorized_drops_token(self, client, fake, order) -> None:
        await client.create_shipment(order)
        fake.reject_next_with = 401

        with pytest.raises(ShipmentError) as exc_info:
            await client.track_shipment("7001")
        await client.track_shipment("7001")

        assert exc_info.value.status_code == 401
        assert fake.logins == 2

    @pytest.mark.asyncio
    async def test_login_failure_raises(self, order) -> None:
        client = ShiprocketClient(
            email="ops@example.com",
            password="wrong",
            base_url=BASE_URL,
            transport=httpx.MockTransport(lambda request: httpx.Response(403, json={})),
        )

        with pytest.raises(ShipmentError) as exc_info:
            await client.create_shipment(order)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_track_shipment(self, client) -> None:
        snapshot = await client.track_shipment("7001")

        assert snapshot.shipment_id == "7001"
        assert snapshot.current_status == "IN TRANSIT"
        assert snapshot.activities[0].location == "Pune"

    @pytest.mark.asyncio
    async def test_generate_label(self, client, fake) -> None:
        label_url = await client.generate_label("7001")

        assert label_url == "https://cdn.test/l.pdf"
        assert json.loads(fake.requests[-1].content) == {"shipment_id": ["7001"]}

    @pytest.mark.asyncio
    async def test_cancel_shipment(self, client, fake) -> None:
        await client.cancel_shipment("7001")

        assert json.loads(fake.requests[-1].content) == {"ids": ["7001"]}

    @pytest.mark.asyncio
    async def test_server_error_raises(self, client, fake, order) -> None:
        fake.reject_next_with = 500

        with pytest.raises(ShipmentError) as exc_info:
            await client.create_shipment(order)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_login_page_instead_of_token_raises(self, client, fake, order) -> None:
        fake.raw_next = httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(ShipmentError, match="no token"):
            await client.create_shipment(order)

    @pytest.mark.asyncio
    async def test_login_without_token_raises(self, client, fake, order) -> None:
        fake.raw_next = httpx.Response(200, json={"message": "ok"})

        with pytest.raises(ShipmentError):
            await client.create_shipment(order)

    @pytest.mark.asyncio
    async def test_unreadable_response_raises(self, client, fake, order) -> None:
        await client.track_shipment("7001")
        fake.raw_next = httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(ShipmentError, match="invalid response"):
            await client.create_shipment(order)

    @pytest.mark.asyncio
    async def test_unexpected_tracking_shape_raises(self, client, fake) -> None:
        await client.track_shipment("7001")
        fake.raw_next = httpx.Response(200, json={"tracking_data": ["IN TRANSIT"]})

        with pytest.raises(ShipmentError):
            await client.track_shipment("7001")


class TestInMemoryShipmentAdapter:
    """Tests for the in-memory adapter."""

    @pytest.mark.asyncio
    async def test_create_track_cancel(self, order) -> None:
        adapter = InMemoryShipmentAdapter()

        shipment_id = await adapter.create_shipment(order)
        await adapter.cancel_shipment(shipment_id)
        snapshot = await adapter.track_shipment(shipment_id)

        assert snapshot.current_status == "CANCELLED"

    @pytest.mark.asyncio
    async def test_unknown_shipment(self) -> None:
        with pytest.raises(ShipmentError):
            await InMemoryShipmentAdapter().generate_label("nope")

"""Tests for checkout endpoints."""

import pytest
from fastapi.testclient import TestClient

from storefront.api.dependencies import get_current_user
from storefront.main import app


@pytest.fixture
def ready_session(auth_client: TestClient, add_tees, address_fields) -> str:
    """Session with an order created for two tees."""
    add_tees(auth_client, 2)
    session_id = auth_client.post("/checkout/sessions").json()["id"]
    assert auth_client.post(
        f"/checkout/sessions/{session_id}/address", json=address_fields
    ).status_code == 200
    response = auth_client.post(f"/checkout/sessions/{session_id}/payment-step")
    assert response.status_code == 200
    return session_id


def start_online(client: TestClient, session_id: str, method: str = "CARD") -> dict:
    response = client.post(f"/checkout/sessions/{session_id}/payments", json={"method": method})
    assert response.status_code == 200
    return response.json()


class TestSessionLifecycle:
    """Tests for opening and reading sessions."""

    def test_open_session(self, auth_client: TestClient) -> None:
        response = auth_client.post("/checkout/sessions")

        assert response.status_code == 201
        data = response.json()
        assert data["step"] == "address"
        assert data["order"] is None

    def test_get_session(self, auth_client: TestClient) -> None:
        session_id = auth_client.post("/checkout/sessions").json()["id"]

        response = auth_client.get(f"/checkout/sessions/{session_id}")

        assert response.json()["id"] == session_id

    def test_session_bound_to_device(self, auth_client: TestClient) -> None:
        session_id = auth_client.post("/checkout/sessions").json()["id"]

        response = auth_client.get(
            f"/checkout/sessions/{session_id}", headers={"X-Device-ID": "device-2"}
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"


class TestAddressAndOrder:
    """Tests for the address and payment steps."""

    def test_invalid_address_stays_on_address(
        self, auth_client: TestClient, address_fields
    ) -> None:
        session_id = auth_client.post("/checkout/sessions").json()["id"]
        address_fields["phone"] = "12345"

        response = auth_client.post(
            f"/checkout/sessions/{session_id}/address", json=address_fields
        )

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "phone"
        assert auth_client.get(f"/checkout/sessions/{session_id}").json()["step"] == "address"

    def test_payment_step_creates_order(self, auth_client: TestClient, ready_session) -> None:
        data = auth_client.get(f"/checkout/sessions/{ready_session}").json()

        assert data["step"] == "order_created"
        totals = data["order"]["totals"]
        assert totals["subtotal"]["amount"] == 40000
        assert totals["shipping"]["amount"] == 5000
        assert totals["tax"]["amount"] == 7200
        assert totals["total"]["amount"] == 52200
        assert data["order"]["status_presentation"]["icon"] == "pending"

    def test_payment_step_is_idempotent(self, auth_client: TestClient, ready_session) -> None:
        first = auth_client.get(f"/checkout/sessions/{ready_session}").json()["order"]["id"]

        again = auth_client.post(f"/checkout/sessions/{ready_session}/payment-step")

        assert again.json()["order"]["id"] == first
        assert auth_client.get("/orders").json()["total"] == 1

    def test_empty_cart_conflict(self, auth_client: TestClient, address_fields) -> None:
        session_id = auth_client.post("/checkout/sessions").json()["id"]
        auth_client.post(f"/checkout/sessions/{session_id}/address", json=address_fields)

        response = auth_client.post(f"/checkout/sessions/{session_id}/payment-step")

        assert response.status_code == 409
        assert response.json()["error_code"] == "CART_EMPTY"
        assert response.json()["redirect"] == "cart"

    def test_anonymous_user_must_sign_in(
        self, client: TestClient, add_tees, address_fields
    ) -> None:
        add_tees(client, 1)
        session_id = client.post("/checkout/sessions").json()["id"]
        client.post(f"/checkout/sessions/{session_id}/address", json=address_fields)

        response = client.post(f"/checkout/sessions/{session_id}/payment-step")

        assert response.status_code == 401
        assert response.json()["redirect"] == "sign_in"

    def test_back_after_order_rejected(self, auth_client: TestClient, ready_session) -> None:
        response = auth_client.post(f"/checkout/sessions/{ready_session}/back")

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_STATE"


class TestPayments:
    """Tests for paying for the order."""

    def test_cod_completes(self, auth_client: TestClient, ready_session, gateway, shipments) -> None:
        response = auth_client.post(
            f"/checkout/sessions/{ready_session}/payments", json={"method": "cod"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "completed"
        assert data["redirect"] == "success"
        assert data["order"]["payment_method"] == "COD"
        assert data["order"]["status"] == "processing"
        assert gateway.sessions == []
        assert len(shipments.shipments) == 1
        assert auth_client.get("/cart").json()["items"] == []

    def test_unknown_method_rejected(self, auth_client: TestClient, ready_session) -> None:
        response = auth_client.post(
            f"/checkout/sessions/{ready_session}/payments", json={"method": "BITCOIN"}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_PAYMENT_METHOD"

    def test_online_payment_returns_gateway_session(
        self, auth_client: TestClient, ready_session
    ) -> None:
        data = start_online(auth_client, ready_session)

        assert data["step"] == "awaiting_payment_result"
        session = data["gateway_session"]
        assert session["amount"] == 52200
        assert session["currency"] == "INR"
        assert session["prefill"] == {
            "name": "Asha Rao",
            "email": "asha@example.com",
            "contact": "9876543210",
        }

    def test_verified_payment_completes(
        self, auth_client: TestClient, ready_session, gateway
    ) -> None:
        gateway_order_id = start_online(auth_client, ready_session)["gateway_session"][
            "gateway_order_id"
        ]

        response = auth_client.post(
            f"/checkout/sessions/{ready_session}/payments/verify",
            json={
                "gateway_payment_id": "pay_1",
                "gateway_order_id": gateway_order_id,
                "signature": gateway.sign(gateway_order_id, "pay_1"),
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["step"] == "completed"
        assert data["payment_status"] == "completed"
        assert data["order"]["payment_status"] == "completed"
        assert data["shipment_pending"] is False

    def test_bad_signature_fails(self, auth_client: TestClient, ready_session) -> None:
        gateway_order_id = start_online(auth_client, ready_session)["gateway_session"][
            "gateway_order_id"
        ]

        response = auth_client.post(
            f"/checkout/sessions/{ready_session}/payments/verify",
            json={
                "gateway_payment_id": "pay_1",
                "gateway_order_id": gateway_order_id,
                "signature": "0" * 64,
            },
        )

        assert response.status_code == 402
        data = response.json()
        assert data["error_code"] == "PAYMENT_VERIFICATION_FAILED"
        assert data["redirect"] == "failure"
        assert "retry" in data["actions"]
        assert auth_client.get("/cart").json()["item_count"] == 2

    def test_gateway_down(self, auth_client: TestClient, ready_session, gateway) -> None:
        gateway.fail_next_session = "gateway timeout"

        response = auth_client.post(
            f"/checkout/sessions/{ready_session}/payments", json={"method": "UPI"}
        )

        assert response.status_code == 502
        assert response.json()["message"] == "Payment failed, please try again."

    def test_abandon_then_retry(self, auth_client: TestClient, ready_session) -> None:
        start_online(auth_client, ready_session)

        abandoned = auth_client.post(f"/checkout/sessions/{ready_session}/payments/abandon")
        retried = start_online(auth_client, ready_session, "UPI")

        assert abandoned.status_code == 200
        assert abandoned.json()["step"] == "order_created"
        assert retried["step"] == "awaiting_payment_result"

    def test_second_start_while_awaiting(self, auth_client: TestClient, ready_session) -> None:
        start_online(auth_client, ready_session)

        response = auth_client.post(
            f"/checkout/sessions/{ready_session}/payments", json={"method": "CARD"}
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "CHECKOUT_IN_PROGRESS"


class TestResume:
    """Tests for resuming a pending order."""

    def test_resume_pending_on_open(self, auth_client: TestClient, ready_session) -> None:
        order_id = auth_client.get(f"/checkout/sessions/{ready_session}").json()["order"]["id"]

        response = auth_client.post("/checkout/sessions", json={"resume_pending": True})

        assert response.status_code == 201
        data = response.json()
        assert data["step"] == "order_created"
        assert data["order"]["id"] == order_id

    def test_resume_other_users_order(
        self, auth_client: TestClient, ready_session, other_user
    ) -> None:
        order_id = auth_client.get(f"/checkout/sessions/{ready_session}").json()["order"]["id"]
        app.dependency_overrides[get_current_user] = lambda: other_user
        session_id = auth_client.post("/checkout/sessions").json()["id"]

        response = auth_client.post(
            f"/checkout/sessions/{session_id}/resume", json={"order_id": order_id}
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "ORDER_NOT_FOUND"

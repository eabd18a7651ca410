"""Integration tests for the Payments API — intents, webhooks and status."""

import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.routes import farmer_router, order_router
from ordering.order.order import Order
from payments.api.routes import payment_router
from protean import current_domain
from shared.auth import issue_token
from shared.http import install_error_handlers


@pytest.fixture()
def client(gateway):
    app = FastAPI()
    install_error_handlers(app)
    app.include_router(order_router)
    app.include_router(farmer_router)
    app.include_router(payment_router)
    return TestClient(app)


def _auth(caller_id, caller_type):
    return {"Authorization": f"Bearer {issue_token(caller_id, caller_type)}"}


def _create_intent(client, order_id, caller="consumer-001"):
    return client.post(
        "/api/payments/create-payment-intent",
        json={"orderId": str(order_id)},
        headers=_auth(caller, "consumer"),
    )


def _intent_id(order_id):
    return current_domain.repository_for(Order).get(order_id).payment_intent_id


def _post_webhook(client, payload, signature="test-signature"):
    return client.post(
        "/api/payments/webhook",
        content=payload,
        headers={"stripe-signature": signature, "Content-Type": "application/json"},
    )


class TestCreatePaymentIntentEndpoint:
    def test_returns_client_secret(self, client, gateway, placed_order):
        response = _create_intent(client, placed_order.id)
        assert response.status_code == 200
        secret = response.json()["clientSecret"]
        assert secret == gateway.intents[_intent_id(placed_order.id)].client_secret

    def test_other_consumer_is_403(self, client, placed_order):
        assert _create_intent(client, placed_order.id, caller="consumer-002").status_code == 403

    def test_unknown_order_is_404(self, client):
        assert _create_intent(client, "no-such-order").status_code == 404

    def test_gateway_outage_is_502(self, client, gateway, placed_order):
        gateway.configure(should_succeed=False)
        response = _create_intent(client, placed_order.id)
        assert response.status_code == 502
        assert response.json()["error"] == "GatewayError"
        assert response.json()["retryable"] is True

    def test_accepted_order_is_400(self, client, placed_order, farmer_id):
        client.put(
            f"/api/orders/{placed_order.id}/status",
            json={"status": "accepted"},
            headers=_auth(farmer_id, "farmer"),
        )
        response = _create_intent(client, placed_order.id)
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidState"


class TestWebhookEndpoint:
    def test_success_webhook(self, client, gateway, placed_order):
        _create_intent(client, placed_order.id)
        payload = gateway.build_webhook_payload(_intent_id(placed_order.id))

        response = _post_webhook(client, payload)
        assert response.status_code == 200
        assert response.json() == {"received": True}

        order = current_domain.repository_for(Order).get(placed_order.id)
        assert order.payment_status == "paid"
        assert order.status == "accepted"

    def test_invalid_signature_rejected(self, client, gateway, placed_order):
        _create_intent(client, placed_order.id)
        payload = gateway.build_webhook_payload(_intent_id(placed_order.id))

        response = _post_webhook(client, payload, signature="forged")
        assert response.status_code == 400
        assert response.json()["error"] == "SecurityError"
        assert current_domain.repository_for(Order).get(placed_order.id).payment_status == "processing"

    def test_unhandled_event_acknowledged(self, client):
        payload = json.dumps({"id": "evt_x", "type": "customer.created", "data": {"object": {}}}).encode()
        assert _post_webhook(client, payload).status_code == 200

    def test_duplicate_delivery_counts_once(self, client, gateway, placed_order, farmer_id):
        _create_intent(client, placed_order.id)
        payload = gateway.build_webhook_payload(_intent_id(placed_order.id), event_id="evt_dup")

        assert _post_webhook(client, payload).status_code == 200
        assert _post_webhook(client, payload).status_code == 200

        totals = client.get("/api/farmers/me/total-orders", headers=_auth(farmer_id, "farmer"))
        assert totals.json()["totalOrders"] == 1


class TestPaymentStatusEndpoint:
    def test_default_status(self, client, placed_order):
        response = client.get(f"/api/payments/status/{placed_order.id}", headers=_auth("consumer-001", "consumer"))
        assert response.status_code == 200
        assert response.json()["paymentStatus"] == "not_paid"
        assert response.json()["paymentId"] is None

    def test_after_failed_payment(self, client, gateway, placed_order, farmer_id):
        _create_intent(client, placed_order.id)
        intent_id = _intent_id(placed_order.id)
        _post_webhook(client, gateway.build_webhook_payload(intent_id, "payment_intent.payment_failed"))

        response = client.get(f"/api/payments/status/{placed_order.id}", headers=_auth(farmer_id, "farmer"))
        assert response.json()["paymentStatus"] == "failed"
        assert response.json()["paymentId"] == intent_id

    def test_stranger_is_403(self, client, placed_order):
        response = client.get(f"/api/payments/status/{placed_order.id}", headers=_auth("consumer-009", "consumer"))
        assert response.status_code == 403


class TestConfigureGatewayEndpoint:
    def test_configure_fake_gateway(self, client, gateway):
        response = client.post(
            "/api/payments/gateway/configure",
            json={"shouldSucceed": False, "failureReason": "Maintenance"},
        )
        assert response.status_code == 200
        assert response.json() == {"gateway": "FakeGateway", "shouldSucceed": False, "failureReason": "Maintenance"}
        assert gateway.should_succeed is False

    def test_forbidden_in_production(self, client, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        response = client.post("/api/payments/gateway/configure", json={"shouldSucceed": False})
        assert response.status_code == 403

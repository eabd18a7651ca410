"""Tests for the StripeGateway adapter with the Stripe API stubbed out."""

import hashlib
import hmac
import json
import time

import pytest
import stripe
from payments.gateway.stripe_adapter import StripeGateway
from shared.errors import GatewayError, WebhookSignatureError

WEBHOOK_SECRET = "whsec_test_secret"


def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def _intent(**overrides):
    data = {"id": "pi_123", "client_secret": "pi_123_secret_abc", "status": "requires_payment_method", "amount": 45000}
    data.update(overrides)
    return data


@pytest.fixture()
def adapter():
    return StripeGateway(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET, timeout=3, max_network_retries=1)


class TestStripeConfiguration:
    def test_bounded_http_client(self, adapter):
        assert isinstance(stripe.default_http_client, stripe.RequestsClient)
        assert stripe.max_network_retries == 1


class TestStripeIntents:
    def test_create_passes_idempotency_key_and_api_key(self, adapter, monkeypatch):
        captured = {}

        def fake_create(**kwargs):
            captured.update(kwargs)
            return _intent()

        monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)

        intent = adapter.create_payment_intent(45000, "inr", {"order_id": "o-1"}, "order-o-1-intent-1")

        assert intent.intent_id == "pi_123"
        assert intent.client_secret == "pi_123_secret_abc"
        assert captured["amount"] == 45000
        assert captured["currency"] == "inr"
        assert captured["metadata"] == {"order_id": "o-1"}
        assert captured["idempotency_key"] == "order-o-1-intent-1"
        assert captured["api_key"] == "sk_test_123"

    def test_update_and_retrieve(self, adapter, monkeypatch):
        monkeypatch.setattr(stripe.PaymentIntent, "modify", lambda intent_id, **kw: _intent(id=intent_id, **kw))
        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id, **kw: _intent(id=intent_id))

        assert adapter.update_payment_intent("pi_9", 1000).amount == 1000
        assert adapter.retrieve_payment_intent("pi_9").intent_id == "pi_9"

    def test_stripe_errors_become_gateway_errors(self, adapter, monkeypatch):
        def unreachable(**kwargs):
            raise stripe.APIConnectionError("Network is unreachable")

        monkeypatch.setattr(stripe.PaymentIntent, "create", unreachable)

        with pytest.raises(GatewayError) as exc:
            adapter.create_payment_intent(45000, "inr", {}, "key-1")
        assert exc.value.retryable is True

    def test_retrieve_errors_become_gateway_errors(self, adapter, monkeypatch):
        def missing(intent_id, **kwargs):
            raise stripe.InvalidRequestError("No such payment_intent", param="intent")

        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", missing)
        with pytest.raises(GatewayError):
            adapter.retrieve_payment_intent("pi_missing")


class TestStripeWebhooks:
    def _payload(self, **obj_overrides):
        obj = {
            "id": "pi_123",
            "object": "payment_intent",
            "status": "succeeded",
            "latest_charge": "ch_456",
            "metadata": {"order_id": "o-1"},
        }
        obj.update(obj_overrides)
        return json.dumps(
            {"id": "evt_1", "object": "event", "type": "payment_intent.succeeded", "data": {"object": obj}}
        ).encode()

    def test_valid_signature_parses_event(self, adapter):
        payload = self._payload()
        event = adapter.construct_webhook_event(payload, _sign(payload))
        assert event.event_id == "evt_1"
        assert event.intent_id == "pi_123"
        assert event.order_id == "o-1"
        assert event.payment_id == "ch_456"

    def test_wrong_secret_rejected(self, adapter):
        payload = self._payload()
        with pytest.raises(WebhookSignatureError):
            adapter.construct_webhook_event(payload, _sign(payload, secret="whsec_other"))

    def test_tampered_payload_rejected(self, adapter):
        payload = self._payload()
        signature = _sign(payload)
        with pytest.raises(WebhookSignatureError):
            adapter.construct_webhook_event(self._payload(metadata={"order_id": "o-2"}), signature)

    def test_stale_timestamp_rejected(self, adapter):
        payload = self._payload()
        with pytest.raises(WebhookSignatureError):
            adapter.construct_webhook_event(payload, _sign(payload, timestamp=int(time.time()) - 3600))

    def test_missing_signature_rejected(self, adapter):
        with pytest.raises(WebhookSignatureError):
            adapter.construct_webhook_event(self._payload(), "")

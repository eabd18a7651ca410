"""Configurable fake payment gateway for development and testing.

This adapter simulates Stripe's payment intents without any external calls.
It can be configured at runtime to fail, making it useful for:
- Automated tests with predictable outcomes
- Development without real gateway credentials
- Load tests that drive the webhook flow end to end

Webhooks are "signed" with the fixed signature ``test-signature``; use
``build_webhook_payload`` to produce a Stripe-shaped event body.
"""

import json
from uuid import uuid4

from shared.errors import GatewayError, WebhookSignatureError

from payments.gateway.port import GatewayEvent, IntentStatus, PaymentGateway, PaymentIntent, parse_event

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.intents: dict[str, PaymentIntent] = {}
        self.metadata: dict[str, dict[str, str]] = {}
        self._by_idempotency_key: dict[str, str] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _check_available(self) -> None:
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, code="fake_failure")

    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_payment_intent",
                "amount_minor": amount_minor,
                "currency": currency,
                "metadata": dict(metadata),
                "idempotency_key": idempotency_key,
            }
        )
        self._check_available()

        existing = self._by_idempotency_key.get(idempotency_key)
        if existing is not None:
            return self.intents[existing]

        intent_id = f"pi_fake_{uuid4().hex[:14]}"
        intent = PaymentIntent(
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:10]}",
            status=IntentStatus.REQUIRES_PAYMENT_METHOD,
            amount=amount_minor,
        )
        self.intents[intent_id] = intent
        self.metadata[intent_id] = dict(metadata)
        self._by_idempotency_key[idempotency_key] = intent_id
        return intent

    def update_payment_intent(self, intent_id: str, amount_minor: int) -> PaymentIntent:
        self.calls.append({"method": "update_payment_intent", "intent_id": intent_id, "amount_minor": amount_minor})
        self._check_available()
        intent = self._get(intent_id)
        updated = PaymentIntent(intent.intent_id, intent.client_secret, intent.status, amount_minor)
        self.intents[intent_id] = updated
        return updated

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        self.calls.append({"method": "retrieve_payment_intent", "intent_id": intent_id})
        self._check_available()
        return self._get(intent_id)

    def _get(self, intent_id: str) -> PaymentIntent:
        try:
            return self.intents[intent_id]
        except KeyError:
            raise GatewayError(f"No such payment_intent: {intent_id}", code="resource_missing") from None

    def set_intent_status(self, intent_id: str, status: str) -> None:
        """Simulate a status change on the gateway side (e.g. customer paid, intent canceled)."""
        intent = self._get(intent_id)
        self.intents[intent_id] = PaymentIntent(intent.intent_id, intent.client_secret, status, intent.amount)

    def construct_webhook_event(self, payload: bytes, signature: str) -> GatewayEvent:
        if signature != TEST_SIGNATURE:
            raise WebhookSignatureError("Invalid webhook signature")
        try:
            event = json.loads(payload)
        except ValueError:
            raise WebhookSignatureError("Webhook payload is not valid JSON") from None
        return parse_event(event)

    def build_webhook_payload(
        self,
        intent_id: str,
        event_type: str = "payment_intent.succeeded",
        event_id: str | None = None,
        failure_reason: str | None = None,
    ) -> bytes:
        """Stripe-shaped webhook body for an intent this gateway created."""
        intent = self.intents.get(intent_id)
        data = {
            "id": intent_id,
            "object": "payment_intent",
            "amount": intent.amount if intent else None,
            "status": "succeeded" if event_type == "payment_intent.succeeded" else "requires_payment_method",
            "metadata": self.metadata.get(intent_id, {}),
            "latest_charge": f"ch_fake_{uuid4().hex[:14]}" if event_type == "payment_intent.succeeded" else None,
        }
        if failure_reason:
            data["last_payment_error"] = {"message": failure_reason}
        return json.dumps(
            {
                "id": event_id or f"evt_fake_{uuid4().hex[:14]}",
                "type": event_type,
                "data": {"object": data},
            }
        ).encode("utf-8")

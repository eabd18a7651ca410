"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and StripeGateway
(production) without changing any domain or application code.

Amounts cross this boundary in minor units (paise, cents). Adapters raise
``GatewayError`` for transport or API failures and ``WebhookSignatureError``
for payloads that fail verification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from shared.errors import WebhookSignatureError


class IntentStatus:
    """Payment intent statuses the ordering core acts on."""

    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    PROCESSING = "processing"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"


@dataclass(frozen=True)
class PaymentIntent:
    """A gateway-side payment intent."""

    intent_id: str
    client_secret: str
    status: str
    amount: int


@dataclass(frozen=True)
class GatewayEvent:
    """A verified webhook event, reduced to what settlement needs."""

    event_id: str
    event_type: str
    intent_id: str | None = None
    order_id: str | None = None
    payment_id: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntent:
        """Create an intent. Repeating the idempotency key returns the same intent."""
        ...

    @abstractmethod
    def update_payment_intent(self, intent_id: str, amount_minor: int) -> PaymentIntent:
        """Change the amount of an open intent."""
        ...

    @abstractmethod
    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch the current state of an intent."""
        ...

    @abstractmethod
    def construct_webhook_event(self, payload: bytes, signature: str) -> GatewayEvent:
        """Verify a webhook payload and parse it into a GatewayEvent."""
        ...


def parse_event(event: dict) -> GatewayEvent:
    """Reduce a Stripe-shaped event dict to a GatewayEvent."""
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise WebhookSignatureError("Webhook payload is not a gateway event")

    obj = (event.get("data") or {}).get("object") or {}
    metadata = obj.get("metadata") or {}
    last_error = obj.get("last_payment_error") or {}
    intent_id = obj.get("id") if obj.get("object", "payment_intent") == "payment_intent" else None
    return GatewayEvent(
        event_id=event["id"],
        event_type=event["type"],
        intent_id=intent_id,
        order_id=metadata.get("order_id"),
        payment_id=obj.get("latest_charge") or intent_id,
        failure_reason=last_error.get("message"),
    )

"""Stripe payment gateway adapter (stripe-python SDK).

Every request carries the adapter's own API key instead of relying on the
module-level ``stripe.api_key``, is bounded by the configured timeout, and
creation always sends an idempotency key so a retried request returns the
intent Stripe already created.
"""

import json

import stripe
import structlog
from shared.errors import GatewayError, WebhookSignatureError

from payments.gateway.port import GatewayEvent, PaymentGateway, PaymentIntent, parse_event

logger = structlog.get_logger(__name__)


def _to_intent(obj) -> PaymentIntent:
    return PaymentIntent(
        intent_id=obj["id"],
        client_secret=obj["client_secret"],
        status=obj["status"],
        amount=obj["amount"],
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        timeout: float = 10.0,
        max_network_retries: int = 0,
    ) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.max_network_retries = max_network_retries

        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = max_network_retries

    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(
                "stripe_create_intent_failed",
                idempotency_key=idempotency_key,
                code=getattr(e, "code", None),
                error=str(e),
            )
            raise GatewayError(f"Payment gateway error: {e.user_message or e}", code=getattr(e, "code", None)) from e
        return _to_intent(intent)

    def update_payment_intent(self, intent_id: str, amount_minor: int) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.modify(intent_id, amount=amount_minor, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.warning("stripe_update_intent_failed", payment_intent_id=intent_id, error=str(e))
            raise GatewayError(f"Payment gateway error: {e.user_message or e}", code=getattr(e, "code", None)) from e
        return _to_intent(intent)

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.warning("stripe_retrieve_intent_failed", payment_intent_id=intent_id, error=str(e))
            raise GatewayError(f"Payment gateway error: {e.user_message or e}", code=getattr(e, "code", None)) from e
        return _to_intent(intent)

    def construct_webhook_event(self, payload: bytes, signature: str) -> GatewayEvent:
        if not signature:
            raise WebhookSignatureError("Missing Stripe signature header")
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Webhook signature verification failed: {e}") from e
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid webhook payload: {e}") from e

        return parse_event(json.loads(payload))

"""Payment intent — command and handler.

Creates a gateway payment intent for a pending order, or reuses the one the
order already holds. An intent is only replaced when the gateway reports it
canceled, or when it can no longer be retrieved or updated. A succeeded or
processing intent is never replaced: the order is waiting for its webhook.
"""

import structlog
from payments.gateway import get_currency, get_gateway
from payments.gateway.port import IntentStatus, PaymentGateway, PaymentIntent
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain
from shared.errors import GatewayError, InvalidStateError

from ordering.domain import ordering
from ordering.order.order import Order

logger = structlog.get_logger(__name__)

_CREATE_ATTEMPTS = 2

# Currencies the gateway charges in whole units (no minor unit)
_ZERO_DECIMAL_CURRENCIES = frozenset(
    {"bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf"}
)


def to_minor_units(amount: float, currency: str) -> int:
    """Convert a price to the gateway's smallest currency unit (paise, cents, yen)."""
    if currency.lower() in _ZERO_DECIMAL_CURRENCIES:
        return int(round(amount))
    return int(round(amount * 100))


@ordering.command(part_of="Order")
class RequestPaymentIntent:
    order_id = Identifier(required=True)
    consumer_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class RequestPaymentIntentHandler:
    @handle(RequestPaymentIntent)
    def request_payment_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assert_placed_by(command.consumer_id)
        order.assert_can_request_payment()

        gateway = get_gateway()
        currency = get_currency()
        amount_minor = to_minor_units(order.total_price, currency)

        intent = None
        if order.payment_intent_id:
            intent = self._reuse_intent(gateway, order, amount_minor)
        if intent is None:
            intent = self._create_intent(gateway, order, amount_minor, currency)

        order.record_payment_intent(intent.intent_id)
        repo.add(order)
        return intent.client_secret

    def _reuse_intent(self, gateway: PaymentGateway, order: Order, amount_minor: int) -> PaymentIntent | None:
        try:
            intent = gateway.retrieve_payment_intent(order.payment_intent_id)
        except GatewayError as exc:
            logger.warning(
                "payment_intent_retrieve_failed",
                order_id=str(order.id),
                payment_intent_id=order.payment_intent_id,
                error=str(exc),
            )
            return None

        if intent.status == IntentStatus.SUCCEEDED:
            raise InvalidStateError(
                {"payment_status": ["Payment has already been captured and is awaiting confirmation"]}
            )
        if intent.status == IntentStatus.PROCESSING:
            raise InvalidStateError({"payment_status": ["Payment is already being processed"]})
        if intent.status == IntentStatus.CANCELED:
            logger.info("payment_intent_canceled", order_id=str(order.id), payment_intent_id=intent.intent_id)
            return None

        if intent.amount == amount_minor:
            return intent

        try:
            return gateway.update_payment_intent(intent.intent_id, amount_minor)
        except GatewayError as exc:
            logger.warning(
                "payment_intent_update_failed",
                order_id=str(order.id),
                payment_intent_id=intent.intent_id,
                error=str(exc),
            )
            return None

    def _create_intent(
        self, gateway: PaymentGateway, order: Order, amount_minor: int, currency: str
    ) -> PaymentIntent:
        idempotency_key = order.next_idempotency_key()
        metadata = {
            "order_id": str(order.id),
            "product_id": str(order.product_id),
            "farmer_id": str(order.farmer_id),
            "consumer_id": str(order.consumer_id),
        }

        for attempt in range(1, _CREATE_ATTEMPTS + 1):
            try:
                intent = gateway.create_payment_intent(
                    amount_minor=amount_minor,
                    currency=currency,
                    metadata=metadata,
                    idempotency_key=idempotency_key,
                )
            except GatewayError as exc:
                if attempt == _CREATE_ATTEMPTS:
                    raise
                logger.warning(
                    "payment_intent_create_retry",
                    order_id=str(order.id),
                    idempotency_key=idempotency_key,
                    error=str(exc),
                )
            else:
                logger.info(
                    "payment_intent_created",
                    order_id=str(order.id),
                    payment_intent_id=intent.intent_id,
                    amount_minor=amount_minor,
                )
                return intent

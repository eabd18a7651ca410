"""Order service — the application entry point used by the HTTP layer.

Each mutation is a Protean command processed synchronously. Writers of one
order are serialised by the aggregate's version check: a write based on a
stale copy raises ``ExpectedVersionError``, Protean re-runs the handler on a
fresh copy, and a conflict that outlives those retries reaches the caller as
``OrderBusyError``. Within one process the order lock queues writers up front
so they rarely get that far.

Domain errors propagate unchanged. Store failures are reported as a retryable
``PersistenceError``.
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from payments.gateway import get_gateway
from protean.exceptions import DatabaseError, ExpectedVersionError, ObjectNotFoundError, TransactionError
from protean.utils.globals import current_domain
from shared.errors import OrderBusyError, PersistenceError, WebhookSignatureError

from ordering.farmer.farmer import Farmer
from ordering.order.creation import PlaceOrder
from ordering.order.fulfillment import UpdateFulfillmentStatus
from ordering.order.locking import OrderLocks
from ordering.order.order import Order, PaymentStatus
from ordering.order.payment import RequestPaymentIntent
from ordering.order.review import MarkOrderReviewed
from ordering.order.settlement import PAYMENT_FAILED, PAYMENT_SUCCEEDED, SettlePayment
from ordering.order.view import OrderView
from ordering.product.product import Product

logger = structlog.get_logger(__name__)

# Failures of the store itself. Anything else is a bug or a domain error and
# propagates unchanged.
_STORE_ERRORS = (DatabaseError, TransactionError, OSError)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except ExpectedVersionError as exc:
        logger.warning("order_version_conflict", operation=operation, error=str(exc))
        raise OrderBusyError("Order was changed by another request, retry shortly") from exc
    except _STORE_ERRORS as exc:
        logger.exception("order_store_failure", operation=operation)
        raise PersistenceError("Order store is unavailable, retry shortly") from exc


class OrderService:
    def __init__(self, locks: OrderLocks | None = None) -> None:
        self.locks = locks or OrderLocks()

    def _process(self, command, order_id: str | None = None):
        operation = command.__class__.__name__
        with _store_errors(operation):
            if order_id is None:
                return current_domain.process(command, asynchronous=False)
            with self.locks.hold(order_id):
                return current_domain.process(command, asynchronous=False)

    @staticmethod
    def _orders():
        return current_domain.repository_for(Order)

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def place_order(
        self,
        consumer_id: str,
        farmer_id: str,
        product_id: str,
        quantity: int,
        total_price: float,
        consumer_details: dict,
    ) -> Order:
        order_id = self._process(
            PlaceOrder(
                consumer_id=consumer_id,
                farmer_id=farmer_id,
                product_id=product_id,
                quantity=quantity,
                total_price=total_price,
                consumer_details=json.dumps(consumer_details or {}),
            )
        )
        logger.info("order_placed", order_id=order_id, consumer_id=str(consumer_id), farmer_id=str(farmer_id))
        return self.get_order(order_id, consumer_id)

    def create_payment_intent(self, order_id: str, caller_id: str) -> str:
        """Return the client secret of a fresh or reused payment intent."""
        return self._process(
            RequestPaymentIntent(order_id=order_id, consumer_id=caller_id),
            order_id=order_id,
        )

    def handle_webhook_event(self, payload: bytes, signature: str) -> None:
        try:
            event = get_gateway().construct_webhook_event(payload, signature)
        except WebhookSignatureError as exc:
            logger.warning("webhook_signature_rejected", error=str(exc))
            raise

        if event.event_type not in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
            logger.info("webhook_event_unhandled", event_id=event.event_id, event_type=event.event_type)
            return

        order_id = self._resolve_order_id(event)
        if order_id is None:
            logger.warning(
                "webhook_order_unknown",
                event_id=event.event_id,
                payment_intent_id=event.intent_id,
                order_id=event.order_id,
            )
            return

        self._process(
            SettlePayment(
                event_id=event.event_id,
                event_type=event.event_type,
                order_id=order_id,
                payment_intent_id=event.intent_id,
                payment_id=event.payment_id,
                failure_reason=event.failure_reason,
            ),
            order_id=order_id,
        )

    def _resolve_order_id(self, event) -> str | None:
        with _store_errors("resolve_webhook_order"):
            if event.order_id:
                try:
                    return str(self._orders().get(event.order_id).id)
                except ObjectNotFoundError:
                    pass
            if event.intent_id:
                order = self._orders().find_by_payment_intent(event.intent_id)
                if order is not None:
                    return str(order.id)
        return None

    def update_fulfillment_status(
        self,
        order_id: str,
        farmer_id: str,
        status: str,
        rejection_reason: str | None = None,
    ) -> Order:
        self._process(
            UpdateFulfillmentStatus(
                order_id=order_id,
                farmer_id=farmer_id,
                status=status,
                rejection_reason=rejection_reason,
            ),
            order_id=order_id,
        )
        logger.info("order_status_updated", order_id=str(order_id), status=status)
        return self.get_order(order_id, farmer_id)

    def mark_reviewed(self, order_id: str, consumer_id: str) -> Order:
        self._process(
            MarkOrderReviewed(order_id=order_id, consumer_id=consumer_id),
            order_id=order_id,
        )
        return self.get_order(order_id, consumer_id)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id: str, caller_id: str) -> Order:
        with _store_errors("get_order"):
            order = self._orders().get(order_id)
        order.assert_visible_to(caller_id)
        return order

    def get_payment_status(self, order_id: str, caller_id: str) -> dict:
        order = self.get_order(order_id, caller_id)
        return {
            "payment_status": order.payment_status or PaymentStatus.NOT_PAID.value,
            "payment_id": order.payment_id,
        }

    def orders_for_consumer(self, consumer_id: str) -> list[Order]:
        with _store_errors("orders_for_consumer"):
            return self._orders().for_consumer(consumer_id)

    def orders_for_farmer(self, farmer_id: str) -> list[Order]:
        with _store_errors("orders_for_farmer"):
            return self._orders().for_farmer(farmer_id)

    def farmer_total_orders(self, farmer_id: str) -> int:
        with _store_errors("farmer_total_orders"):
            farmer = current_domain.repository_for(Farmer).get(farmer_id)
        return farmer.total_orders or 0

    def describe(self, orders: list[Order]) -> list[OrderView]:
        """Join orders with their product and farmer, loading each record once."""
        cache: dict[tuple[type, str], object] = {}

        def lookup(aggregate_cls, identifier):
            key = (aggregate_cls, str(identifier))
            if key not in cache:
                try:
                    cache[key] = current_domain.repository_for(aggregate_cls).get(identifier)
                except ObjectNotFoundError:
                    cache[key] = None
            return cache[key]

        with _store_errors("describe_orders"):
            return [
                OrderView(
                    order=order,
                    product=lookup(Product, order.product_id),
                    farmer=lookup(Farmer, order.farmer_id),
                )
                for order in orders
            ]


_service: OrderService | None = None


def get_order_service() -> OrderService:
    """Process-wide service, so every request shares one lock registry."""
    global _service
    if _service is None:
        _service = OrderService()
    return _service

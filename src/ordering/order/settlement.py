"""Webhook settlement — idempotency ledger, command and handler.

A gateway may deliver the same event more than once, or deliver a success
after a failure for the same intent. Two guards make redelivery harmless:

- ``ProcessedWebhookEvent`` records every gateway event id that has been
  handled; a second delivery of the same id is acknowledged without touching
  the order.
- ``Order.count_towards_farmer()`` hands out the farmer/product counter credit
  exactly once per order, whichever path (settlement or completion) gets
  there first.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.farmer.farmer import Farmer
from ordering.order.order import Order, OrderStatus
from ordering.product.product import Product

logger = structlog.get_logger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class SettlementOutcome(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@ordering.aggregate
class ProcessedWebhookEvent:
    event_id = Identifier(identifier=True, required=True)
    event_type = String(required=True, max_length=100)
    order_id = Identifier()
    outcome = String(max_length=20, choices=SettlementOutcome, required=True)
    processed_at = DateTime(required=True)


def credit_order_counters(order: Order) -> None:
    """Increment the farmer's and the product's order totals, once per order."""
    if not order.count_towards_farmer():
        return

    for aggregate_cls, identifier in ((Farmer, order.farmer_id), (Product, order.product_id)):
        repo = current_domain.repository_for(aggregate_cls)
        try:
            record = repo.get(identifier)
        except ObjectNotFoundError:
            logger.warning(
                "order_counter_target_missing",
                order_id=str(order.id),
                target=aggregate_cls.__name__,
                target_id=str(identifier),
            )
            continue
        record.record_order()
        repo.add(record)


@ordering.command(part_of="Order")
class SettlePayment:
    """Apply a verified gateway payment event to its order."""

    event_id = String(required=True, max_length=255)
    event_type = String(required=True, max_length=100)
    order_id = Identifier(required=True)
    payment_intent_id = String(required=True, max_length=255)
    payment_id = String(max_length=255)
    failure_reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class SettlePaymentHandler:
    @handle(SettlePayment)
    def settle_payment(self, command):
        ledger = current_domain.repository_for(ProcessedWebhookEvent)
        try:
            ledger.get(command.event_id)
        except ObjectNotFoundError:
            pass
        else:
            logger.info("webhook_event_duplicate", event_id=command.event_id, order_id=str(command.order_id))
            return False

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if command.event_type == PAYMENT_SUCCEEDED:
            applied = order.settle_payment_succeeded(
                payment_intent_id=command.payment_intent_id,
                payment_id=command.payment_id or command.payment_intent_id,
            )
            if applied and order.status != OrderStatus.REJECTED.value:
                credit_order_counters(order)
        else:
            applied = order.settle_payment_failed(
                payment_intent_id=command.payment_intent_id,
                payment_id=command.payment_id,
                reason=command.failure_reason,
            )

        repo.add(order)
        ledger.add(
            ProcessedWebhookEvent(
                event_id=command.event_id,
                event_type=command.event_type,
                order_id=command.order_id,
                outcome=(SettlementOutcome.APPLIED if applied else SettlementOutcome.IGNORED).value,
                processed_at=datetime.now(UTC),
            )
        )

        logger.info(
            "webhook_event_settled",
            event_id=command.event_id,
            event_type=command.event_type,
            order_id=str(order.id),
            applied=applied,
            status=order.status,
            payment_status=order.payment_status,
        )
        return applied

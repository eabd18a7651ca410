"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes. They are
raised by the aggregate and persisted with it when the unit of work commits.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A consumer placed an order against a farmer's product."""

    __version__ = 1

    order_id = Identifier(required=True)
    consumer_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    total_price = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentIntentRequested:
    """A payment intent was created or refreshed for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    attempt_number = Integer(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    """The gateway confirmed a successful payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    payment_id = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaymentFailed:
    """The gateway reported a failed payment attempt."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_intent_id = String(required=True)
    payment_id = String()
    reason = String()
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderAccepted:
    """The order moved to accepted, by payment or by the farmer."""

    __version__ = 1

    order_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    accepted_by = String(required=True)  # "payment" or "farmer"
    accepted_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRejected:
    """The farmer rejected the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    reason = String(required=True)
    rejected_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCompleted:
    """The farmer marked the order as fulfilled."""

    __version__ = 1

    order_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    payment_status = String(required=True)
    completed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderFlaggedForReconciliation:
    """Payment and fulfillment disagree; a person has to resolve the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    note = String(required=True)
    flagged_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReviewed:
    """The consumer left a review for the ordered product."""

    __version__ = 1

    order_id = Identifier(required=True)
    consumer_id = Identifier(required=True)
    reviewed_at = DateTime(required=True)

"""Order aggregate (CQRS) — the core of the ordering domain.

An Order tracks two independent lifecycles for one consumer purchase: the
farmer-controlled fulfillment ``status`` and the gateway-driven
``payment_status``. Both are closed enums whose legal moves live in the
transition tables below; every mutation goes through a method on the aggregate
so the tables are enforced in exactly one place.

Fulfillment:
    PENDING → ACCEPTED → COMPLETED
    PENDING → REJECTED
    (REJECTED and COMPLETED are terminal)

Payment:
    NOT_PAID → PROCESSING → PAID
    PROCESSING → FAILED → PROCESSING (retry)
    FAILED → PAID (a later attempt on the same intent succeeded)
    (PAID is terminal)

A successful payment promotes a PENDING order to ACCEPTED. It never overrides
a farmer's rejection: a paid-but-rejected order is flagged for manual
reconciliation instead.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    Identifier,
    Integer,
    String,
    ValueObject,
)
from shared.errors import ForbiddenError, InvalidStateError, InvalidTransitionError

from ordering.domain import ordering
from ordering.order.events import (
    OrderAccepted,
    OrderCompleted,
    OrderFlaggedForReconciliation,
    OrderPaid,
    OrderPaymentFailed,
    OrderPlaced,
    OrderRejected,
    OrderReviewed,
    PaymentIntentRequested,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class PaymentStatus(Enum):
    NOT_PAID = "not_paid"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


_FULFILLMENT_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.REJECTED},
    OrderStatus.ACCEPTED: {OrderStatus.COMPLETED},
    OrderStatus.REJECTED: set(),  # Terminal
    OrderStatus.COMPLETED: set(),  # Terminal
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.NOT_PAID: {PaymentStatus.PROCESSING},
    PaymentStatus.PROCESSING: {PaymentStatus.PROCESSING, PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PROCESSING, PaymentStatus.PAID},
    PaymentStatus.PAID: set(),  # Terminal
}

_REQUIRED_CONSUMER_DETAILS = ("full_name", "phone", "address")
_OPTIONAL_CONSUMER_DETAILS = ("delivery_instructions",)


def _clean_consumer_details(raw) -> dict:
    """Stripped copy of the delivery contact, or ``ValidationError``."""
    if not isinstance(raw, dict):
        raise ValidationError({"consumer_details": ["must be an object"]})

    cleaned, errors = {}, {}
    for name in _REQUIRED_CONSUMER_DETAILS + _OPTIONAL_CONSUMER_DETAILS:
        value = raw.get(name)
        if value is not None and not isinstance(value, str):
            errors[f"consumer_details.{name}"] = ["must be a string"]
        elif value and value.strip():
            cleaned[name] = value.strip()
        elif name in _REQUIRED_CONSUMER_DETAILS:
            errors[f"consumer_details.{name}"] = ["is required"]
    if errors:
        raise ValidationError(errors)
    return cleaned


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ConsumerDetails:
    """Delivery contact captured when the order is placed.

    Later profile edits do not touch historical orders.
    """

    full_name = String(required=True, max_length=150)
    phone = String(required=True, max_length=30)
    address = String(required=True, max_length=500)
    delivery_instructions = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    consumer_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    total_price = Float(required=True, min_value=0.0)
    consumer_details = ValueObject(ConsumerDetails, required=True)
    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    rejection_reason = String(max_length=500)
    payment_status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.NOT_PAID.value,
    )
    payment_intent_id = String(max_length=255)
    payment_id = String(max_length=255)
    payment_attempts = Integer(default=0)
    farmer_order_counted = Boolean(default=False)
    requires_reconciliation = Boolean(default=False)
    reconciliation_note = String(max_length=500)
    has_reviewed = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def rejection_reason_only_when_rejected(self):
        rejected = self.status == OrderStatus.REJECTED.value
        if rejected and not self.rejection_reason:
            raise ValidationError({"rejection_reason": ["A rejected order must carry a rejection reason"]})
        if not rejected and self.rejection_reason:
            raise ValidationError({"rejection_reason": ["Only rejected orders carry a rejection reason"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        consumer_id: str,
        farmer_id: str,
        product_id: str,
        quantity: int,
        total_price: float,
        consumer_details: dict,
    ):
        """Place a new order. The price is fixed here and never recomputed."""
        details = _clean_consumer_details(consumer_details)

        now = datetime.now(UTC)
        order = cls(
            consumer_id=consumer_id,
            farmer_id=farmer_id,
            product_id=product_id,
            quantity=quantity,
            total_price=total_price,
            consumer_details=ConsumerDetails(
                full_name=details["full_name"],
                phone=details["phone"],
                address=details["address"],
                delivery_instructions=details.get("delivery_instructions"),
            ),
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.NOT_PAID.value,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                consumer_id=consumer_id,
                farmer_id=farmer_id,
                product_id=product_id,
                quantity=order.quantity,
                total_price=order.total_price,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _FULFILLMENT_TRANSITIONS[current]:
            raise InvalidTransitionError(
                {"status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    def _move_payment(self, target: PaymentStatus) -> None:
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS[current]:
            raise InvalidStateError(
                {"payment_status": [f"Cannot move payment from {current.value} to {target.value}"]}
            )
        self.payment_status = target.value

    def _touch(self) -> datetime:
        now = datetime.now(UTC)
        self.updated_at = now
        return now

    def _flag_for_reconciliation(self, note: str, now: datetime) -> None:
        self.requires_reconciliation = True
        self.reconciliation_note = note
        self.raise_(
            OrderFlaggedForReconciliation(
                order_id=str(self.id),
                note=note,
                flagged_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Access checks
    # -------------------------------------------------------------------
    def assert_placed_by(self, consumer_id: str) -> None:
        if str(self.consumer_id) != str(consumer_id):
            raise ForbiddenError("You are not authorized to act on this order")

    def assert_owned_by(self, farmer_id: str) -> None:
        if str(self.farmer_id) != str(farmer_id):
            raise ForbiddenError("Not authorized to update this order")

    def assert_visible_to(self, caller_id: str) -> None:
        if str(caller_id) not in (str(self.consumer_id), str(self.farmer_id)):
            raise ForbiddenError("You are not authorized to view this order")

    # -------------------------------------------------------------------
    # Payment intent
    # -------------------------------------------------------------------
    def assert_can_request_payment(self) -> None:
        """An intent may only be requested for a pending, unpaid, non-free order."""
        if OrderStatus(self.status) != OrderStatus.PENDING:
            raise InvalidStateError({"status": [f"Cannot process payment for an order with status: {self.status}"]})
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            raise InvalidStateError({"payment_status": ["Order has already been paid"]})
        if not self.total_price:
            raise InvalidStateError({"total_price": ["A free order has nothing to pay"]})

    def next_idempotency_key(self) -> str:
        """Gateway idempotency key for the next new intent of this order.

        Stable until an intent is recorded, so a retried request after a
        timeout or a failed store write gets the same intent back.
        """
        return f"order-{self.id}-intent-{(self.payment_attempts or 0) + 1}"

    def record_payment_intent(self, payment_intent_id: str) -> None:
        """Store the created or reused intent and mark the payment as processing."""
        self.assert_can_request_payment()

        if payment_intent_id != self.payment_intent_id:
            self.payment_attempts = (self.payment_attempts or 0) + 1
            self.payment_intent_id = payment_intent_id
        self._move_payment(PaymentStatus.PROCESSING)

        now = self._touch()
        self.raise_(
            PaymentIntentRequested(
                order_id=str(self.id),
                payment_intent_id=payment_intent_id,
                attempt_number=self.payment_attempts,
                requested_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------
    def settle_payment_succeeded(self, payment_intent_id: str, payment_id: str) -> bool:
        """Apply a successful payment. Returns False when nothing changed."""
        now = datetime.now(UTC)

        if payment_intent_id != self.payment_intent_id:
            note = f"Payment {payment_id} captured on superseded intent {payment_intent_id}"
            if self.reconciliation_note == note:
                return False
            self.updated_at = now
            self._flag_for_reconciliation(note, now)
            return False

        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            return False

        self._move_payment(PaymentStatus.PAID)
        self.payment_id = payment_id
        self.updated_at = now
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                farmer_id=str(self.farmer_id),
                payment_intent_id=payment_intent_id,
                payment_id=payment_id,
                amount=self.total_price,
                paid_at=now,
            )
        )

        status = OrderStatus(self.status)
        if status == OrderStatus.PENDING:
            self.status = OrderStatus.ACCEPTED.value
            self.raise_(
                OrderAccepted(
                    order_id=str(self.id),
                    farmer_id=str(self.farmer_id),
                    accepted_by="payment",
                    accepted_at=now,
                )
            )
        elif status == OrderStatus.REJECTED:
            self._flag_for_reconciliation(f"Payment {payment_id} received for a rejected order", now)
        return True

    def settle_payment_failed(self, payment_intent_id: str, payment_id: str | None, reason: str | None) -> bool:
        """Apply a failed payment attempt. Fulfillment status is left alone."""
        if payment_intent_id != self.payment_intent_id:
            return False
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            return False

        if PaymentStatus(self.payment_status) != PaymentStatus.FAILED:
            self._move_payment(PaymentStatus.FAILED)
        self.payment_id = payment_id

        now = self._touch()
        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                payment_intent_id=payment_intent_id,
                payment_id=payment_id,
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def count_towards_farmer(self) -> bool:
        """Claim the one-time credit to the farmer's order counters."""
        if self.farmer_order_counted:
            return False
        self.farmer_order_counted = True
        return True

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def update_fulfillment_status(
        self,
        farmer_id: str,
        new_status: str,
        rejection_reason: str | None = None,
    ) -> None:
        """Farmer-driven move along the fulfillment table."""
        self.assert_owned_by(farmer_id)

        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {new_status}"]}) from None

        current = OrderStatus(self.status)
        if target == current:
            raise InvalidTransitionError({"status": [f"Order is already {current.value}"]})
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        if target == OrderStatus.REJECTED:
            reason = (rejection_reason or "").strip()
            if not reason:
                raise ValidationError({"rejection_reason": ["A rejection reason is required"]})
            with atomic_change(self):
                self.status = target.value
                self.rejection_reason = reason
                self.updated_at = now
            self.raise_(
                OrderRejected(
                    order_id=str(self.id),
                    farmer_id=str(self.farmer_id),
                    reason=reason,
                    rejected_at=now,
                )
            )
            return

        self.status = target.value
        self.updated_at = now
        if target == OrderStatus.ACCEPTED:
            self.raise_(
                OrderAccepted(
                    order_id=str(self.id),
                    farmer_id=str(self.farmer_id),
                    accepted_by="farmer",
                    accepted_at=now,
                )
            )
        else:
            self.raise_(
                OrderCompleted(
                    order_id=str(self.id),
                    farmer_id=str(self.farmer_id),
                    payment_status=self.payment_status,
                    completed_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Reviews
    # -------------------------------------------------------------------
    def mark_reviewed(self, consumer_id: str) -> None:
        self.assert_placed_by(consumer_id)
        if self.has_reviewed:
            raise InvalidStateError({"has_reviewed": ["Order has already been reviewed"]})

        self.has_reviewed = True
        now = self._touch()
        self.raise_(
            OrderReviewed(
                order_id=str(self.id),
                consumer_id=str(self.consumer_id),
                reviewed_at=now,
            )
        )

"""Fulfillment status — command and handler.

The farmer moves an order along pending → accepted → completed, or rejects a
pending order. Completing an order credits the farmer's counters if the
payment webhook has not already done so.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.order.settlement import credit_order_counters


@ordering.command(part_of="Order")
class UpdateFulfillmentStatus:
    order_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    rejection_reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class UpdateFulfillmentStatusHandler:
    @handle(UpdateFulfillmentStatus)
    def update_fulfillment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_fulfillment_status(
            farmer_id=command.farmer_id,
            new_status=command.status,
            rejection_reason=command.rejection_reason,
        )
        if order.status == OrderStatus.COMPLETED.value:
            credit_order_counters(order)
        repo.add(order)

"""Order review flag — command and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class MarkOrderReviewed:
    order_id = Identifier(required=True)
    consumer_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class MarkOrderReviewedHandler:
    @handle(MarkOrderReviewed)
    def mark_order_reviewed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_reviewed(command.consumer_id)
        repo.add(order)

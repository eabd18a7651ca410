"""Order placement — command and handler."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.farmer.farmer import Farmer
from ordering.order.order import Order
from ordering.product.product import Product


@ordering.command(part_of="Order")
class PlaceOrder:
    consumer_id = Identifier(required=True)
    farmer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    total_price = Float(required=True, min_value=0.0)
    consumer_details = Text(required=True)  # JSON: {full_name, phone, address, delivery_instructions}


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        try:
            consumer_details = json.loads(command.consumer_details)
        except (TypeError, ValueError):
            raise ValidationError({"consumer_details": ["must be a JSON object"]}) from None

        # Both raise ObjectNotFoundError when unknown
        product = current_domain.repository_for(Product).get(command.product_id)
        current_domain.repository_for(Farmer).get(command.farmer_id)

        if not product.available:
            raise ValidationError({"product_id": ["Product is not available for ordering"]})
        if str(product.farmer_id) != str(command.farmer_id):
            raise ValidationError({"farmer_id": ["Product is not sold by this farmer"]})

        order = Order.create(
            consumer_id=command.consumer_id,
            farmer_id=command.farmer_id,
            product_id=command.product_id,
            quantity=command.quantity,
            total_price=command.total_price,
            consumer_details=consumer_details,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

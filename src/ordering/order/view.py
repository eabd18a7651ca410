"""Read-side join of an order with the product and farmer it refers to."""

from dataclasses import dataclass

from ordering.farmer.farmer import Farmer
from ordering.order.order import Order
from ordering.product.product import Product


@dataclass(frozen=True)
class OrderView:
    """An order as the consumer and farmer screens show it.

    ``product`` and ``farmer`` are None when the referenced record is gone.
    """

    order: Order
    product: Product | None
    farmer: Farmer | None

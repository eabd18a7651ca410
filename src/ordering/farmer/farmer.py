"""Farmer aggregate — the seller side of an order."""

from protean.fields import Integer, String

from ordering.domain import ordering


@ordering.aggregate
class Farmer:
    full_name = String(required=True, max_length=150)
    farm_name = String(max_length=200)
    phone = String(max_length=30)
    location = String(max_length=200)
    total_orders = Integer(default=0)

    def record_order(self) -> None:
        self.total_orders = (self.total_orders or 0) + 1

"""Product aggregate — the slice of a farmer's listing that ordering needs.

Ordering only cares whether a product can be ordered, which farmer owns it,
how many orders it has been credited with, and what an order view shows of it.
"""

from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String
from shared.errors import ForbiddenError

from ordering.domain import ordering


@ordering.aggregate
class Product:
    name = String(required=True, max_length=200)
    price = Float(required=True, min_value=0.0)
    unit = String(max_length=20, default="kg")
    image_url = String(max_length=500)
    farmer_id = Identifier(required=True)
    available = Boolean(default=True)
    total_orders = Integer(default=0)

    @classmethod
    def list_for_sale(
        cls,
        farmer_id: str,
        name: str,
        price: float,
        unit: str | None = None,
        image_url: str | None = None,
    ):
        if not name or not name.strip():
            raise ValidationError({"name": ["Product name is required"]})
        return cls(
            farmer_id=farmer_id,
            name=name.strip(),
            price=price,
            unit=unit or "kg",
            image_url=image_url,
            available=True,
            total_orders=0,
        )

    def delist(self, farmer_id: str) -> None:
        if str(self.farmer_id) != str(farmer_id):
            raise ForbiddenError("Only the listing farmer can delist a product")
        self.available = False

    def record_order(self) -> None:
        self.total_orders = (self.total_orders or 0) + 1

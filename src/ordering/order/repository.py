"""Repository for the Order aggregate."""

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    """Order store.

    The base repository provides ``get`` / ``add``. Orders are never removed,
    so no delete helper is exposed here.
    """

    def for_consumer(self, consumer_id: str) -> list[Order]:
        """Orders placed by a consumer, newest first."""
        return self._dao.query.filter(consumer_id=consumer_id).order_by("-created_at").all().items

    def for_farmer(self, farmer_id: str) -> list[Order]:
        """Orders placed against a farmer's products, newest first."""
        return self._dao.query.filter(farmer_id=farmer_id).order_by("-created_at").all().items

    def find_by_payment_intent(self, payment_intent_id: str) -> Order | None:
        results = self._dao.query.filter(payment_intent_id=payment_intent_id).all().items
        return results[0] if results else None

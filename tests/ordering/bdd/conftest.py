"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.farmer.registration import RegisterFarmer
from ordering.order.order import Order
from ordering.order.service import OrderService
from ordering.product.listing import ListProduct
from payments.gateway import set_gateway
from payments.gateway.fake_adapter import FakeGateway
from protean import current_domain
from pytest_bdd import given, parsers, then

_DETAILS = {"full_name": "Asha Rao", "phone": "+91 98450 00000", "address": "12 MG Road, Bengaluru"}


@pytest.fixture()
def fake_gateway():
    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def order_service():
    return OrderService()


@pytest.fixture()
def market():
    """Mutable scenario state shared between steps."""
    return {}


def _reload(order_id):
    return current_domain.repository_for(Order).get(order_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a farmer "{farmer_id}" selling "{product_name}"'))
def _farmer_with_product(market, farmer_id, product_name):
    current_domain.process(RegisterFarmer(farmer_id=farmer_id, full_name="Ravi Kumar"), asynchronous=False)
    market["farmer_id"] = farmer_id
    market["product_id"] = current_domain.process(
        ListProduct(farmer_id=farmer_id, name=product_name, price=50.0),
        asynchronous=False,
    )


@given(
    parsers.cfparse('consumer "{consumer_id}" ordered {quantity:d} units for {total:f}'),
    target_fixture="order_id",
)
def _placed_order(market, order_service, fake_gateway, consumer_id, quantity, total):
    market["consumer_id"] = consumer_id
    order = order_service.place_order(
        consumer_id=consumer_id,
        farmer_id=market["farmer_id"],
        product_id=market["product_id"],
        quantity=quantity,
        total_price=total,
        consumer_details=_DETAILS,
    )
    return str(order.id)


@given("the consumer requested a payment intent")
def _requested_intent(market, order_service, order_id):
    order_service.create_payment_intent(order_id, market["consumer_id"])


@given(parsers.cfparse('the gateway reported the payment "{outcome}"'))
def _reported_payment(order_service, fake_gateway, order_id, outcome):
    _deliver(order_service, fake_gateway, order_id, outcome)


@given(parsers.cfparse('the farmer set the status to "{status}"'))
def _farmer_set_status(market, order_service, order_id, status):
    order_service.update_fulfillment_status(order_id, market["farmer_id"], status)


def _deliver(order_service, gateway, order_id, outcome):
    event_type = "payment_intent.succeeded" if outcome == "succeeded" else "payment_intent.payment_failed"
    payload = gateway.build_webhook_payload(_reload(order_id).payment_intent_id, event_type)
    order_service.handle_webhook_event(payload, "test-signature")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _order_status(order_id, status):
    assert _reload(order_id).status == status


@then(parsers.cfparse('the payment status is "{payment_status}"'))
def _payment_status(order_id, payment_status):
    assert _reload(order_id).payment_status == payment_status


@then("the order holds a payment intent")
def _holds_intent(order_id, fake_gateway):
    assert _reload(order_id).payment_intent_id in fake_gateway.intents


@then(parsers.cfparse('the rejection reason is "{reason}"'))
def _rejection_reason(order_id, reason):
    assert _reload(order_id).rejection_reason == reason


@then(parsers.cfparse("the farmer has {count:d} order counted"))
def _farmer_count(market, order_service, count):
    assert order_service.farmer_total_orders(market["farmer_id"]) == count

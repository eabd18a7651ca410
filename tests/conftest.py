import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture

TEST_JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes!"


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Configure the environment the application reads at startup: the config
    overlay, the token secret and the in-memory payment gateway.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["AUTH_JWT_SECRET"] = TEST_JWT_SECRET
    os.environ["PAYMENT_GATEWAY"] = "fake"
    os.environ.setdefault("ORDER_LOCK_TIMEOUT_SECONDS", "5")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def run_around_tests(_ctx):
    """Fixture to automatically cleanup infrastructure after every test"""
    from payments.gateway import reset_gateway

    reset_gateway()

    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_gateway()


# ---------------------------------------------------------------------------
# Marketplace fixtures shared by the ordering and payments suites
# ---------------------------------------------------------------------------
FARMER_ID = "farmer-001"
OTHER_FARMER_ID = "farmer-002"
CONSUMER_ID = "consumer-001"
OTHER_CONSUMER_ID = "consumer-002"

CONSUMER_DETAILS = {
    "full_name": "Asha Rao",
    "phone": "+91 98450 00000",
    "address": "12 MG Road, Bengaluru",
    "delivery_instructions": "Leave at the gate",
}


@pytest.fixture()
def gateway():
    from payments.gateway import set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def service():
    from ordering.order.service import OrderService

    return OrderService()


@pytest.fixture()
def farmer_id():
    from ordering.farmer.registration import RegisterFarmer
    from protean import current_domain

    return current_domain.process(
        RegisterFarmer(
            farmer_id=FARMER_ID,
            full_name="Ravi Kumar",
            farm_name="Green Acres",
            phone="+91 99000 11111",
            location="Mysuru, Karnataka",
        ),
        asynchronous=False,
    )


@pytest.fixture()
def product_id(farmer_id):
    from ordering.product.listing import ListProduct
    from protean import current_domain

    return current_domain.process(
        ListProduct(
            farmer_id=farmer_id,
            name="Heirloom Tomatoes",
            price=150.0,
            unit="kg",
            image_url="https://cdn.farmlink.test/tomatoes.jpg",
        ),
        asynchronous=False,
    )


@pytest.fixture()
def placed_order(service, farmer_id, product_id):
    return service.place_order(
        consumer_id=CONSUMER_ID,
        farmer_id=farmer_id,
        product_id=product_id,
        quantity=3,
        total_price=450.0,
        consumer_details=CONSUMER_DETAILS,
    )


@pytest.fixture()
def consumer_id():
    return CONSUMER_ID

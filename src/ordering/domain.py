"""Ordering bounded context — orders, payment settlement and fulfillment status.

Handles the order lifecycle (CQRS), the payment-intent / webhook settlement
flow against an external gateway, and the farmer-driven fulfillment status.
Products and farmers are modelled only as far as ordering needs them.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
ordering = Domain(name="ordering")

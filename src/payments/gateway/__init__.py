"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- StripeGateway for production

The implementation is chosen by ``PAYMENT_GATEWAY`` (``fake`` or ``stripe``).
Production defaults to Stripe and refuses the fake gateway; missing Stripe
credentials raise ``ConfigurationError`` on first use, which the application
triggers at startup.
"""

import os

from protean.exceptions import ConfigurationError

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway
from payments.gateway.stripe_adapter import StripeGateway

_current_gateway: PaymentGateway | None = None


def _is_production() -> bool:
    return os.environ.get("PROTEAN_ENV", "development").lower() == "production"


def _build_gateway() -> PaymentGateway:
    kind = os.environ.get("PAYMENT_GATEWAY", "stripe" if _is_production() else "fake").lower()

    if kind == "fake":
        if _is_production():
            raise ConfigurationError("PAYMENT_GATEWAY=fake is not allowed in production")
        return FakeGateway()

    if kind == "stripe":
        api_key = os.environ.get("STRIPE_SECRET_KEY")
        webhook_secret = os.environ.get("STRIPE_WEBHOOK_SECRET")
        if not api_key or not webhook_secret:
            raise ConfigurationError("STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET must be set")
        return StripeGateway(
            api_key=api_key,
            webhook_secret=webhook_secret,
            timeout=float(os.environ.get("STRIPE_TIMEOUT_SECONDS", "10")),
            max_network_retries=int(os.environ.get("STRIPE_MAX_NETWORK_RETRIES", "0")),
        )

    raise ConfigurationError(f"Unknown PAYMENT_GATEWAY: {kind}")


def get_currency() -> str:
    """Currency for new payment intents (lower-case ISO code)."""
    return os.environ.get("PAYMENT_CURRENCY", "inr").lower()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None

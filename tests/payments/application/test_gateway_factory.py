"""Tests for environment-driven gateway selection."""

import pytest
from payments.gateway import get_currency, get_gateway, reset_gateway, set_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.stripe_adapter import StripeGateway
from protean.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _fresh_gateway():
    reset_gateway()
    yield
    reset_gateway()


class TestGatewaySelection:
    def test_fake_in_tests(self):
        assert isinstance(get_gateway(), FakeGateway)

    def test_gateway_is_cached(self):
        assert get_gateway() is get_gateway()

    def test_set_gateway_overrides(self):
        custom = FakeGateway()
        set_gateway(custom)
        assert get_gateway() is custom

    def test_stripe_selected(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "stripe")
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
        monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_123")
        monkeypatch.setenv("STRIPE_TIMEOUT_SECONDS", "4")
        gateway = get_gateway()
        assert isinstance(gateway, StripeGateway)
        assert gateway.timeout == 4.0

    def test_stripe_without_secrets_fails_fast(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "stripe")
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)
        with pytest.raises(ConfigurationError):
            get_gateway()

    def test_fake_refused_in_production(self, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        monkeypatch.setenv("PAYMENT_GATEWAY", "fake")
        with pytest.raises(ConfigurationError):
            get_gateway()

    def test_production_defaults_to_stripe(self, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "production")
        monkeypatch.delenv("PAYMENT_GATEWAY", raising=False)
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="STRIPE_SECRET_KEY"):
            get_gateway()

    def test_unknown_gateway(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "paypal")
        with pytest.raises(ConfigurationError):
            get_gateway()


class TestCurrency:
    def test_default_currency(self, monkeypatch):
        monkeypatch.delenv("PAYMENT_CURRENCY", raising=False)
        assert get_currency() == "inr"

    def test_currency_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_CURRENCY", "USD")
        assert get_currency() == "usd"

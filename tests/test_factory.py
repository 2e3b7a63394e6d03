"""
Tests para la configuración y el factory de gateways.
"""

import pytest
import structlog

from paygate.adapters.factory import get_payment_gateway
from paygate.adapters.mock_adapter import MockAdapter
from paygate.adapters.stripe_adapter import StripeAdapter
from paygate.config import Settings
from paygate.logging_config import configure_logging
from paygate.services import get_gateway_service
from paygate.utils.exceptions import TransportError


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self):
        settings = make_settings()

        assert settings.PAYMENT_PROVIDER == "mock"
        assert settings.REQUEST_TIMEOUT_SECONDS is None

    def test_stripe_config_from_settings(self):
        settings = make_settings(STRIPE_SECRET_KEY="sk_test_abc", STRIPE_CAPTURE_ON_AUTHORIZE=False)

        config = settings.stripe_config()

        assert config.api_key.get_secret_value() == "sk_test_abc"
        assert not config.capture_on_authorize

    def test_paygent_config_from_settings(self):
        settings = make_settings(
            PAYGENT_MERCHANT_ID="m-1",
            PAYGENT_CONNECT_ID="c-1",
            PAYGENT_CONNECT_PASSWORD="pw",
            PAYGENT_PRODUCTION_MODE=True,
        )

        config = settings.paygent_config()

        assert config.merchant_id == "m-1"
        assert config.connect_password.get_secret_value() == "pw"
        assert config.production_mode
        assert config.cert_password.get_secret_value() == "changeit"

    def test_secrets_hidden_in_repr(self):
        settings = make_settings(STRIPE_SECRET_KEY="sk_live_secret")

        assert "sk_live_secret" not in repr(settings)

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_PROVIDER", "stripe")
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "2.5")

        settings = make_settings()

        assert settings.PAYMENT_PROVIDER == "stripe"
        assert settings.REQUEST_TIMEOUT_SECONDS == 2.5


class TestGatewayFactory:
    def test_mock_provider(self):
        gateway = get_payment_gateway(make_settings())

        assert isinstance(gateway, MockAdapter)
        assert gateway.provider_name == "mock"

    def test_stripe_provider(self):
        gateway = get_payment_gateway(make_settings(PAYMENT_PROVIDER="stripe", STRIPE_SECRET_KEY="sk_test_abc"))

        assert isinstance(gateway, StripeAdapter)

    def test_paygent_provider_loads_tls_material(self):
        settings = make_settings(
            PAYMENT_PROVIDER="paygent",
            PAYGENT_MERCHANT_ID="m-1",
            PAYGENT_CONNECT_ID="c-1",
            PAYGENT_CONNECT_PASSWORD="pw",
        )

        # sin certificado de cliente en disco el adapter no se puede construir
        with pytest.raises(TransportError, match="TLS material"):
            get_payment_gateway(settings)

    def test_name_overrides_settings(self):
        gateway = get_payment_gateway(make_settings(STRIPE_SECRET_KEY="sk_test_abc"), name="STRIPE")

        assert isinstance(gateway, StripeAdapter)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="not supported"):
            get_payment_gateway(make_settings(), name="paypal")

    def test_gateway_service_uses_settings_timeout(self):
        service = get_gateway_service(make_settings(REQUEST_TIMEOUT_SECONDS=3))

        assert service.provider_name == "mock"
        assert service._timeout == 3


class TestLogging:
    @pytest.mark.parametrize("environment", ["development", "production"])
    def test_configure_logging(self, environment):
        configure_logging(environment, "debug")

        logger = structlog.get_logger("paygate.tests")
        logger.info("Logging configured", environment=environment)

        assert structlog.is_configured()
        structlog.reset_defaults()

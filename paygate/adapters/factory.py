"""
Factory para obtener el gateway de pago correcto.
Implementa el patrón Factory para instanciar adapters.
"""

from typing import Callable

import structlog

from paygate.adapters.base import PaymentGateway
from paygate.adapters.mock_adapter import MockAdapter
from paygate.adapters.paygent import PaygentAdapter
from paygate.adapters.stripe_adapter import StripeAdapter
from paygate.config import Settings, get_settings


logger = structlog.get_logger(__name__)


# Registro de proveedores disponibles
PROVIDERS: dict[str, Callable[[Settings], PaymentGateway]] = {
    "stripe": lambda settings: StripeAdapter(settings.stripe_config()),
    "paygent": lambda settings: PaygentAdapter(settings.paygent_config()),
    "mock": lambda settings: MockAdapter(),
}


def get_payment_gateway(
    settings: Settings | None = None,
    name: str | None = None,
) -> PaymentGateway:
    """
    Factory que retorna el adapter configurado.

    Args:
        settings: Configuración (por defecto la cacheada del entorno)
        name: Proveedor a usar en lugar de settings.PAYMENT_PROVIDER

    Returns:
        Instancia del PaymentGateway

    Raises:
        ValueError: Si el proveedor no está soportado
    """
    settings = settings or get_settings()
    provider_name = (name or settings.PAYMENT_PROVIDER).lower()

    if provider_name not in PROVIDERS:
        raise ValueError(
            f"Payment provider '{provider_name}' not supported. "
            f"Available: {list(PROVIDERS.keys())}"
        )

    gateway = PROVIDERS[provider_name](settings)

    logger.info("Payment gateway initialized", provider=provider_name)

    return gateway

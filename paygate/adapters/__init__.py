"""
Adapters para proveedores de pago.
Implementación del patrón Adapter para abstraer diferentes pasarelas.
"""

from paygate.adapters.base import PaymentGateway, validate_payment_method
from paygate.adapters.stripe_adapter import StripeAdapter
from paygate.adapters.paygent import PaygentAdapter
from paygate.adapters.mock_adapter import MockAdapter
from paygate.adapters.factory import get_payment_gateway

__all__ = [
    "PaymentGateway",
    "validate_payment_method",
    "StripeAdapter",
    "PaygentAdapter",
    "MockAdapter",
    "get_payment_gateway",
]

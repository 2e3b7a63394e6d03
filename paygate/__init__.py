"""
paygate - fachada de pagos independiente del proveedor.

Authorize, capture, refund, void, query y tarjetas guardadas sobre
Stripe, Paygent o un proveedor mock en memoria.
"""

from paygate.adapters import MockAdapter, PaygentAdapter, PaymentGateway, StripeAdapter
from paygate.config import PaygentConfig, StripeConfig
from paygate.services import GatewayService, get_gateway_service

__version__ = "1.0.0"

__all__ = [
    "GatewayService",
    "get_gateway_service",
    "PaymentGateway",
    "MockAdapter",
    "PaygentAdapter",
    "StripeAdapter",
    "PaygentConfig",
    "StripeConfig",
]

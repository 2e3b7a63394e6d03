"""
Servicios del gateway de pagos.
"""

from paygate.adapters.factory import get_payment_gateway
from paygate.config import Settings, get_settings
from paygate.services.gateway_service import GatewayService


def get_gateway_service(settings: Settings | None = None) -> GatewayService:
    """Construye la fachada sobre el proveedor configurado en settings."""
    settings = settings or get_settings()
    return GatewayService(
        get_payment_gateway(settings),
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )


__all__ = ["GatewayService", "get_gateway_service"]

"""
Excepciones del gateway de pagos.

Taxonomía común a todos los proveedores: cada adapter traduce los errores de
su SDK o transporte a una de estas clases en su frontera.
"""

from typing import Any


class GatewayError(Exception):
    """Error base del gateway de pagos."""

    def __init__(self, message: str, code: str = "GATEWAY_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidRequestError(GatewayError):
    """Validación previa fallida. Nunca se realiza I/O de red."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(
            message=f"Invalid request: {message}",
            code="INVALID_REQUEST",
        )
        self.field = field


class UnsupportedOperationError(GatewayError):
    """El adapter no implementa la operación solicitada."""

    def __init__(self, provider: str, operation: str):
        super().__init__(
            message=f"Operation '{operation}' is not supported by provider '{provider}'",
            code="UNSUPPORTED_OPERATION",
        )
        self.provider = provider
        self.operation = operation


class TransportError(GatewayError):
    """Fallo de red, TLS, timeout o cancelación por deadline."""

    def __init__(self, provider: str, message: str, cancelled: bool = False):
        super().__init__(
            message=f"Transport error ({provider}): {message}",
            code="TRANSPORT_ERROR",
        )
        self.provider = provider
        self.cancelled = cancelled


class ProviderError(GatewayError):
    """
    El proveedor devolvió una respuesta de fallo bien formada.

    El código y el detalle se conservan tal cual los envía el proveedor.
    """

    def __init__(self, provider: str, provider_code: str, detail: str = ""):
        super().__init__(
            message=f"Payment provider error ({provider}) [{provider_code}]: {detail}",
            code="PROVIDER_ERROR",
        )
        self.provider = provider
        self.provider_code = provider_code
        self.detail = detail


class ProtocolError(GatewayError):
    """La respuesta no se pudo interpretar o violó el catálogo del proveedor."""

    def __init__(self, provider: str, message: str, raw: Any = None):
        super().__init__(
            message=f"Protocol error ({provider}): {message}",
            code="PROTOCOL_ERROR",
        )
        self.provider = provider
        self.raw = raw


def require_id(value: str | None, field: str) -> str:
    """Valida que un identificador no esté vacío."""
    if value is None or not str(value).strip():
        raise InvalidRequestError(f"{field} is required", field=field)
    return str(value).strip()

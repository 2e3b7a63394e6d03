"""
Utilidades compartidas por adapters y servicios.
"""

from paygate.utils.currency import (
    MINOR_UNIT_FACTORS,
    from_minor_units,
    minor_unit_factor,
    normalize_currency,
    to_minor_units,
)
from paygate.utils.exceptions import (
    GatewayError,
    InvalidRequestError,
    ProtocolError,
    ProviderError,
    TransportError,
    UnsupportedOperationError,
)

__all__ = [
    "MINOR_UNIT_FACTORS",
    "from_minor_units",
    "minor_unit_factor",
    "normalize_currency",
    "to_minor_units",
    "GatewayError",
    "InvalidRequestError",
    "ProtocolError",
    "ProviderError",
    "TransportError",
    "UnsupportedOperationError",
]

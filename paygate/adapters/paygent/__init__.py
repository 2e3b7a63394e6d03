"""
Adapter de Paygent: catálogo de telegramas, transporte mTLS y operaciones.
"""

from paygate.adapters.paygent.adapter import PaygentAdapter, ThreeDSecureParams
from paygate.adapters.paygent.telegram import (
    TELEGRAM_CATALOG,
    TelegramKind,
    TelegramOperation,
    TelegramResponse,
    encode_telegram,
    parse_telegram,
)
from paygate.adapters.paygent.transport import TelegramTransport

__all__ = [
    "PaygentAdapter",
    "ThreeDSecureParams",
    "TELEGRAM_CATALOG",
    "TelegramKind",
    "TelegramOperation",
    "TelegramResponse",
    "encode_telegram",
    "parse_telegram",
    "TelegramTransport",
]

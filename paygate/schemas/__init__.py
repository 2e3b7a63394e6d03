"""
Schemas del modelo de datos común.
"""

from paygate.schemas.common import BaseSchema, Params, get_param
from paygate.schemas.payment import (
    Address,
    AuthorizeParams,
    AuthorizeResponse,
    CaptureParams,
    CaptureResponse,
    CompleteAuthorizeParams,
    CompleteAuthorizeResponse,
    CreditCard,
    PaymentMethod,
    RefundParams,
    RefundResponse,
    SavedCreditCard,
    Transaction,
    VoidParams,
    VoidResponse,
)
from paygate.schemas.credit_card import (
    CreateCreditCardParams,
    CreditCardResponse,
    CustomerCreditCard,
    DeleteCreditCardParams,
    DeleteCreditCardResponse,
    GetCreditCardParams,
    GetCreditCardResponse,
    ListCreditCardsParams,
    ListCreditCardsResponse,
)

__all__ = [
    "BaseSchema",
    "Params",
    "get_param",
    "Address",
    "AuthorizeParams",
    "AuthorizeResponse",
    "CaptureParams",
    "CaptureResponse",
    "CompleteAuthorizeParams",
    "CompleteAuthorizeResponse",
    "CreditCard",
    "PaymentMethod",
    "RefundParams",
    "RefundResponse",
    "SavedCreditCard",
    "Transaction",
    "VoidParams",
    "VoidResponse",
    "CreateCreditCardParams",
    "CreditCardResponse",
    "CustomerCreditCard",
    "DeleteCreditCardParams",
    "DeleteCreditCardResponse",
    "GetCreditCardParams",
    "GetCreditCardResponse",
    "ListCreditCardsParams",
    "ListCreditCardsResponse",
]

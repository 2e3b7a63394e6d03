"""
Schemas para tarjetas guardadas (tokenizadas) de un cliente.
"""

from pydantic import Field

from paygate.schemas.common import BaseSchema, Params
from paygate.schemas.payment import CreditCard


class CustomerCreditCard(BaseSchema):
    """Descriptor enmascarado: solo últimos 4 dígitos, marca y vencimiento."""

    customer_id: str = ""
    customer_name: str = ""
    credit_card_id: str
    masked_number: str = ""
    exp_month: int = 0
    exp_year: int = 0
    brand: str = ""

    @property
    def last4(self) -> str:
        return self.masked_number[-4:]


# ============================================
# Request Schemas (entrada)
# ============================================

class CreateCreditCardParams(BaseSchema):
    customer_id: str = ""
    credit_card: CreditCard
    params: Params = Field(default_factory=dict)


class GetCreditCardParams(BaseSchema):
    customer_id: str
    credit_card_id: str


class ListCreditCardsParams(BaseSchema):
    customer_id: str


class DeleteCreditCardParams(BaseSchema):
    customer_id: str
    credit_card_id: str


# ============================================
# Response Schemas (salida)
# ============================================

class CreditCardResponse(BaseSchema):
    """Par (customer_id, credit_card_id) emitido por el proveedor."""

    customer_id: str = ""
    credit_card_id: str = ""
    params: Params = Field(default_factory=dict)


class GetCreditCardResponse(BaseSchema):
    credit_card: CustomerCreditCard | None = None


class ListCreditCardsResponse(BaseSchema):
    credit_cards: list[CustomerCreditCard] = Field(default_factory=list)


class DeleteCreditCardResponse(BaseSchema):
    params: Params = Field(default_factory=dict)

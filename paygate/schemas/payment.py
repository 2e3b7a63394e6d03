"""
Schemas para pagos y transacciones.

Modelo de datos común a todos los proveedores: tarjeta, tarjeta guardada,
método de pago, dirección, transacción y los sobres de request/response
de cada operación del gateway.
"""

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator, model_validator

from paygate.schemas.common import BaseSchema, Params


class CreditCard(BaseSchema):
    """
    Datos de una tarjeta en crudo.

    De un solo uso: el adapter la tokeniza o la transmite y la descarta.
    Nunca se persiste ni se registra en logs sin enmascarar.
    """

    name: str = ""
    number: str = Field(..., repr=False)
    exp_month: int = Field(..., ge=1, le=12)
    exp_year: int = Field(..., ge=1000, le=9999)
    cvc: str | None = Field(None, repr=False)

    @field_validator("number", mode="before")
    @classmethod
    def clean_number(cls, v):
        """Quita espacios y guiones del PAN."""
        if isinstance(v, int):
            v = str(v)
        if isinstance(v, str):
            v = v.replace(" ", "").replace("-", "")
            if not v.isdigit() or not 12 <= len(v) <= 19:
                raise ValueError("card number must contain 12 to 19 digits")
        return v

    @field_validator("cvc", mode="before")
    @classmethod
    def validate_cvc(cls, v):
        if v in (None, ""):
            return None
        v = str(v).strip()
        if not v.isdigit() or len(v) not in (3, 4):
            raise ValueError("cvc must contain 3 or 4 digits")
        return v

    @property
    def last4(self) -> str:
        return self.number[-4:]

    @property
    def masked_number(self) -> str:
        """PAN enmascarado para logs: ************4076."""
        return "*" * (len(self.number) - 4) + self.last4

    def __str__(self) -> str:
        return f"CreditCard({self.masked_number} {self.exp_month:02d}/{self.exp_year})"


class SavedCreditCard(BaseSchema):
    """Referencia opaca a una tarjeta tokenizada en el proveedor."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    customer_id: str
    credit_card_id: str


class PaymentMethod(BaseSchema):
    """Exactamente uno de credit_card o saved_credit_card."""

    credit_card: CreditCard | None = None
    saved_credit_card: SavedCreditCard | None = None

    def is_valid(self) -> bool:
        return (self.credit_card is None) != (self.saved_credit_card is None)


class Address(BaseSchema):
    """Dirección de facturación, se reenvía tal cual."""

    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    country: str | None = None


class Transaction(BaseSchema):
    """
    Estado de una transacción leída del proveedor.

    Invariante: una transacción cancelada no está pagada ni capturada.
    """

    id: str
    amount: int = Field(0, description="Monto vigente en la unidad menor")
    currency: str = ""
    captured: bool = False
    paid: bool = False
    cancelled: bool = False
    status: str = ""
    order_id: str | None = None
    created_at: datetime | None = None
    params: Params = Field(default_factory=dict)

    @model_validator(mode="after")
    def clear_flags_when_cancelled(self):
        if self.cancelled:
            self.paid = False
            self.captured = False
        return self


# ============================================
# Request Schemas (entrada)
# ============================================

class AuthorizeParams(BaseSchema):
    """Parámetros de Authorize. El monto va aparte, en unidad mayor."""

    currency: str
    order_id: str = ""
    description: str = ""
    customer: str = ""
    payment_method: PaymentMethod | None = None
    billing_address: Address | None = None
    params: Params = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class CompleteAuthorizeParams(BaseSchema):
    params: Params = Field(default_factory=dict)


class CaptureParams(BaseSchema):
    """Monto opcional en unidad mayor; None captura lo autorizado."""

    amount: int | None = Field(None, ge=0)
    params: Params = Field(default_factory=dict)


class RefundParams(BaseSchema):
    params: Params = Field(default_factory=dict)


class VoidParams(BaseSchema):
    params: Params = Field(default_factory=dict)


# ============================================
# Response Schemas (salida)
# ============================================

class AuthorizeResponse(BaseSchema):
    transaction_id: str = ""
    handled_by_3d_secure: bool = False
    params: Params = Field(default_factory=dict)


class CompleteAuthorizeResponse(BaseSchema):
    transaction_id: str = ""
    params: Params = Field(default_factory=dict)


class CaptureResponse(BaseSchema):
    transaction_id: str = ""
    params: Params = Field(default_factory=dict)


class RefundResponse(BaseSchema):
    transaction_id: str = ""
    params: Params = Field(default_factory=dict)


class VoidResponse(BaseSchema):
    transaction_id: str = ""
    params: Params = Field(default_factory=dict)


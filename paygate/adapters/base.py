"""
Interfaz base abstracta para gateways de pago.
Define el contrato que todos los adapters deben implementar.
"""

from abc import ABC, abstractmethod

from paygate.schemas.credit_card import (
    CreateCreditCardParams,
    CreditCardResponse,
    DeleteCreditCardParams,
    DeleteCreditCardResponse,
    GetCreditCardParams,
    GetCreditCardResponse,
    ListCreditCardsParams,
    ListCreditCardsResponse,
)
from paygate.schemas.payment import (
    AuthorizeParams,
    AuthorizeResponse,
    CaptureParams,
    CaptureResponse,
    CompleteAuthorizeParams,
    CompleteAuthorizeResponse,
    PaymentMethod,
    RefundParams,
    RefundResponse,
    Transaction,
    VoidParams,
    VoidResponse,
)
from paygate.utils.exceptions import InvalidRequestError, UnsupportedOperationError


def validate_payment_method(payment_method: PaymentMethod | None) -> PaymentMethod:
    """
    Verifica que el método de pago tenga exactamente una tarjeta.

    Raises:
        InvalidRequestError: Si faltan ambas o vienen las dos
    """
    if payment_method is None:
        raise InvalidRequestError("payment_method is required", field="payment_method")
    if not payment_method.is_valid():
        raise InvalidRequestError(
            "payment_method must set exactly one of credit_card or saved_credit_card",
            field="payment_method",
        )
    return payment_method


class PaymentGateway(ABC):
    """
    Interfaz abstracta para gateways de pago.

    Todos los adapters (Stripe, Paygent, mock) implementan esta interfaz.
    Authorize, Capture, Refund, Void y Query son obligatorias; el resto
    tiene una implementación por defecto que falla con
    UnsupportedOperationError sin tocar la red.

    Los montos de entrada van en la unidad mayor de la moneda; cada adapter
    decide si escalar a la unidad menor.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Nombre del proveedor (ej: 'stripe', 'paygent')."""
        pass

    def unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(self.provider_name, operation)

    @abstractmethod
    async def authorize(self, amount: int, params: AuthorizeParams) -> AuthorizeResponse:
        """
        Autoriza un cargo, reteniendo los fondos en la tarjeta.

        Args:
            amount: Monto en la unidad mayor de params.currency
            params: Moneda, orden, método de pago y parámetros del proveedor

        Returns:
            AuthorizeResponse con transaction_id no vacío
        """
        pass

    async def complete_authorize(
        self,
        payment_id: str,
        params: CompleteAuthorizeParams,
    ) -> CompleteAuthorizeResponse:
        """
        Finaliza una autorización diferida (ej: segunda pata de 3-D Secure).

        Idempotente por payment_id.
        """
        raise self.unsupported("complete_authorize")

    @abstractmethod
    async def capture(self, transaction_id: str, params: CaptureParams) -> CaptureResponse:
        """
        Liquida una autorización.

        Args:
            transaction_id: ID de la transacción en el proveedor
            params: Monto opcional (None = todo lo autorizado)
        """
        pass

    @abstractmethod
    async def refund(
        self,
        transaction_id: str,
        amount: int,
        params: RefundParams,
    ) -> RefundResponse:
        """
        Reembolsa un cargo total o parcialmente.

        Si la transacción aún no fue capturada, reduce el monto a capturar
        en lugar de emitir un reembolso.
        """
        pass

    @abstractmethod
    async def void(self, transaction_id: str, params: VoidParams) -> VoidResponse:
        """Cancela la autorización sin liquidar."""
        pass

    @abstractmethod
    async def query(self, transaction_id: str) -> Transaction:
        """Obtiene el estado actual de una transacción. Solo lectura."""
        pass

    async def create_credit_card(self, params: CreateCreditCardParams) -> CreditCardResponse:
        """Tokeniza una tarjeta y la asocia al cliente en el proveedor."""
        raise self.unsupported("create_credit_card")

    async def get_credit_card(self, params: GetCreditCardParams) -> GetCreditCardResponse:
        """Retorna el descriptor enmascarado de una tarjeta guardada."""
        raise self.unsupported("get_credit_card")

    async def list_credit_cards(self, params: ListCreditCardsParams) -> ListCreditCardsResponse:
        """Lista las tarjetas guardadas del cliente en el orden del proveedor."""
        raise self.unsupported("list_credit_cards")

    async def delete_credit_card(self, params: DeleteCreditCardParams) -> DeleteCreditCardResponse:
        """Elimina una tarjeta guardada. Eliminar una inexistente no es error."""
        raise self.unsupported("delete_credit_card")

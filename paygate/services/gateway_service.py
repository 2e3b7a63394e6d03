"""
Servicio fachada del gateway de pagos.
Punto de entrada único e independiente del proveedor.
"""

import asyncio
from typing import Awaitable, TypeVar

import structlog

from paygate.adapters.base import PaymentGateway, validate_payment_method
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
    RefundParams,
    RefundResponse,
    Transaction,
    VoidParams,
    VoidResponse,
)
from paygate.utils.currency import normalize_currency
from paygate.utils.exceptions import (
    InvalidRequestError,
    ProtocolError,
    TransportError,
    require_id,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class GatewayService:
    """
    Fachada sobre un adapter de pago.

    - Valida los requests antes de cualquier I/O (InvalidRequestError)
    - Reenvía la bolsa de params sin modificarla
    - Aplica un deadline opcional por llamada (TransportError cancelado)
    - Rechaza respuestas exitosas sin identificador (ProtocolError)

    El adapter se elige al construir el servicio; cada adapter trae sus
    propias credenciales.
    """

    def __init__(self, gateway: PaymentGateway, timeout: float | None = None):
        """
        Args:
            gateway: Adapter del proveedor
            timeout: Deadline por defecto en segundos (None = sin límite)
        """
        self._gateway = gateway
        self._timeout = timeout

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway

    @property
    def provider_name(self) -> str:
        return self._gateway.provider_name

    async def _run(self, operation: str, call: Awaitable[T], timeout: float | None) -> T:
        deadline = timeout if timeout is not None else self._timeout
        try:
            if deadline is None:
                return await call
            return await asyncio.wait_for(call, deadline)
        except asyncio.TimeoutError as e:
            logger.error(
                "Payment operation deadline exceeded",
                provider=self.provider_name,
                operation=operation,
                timeout=deadline,
            )
            raise TransportError(
                self.provider_name,
                f"{operation} cancelled after {deadline}s deadline",
                cancelled=True,
            ) from e

    def _require_result_id(self, operation: str, value: str, field: str) -> None:
        if not value:
            raise ProtocolError(self.provider_name, f"{operation} succeeded without {field}")

    @staticmethod
    def _require_amount(amount: int | None) -> int:
        if amount is None or isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidRequestError("amount must be a positive integer", field="amount")
        return amount

    async def authorize(
        self,
        amount: int,
        params: AuthorizeParams,
        timeout: float | None = None,
    ) -> AuthorizeResponse:
        """
        Autoriza un cargo.

        Args:
            amount: Monto en la unidad mayor de la moneda
            params: Datos de la autorización
            timeout: Deadline en segundos para esta llamada

        Returns:
            AuthorizeResponse con transaction_id no vacío
        """
        self._require_amount(amount)
        normalize_currency(params.currency)
        payment_method = validate_payment_method(params.payment_method)

        logger.info(
            "Authorizing payment",
            provider=self.provider_name,
            order_id=params.order_id,
            amount=amount,
            currency=params.currency,
            saved_card=payment_method.saved_credit_card is not None,
        )

        response = await self._run(
            "authorize", self._gateway.authorize(amount, params), timeout
        )
        self._require_result_id("authorize", response.transaction_id, "transaction_id")
        return response

    async def complete_authorize(
        self,
        payment_id: str,
        params: CompleteAuthorizeParams | None = None,
        timeout: float | None = None,
    ) -> CompleteAuthorizeResponse:
        payment_id = require_id(payment_id, "payment_id")
        params = params or CompleteAuthorizeParams()

        logger.info("Completing authorization", provider=self.provider_name, payment_id=payment_id)

        response = await self._run(
            "complete_authorize",
            self._gateway.complete_authorize(payment_id, params),
            timeout,
        )
        self._require_result_id("complete_authorize", response.transaction_id, "transaction_id")
        return response

    async def capture(
        self,
        transaction_id: str,
        params: CaptureParams | None = None,
        timeout: float | None = None,
    ) -> CaptureResponse:
        transaction_id = require_id(transaction_id, "transaction_id")
        params = params or CaptureParams()

        logger.info(
            "Capturing payment",
            provider=self.provider_name,
            transaction_id=transaction_id,
            amount=params.amount,
        )

        response = await self._run(
            "capture", self._gateway.capture(transaction_id, params), timeout
        )
        self._require_result_id("capture", response.transaction_id, "transaction_id")
        return response

    async def refund(
        self,
        transaction_id: str,
        amount: int,
        params: RefundParams | None = None,
        timeout: float | None = None,
    ) -> RefundResponse:
        transaction_id = require_id(transaction_id, "transaction_id")
        self._require_amount(amount)
        params = params or RefundParams()

        logger.info(
            "Refunding payment",
            provider=self.provider_name,
            transaction_id=transaction_id,
            amount=amount,
        )

        response = await self._run(
            "refund", self._gateway.refund(transaction_id, amount, params), timeout
        )
        self._require_result_id("refund", response.transaction_id, "transaction_id")
        return response

    async def void(
        self,
        transaction_id: str,
        params: VoidParams | None = None,
        timeout: float | None = None,
    ) -> VoidResponse:
        transaction_id = require_id(transaction_id, "transaction_id")
        params = params or VoidParams()

        logger.info("Voiding payment", provider=self.provider_name, transaction_id=transaction_id)

        response = await self._run(
            "void", self._gateway.void(transaction_id, params), timeout
        )
        self._require_result_id("void", response.transaction_id, "transaction_id")
        return response

    async def query(self, transaction_id: str, timeout: float | None = None) -> Transaction:
        transaction_id = require_id(transaction_id, "transaction_id")
        return await self._run("query", self._gateway.query(transaction_id), timeout)

    # ============================================
    # Tarjetas guardadas
    # ============================================

    async def create_credit_card(
        self,
        params: CreateCreditCardParams,
        timeout: float | None = None,
    ) -> CreditCardResponse:
        require_id(params.customer_id, "customer_id")

        logger.info(
            "Saving credit card",
            provider=self.provider_name,
            customer_id=params.customer_id,
            card=params.credit_card.masked_number,
        )

        response = await self._run(
            "create_credit_card", self._gateway.create_credit_card(params), timeout
        )
        self._require_result_id("create_credit_card", response.credit_card_id, "credit_card_id")
        return response

    async def get_credit_card(
        self,
        params: GetCreditCardParams,
        timeout: float | None = None,
    ) -> GetCreditCardResponse:
        require_id(params.customer_id, "customer_id")
        require_id(params.credit_card_id, "credit_card_id")
        return await self._run("get_credit_card", self._gateway.get_credit_card(params), timeout)

    async def list_credit_cards(
        self,
        params: ListCreditCardsParams,
        timeout: float | None = None,
    ) -> ListCreditCardsResponse:
        require_id(params.customer_id, "customer_id")
        return await self._run("list_credit_cards", self._gateway.list_credit_cards(params), timeout)

    async def delete_credit_card(
        self,
        params: DeleteCreditCardParams,
        timeout: float | None = None,
    ) -> DeleteCreditCardResponse:
        require_id(params.customer_id, "customer_id")
        require_id(params.credit_card_id, "credit_card_id")

        logger.info(
            "Deleting credit card",
            provider=self.provider_name,
            customer_id=params.customer_id,
            credit_card_id=params.credit_card_id,
        )

        return await self._run("delete_credit_card", self._gateway.delete_credit_card(params), timeout)

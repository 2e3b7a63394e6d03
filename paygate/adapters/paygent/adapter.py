"""
Adapter para Paygent.

Traduce el contrato del gateway a telegramas clave=valor sobre TLS mutuo,
incluyendo el flujo de 3-D Secure en dos patas y las tarjetas guardadas.
"""

from datetime import datetime
from typing import Any

import httpx
import structlog
from pydantic import Field, ValidationError

from paygate.adapters.base import PaymentGateway, validate_payment_method
from paygate.adapters.paygent.telegram import (
    PROVIDER_NAME,
    TELEGRAM_CATALOG,
    TelegramOperation,
    TelegramResponse,
    encode_telegram,
)
from paygate.adapters.paygent.transport import TelegramTransport
from paygate.config import PaygentConfig
from paygate.schemas.common import BaseSchema, Params, get_param
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
from paygate.schemas.payment import (
    AuthorizeParams,
    AuthorizeResponse,
    CaptureParams,
    CaptureResponse,
    CompleteAuthorizeParams,
    CompleteAuthorizeResponse,
    CreditCard,
    RefundParams,
    RefundResponse,
    Transaction,
    VoidParams,
    VoidResponse,
)
from paygate.utils.currency import normalize_currency
from paygate.utils.exceptions import InvalidRequestError, ProtocolError, ProviderError


logger = structlog.get_logger(__name__)

# Pago en una sola cuota
PAYMENT_CLASS_LUMP_SUM = "10"

# Código de respuesta de Paygent para tarjeta guardada inexistente
CARD_NOT_FOUND_CODE = "P026"

DEFAULT_CURRENCY = "JPY"

# payment_status -> (status, captured, cancelled)
PAYMENT_STATUS_MAP: dict[str, tuple[str, bool, bool]] = {
    "10": ("3ds_pending", False, False),
    "13": ("3ds_interrupted", False, False),
    "15": ("3ds_authenticated", False, False),
    "20": ("authorized", False, False),
    "32": ("authorization_cancelled", False, True),
    "33": ("authorization_expired", False, True),
    "40": ("captured", True, False),
    "41": ("captured_amount_changed", True, False),
    "44": ("captured_pending_settlement", True, False),
    "60": ("sale_cancelled", False, True),
    "61": ("sale_cancelled_pending", False, True),
}

# Campos de la respuesta 3-D Secure que se devuelven en params
THREE_D_SECURE_OUTPUT = {
    "acs_url": "acs_url",
    "PaReq": "pareq",
    "MD": "md",
    "out_acs_html": "acs_html",
}


class ThreeDSecureParams(BaseSchema):
    """Datos del navegador del comprador para la primera pata de 3-D Secure."""

    user_agent: str = Field(..., alias="UserAgent")
    http_accept: str = Field(..., alias="HttpAccept")
    term_url: str = Field(..., alias="TermURL")


def card_valid_term(card: CreditCard) -> str:
    """Vencimiento en formato MMYY."""
    return f"{card.exp_month:02d}{card.exp_year % 100:02d}"


class PaygentAdapter(PaymentGateway):
    """
    Adapter para Paygent (telegramas sobre HTTPS con certificado de cliente).

    Los montos se envían tal cual: Paygent opera en yenes, sin subunidad.
    """

    def __init__(
        self,
        config: PaygentConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Inicializa el adapter de Paygent.

        Args:
            config: Credenciales, material TLS y modo producción
            transport: Transporte httpx alternativo (tests)
        """
        self._config = config
        self._transport = TelegramTransport(config, transport=transport)

        logger.info(
            "PaygentAdapter initialized",
            merchant_id=config.merchant_id,
            endpoint=self._transport.endpoint,
        )

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def _credentials(self, telegram_kind: str) -> dict[str, str]:
        return {
            "merchant_id": self._config.merchant_id,
            "connect_id": self._config.connect_id,
            "connect_password": self._config.connect_password.get_secret_value(),
            "telegram_version": self._config.telegram_version,
            "telegram_kind": telegram_kind,
        }

    async def _request(
        self,
        operation: TelegramOperation,
        fields: dict[str, Any],
    ) -> TelegramResponse:
        """
        Valida contra el catálogo, envía el telegrama y verifica result.

        Raises:
            InvalidRequestError: Falta un campo obligatorio (sin I/O)
            ProviderError: result distinto de 0
        """
        kind = TELEGRAM_CATALOG[operation]
        telegram = {**self._credentials(kind.code), **kind.build(fields)}

        response = await self._transport.send(encode_telegram(telegram))

        if response.unparsed:
            logger.warning(
                "Paygent response contains unparsed lines",
                telegram_kind=kind.code,
                unparsed_count=len(response.unparsed),
            )

        if not response.is_success:
            logger.error(
                "Paygent telegram failed",
                operation=operation.value,
                telegram_kind=kind.code,
                result=response.result,
                response_code=response.response_code,
            )
            raise ProviderError(
                self.provider_name,
                response.response_code or f"result={response.result}",
                response.response_detail,
            )

        logger.info(
            "Paygent telegram succeeded",
            operation=operation.value,
            telegram_kind=kind.code,
            payment_id=response.get("payment_id") or None,
        )
        return response

    @staticmethod
    def _params_out(response: TelegramResponse, **extra: Any) -> Params:
        params: Params = {key: value for key, value in extra.items() if value}
        if response.unparsed:
            params["unparsed"] = list(response.unparsed)
        return params

    def _payment_id(self, response: TelegramResponse, fallback: str = "") -> str:
        payment_id = response.get("payment_id") or fallback
        if not payment_id:
            raise ProtocolError(self.provider_name, "response without payment_id", raw=response.raw)
        return payment_id

    async def authorize(self, amount: int, params: AuthorizeParams) -> AuthorizeResponse:
        """
        Autoriza con tarjeta en crudo o guardada.

        Con params["3DMode"] True envía la primera pata de 3-D Secure y
        devuelve en params los datos de redirección al ACS del emisor.
        """
        payment_method = validate_payment_method(params.payment_method)
        currency = normalize_currency(params.currency)
        if currency != DEFAULT_CURRENCY:
            raise InvalidRequestError(
                f"currency {currency} is not supported, Paygent settles in {DEFAULT_CURRENCY}",
                field="currency",
            )

        fields: dict[str, Any] = {
            "trading_id": params.order_id,
            "payment_amount": amount,
            "payment_class": get_param(params.params, "payment_class", PAYMENT_CLASS_LUMP_SUM),
            "split_count": get_param(params.params, "split_count"),
        }

        if payment_method.credit_card is not None:
            card = payment_method.credit_card
            fields["card_number"] = card.number
            fields["card_valid_term"] = card_valid_term(card)
            fields["card_conf_number"] = card.cvc
        else:
            saved = payment_method.saved_credit_card
            fields["stock_card_mode"] = 1
            fields["customer_id"] = saved.customer_id
            fields["customer_card_id"] = saved.credit_card_id

        three_d_mode = get_param(params.params, "3DMode") is True
        if three_d_mode:
            secure = self._three_d_secure_params(params.params)
            fields["http_user_agent"] = secure.user_agent
            fields["http_accept"] = secure.http_accept
            fields["term_url"] = secure.term_url
            fields["merchant_name"] = get_param(params.params, "merchant_name")
            operation = TelegramOperation.AUTHORIZE_3DS
        else:
            fields["3dsecure_ryaku"] = 1
            operation = TelegramOperation.AUTHORIZE

        response = await self._request(operation, fields)
        transaction_id = self._payment_id(response)

        redirect = {
            output: response.get(key)
            for key, output in THREE_D_SECURE_OUTPUT.items()
            if response.get(key)
        }

        logger.info(
            "Paygent authorization created",
            payment_id=transaction_id,
            trading_id=params.order_id,
            three_d_secure=bool(redirect),
        )

        return AuthorizeResponse(
            transaction_id=transaction_id,
            handled_by_3d_secure=bool(redirect),
            params=self._params_out(response, trading_id=params.order_id, **redirect),
        )

    def _three_d_secure_params(self, params: Params) -> ThreeDSecureParams:
        value = get_param(params, "3DParams")
        if isinstance(value, ThreeDSecureParams):
            return value
        if not isinstance(value, dict):
            raise InvalidRequestError("3DParams is required when 3DMode is set", field="3DParams")
        try:
            return ThreeDSecureParams.model_validate(value)
        except ValidationError as e:
            raise InvalidRequestError(f"invalid 3DParams: {e.errors()[0]['msg']}", field="3DParams") from e

    async def complete_authorize(
        self,
        payment_id: str,
        params: CompleteAuthorizeParams,
    ) -> CompleteAuthorizeResponse:
        """Segunda pata de 3-D Secure con el PaRes devuelto por el emisor."""
        pares = get_param(params.params, "pares") or get_param(params.params, "PaRes")
        if not pares:
            raise InvalidRequestError("pares is required to complete 3-D Secure", field="pares")

        response = await self._request(
            TelegramOperation.COMPLETE_3DS,
            {
                "payment_id": payment_id,
                "PaRes": pares,
                "MD": get_param(params.params, "md", payment_id),
            },
        )

        return CompleteAuthorizeResponse(
            transaction_id=self._payment_id(response, fallback=payment_id),
            params=self._params_out(response),
        )

    async def capture(self, transaction_id: str, params: CaptureParams) -> CaptureResponse:
        response = await self._request(
            TelegramOperation.CAPTURE,
            {"payment_id": transaction_id, "payment_amount": params.amount},
        )
        return CaptureResponse(
            transaction_id=self._payment_id(response, fallback=transaction_id),
            params=self._params_out(response),
        )

    async def refund(
        self,
        transaction_id: str,
        amount: int,
        params: RefundParams,
    ) -> RefundResponse:
        """
        Reembolsa según el estado real de la transacción.

        Capturada: cancela la venta (total) o cambia su monto (parcial).
        Solo autorizada: cancela la autorización o reduce su monto.
        """
        transaction = await self.query(transaction_id)

        if transaction.cancelled:
            raise InvalidRequestError(f"transaction {transaction_id} is already cancelled")
        if amount > transaction.amount:
            raise InvalidRequestError(
                f"refund amount {amount} exceeds remaining {transaction.amount}",
                field="amount",
            )

        remaining = transaction.amount - amount
        if transaction.captured:
            operation = TelegramOperation.REFUND if remaining == 0 else TelegramOperation.CHANGE_SALE
        else:
            operation = TelegramOperation.VOID if remaining == 0 else TelegramOperation.CHANGE_AUTHORIZATION

        fields: dict[str, Any] = {"payment_id": transaction_id}
        if remaining:
            fields["payment_amount"] = remaining

        response = await self._request(operation, fields)

        logger.info(
            "Paygent refund processed",
            payment_id=transaction_id,
            operation=operation.value,
            remaining=remaining,
        )

        return RefundResponse(
            transaction_id=self._payment_id(response, fallback=transaction_id),
            params=self._params_out(response),
        )

    async def void(self, transaction_id: str, params: VoidParams) -> VoidResponse:
        response = await self._request(TelegramOperation.VOID, {"payment_id": transaction_id})
        return VoidResponse(
            transaction_id=self._payment_id(response, fallback=transaction_id),
            params=self._params_out(response),
        )

    async def query(self, transaction_id: str) -> Transaction:
        """Consulta el pago y traduce payment_status al modelo común."""
        response = await self._request(TelegramOperation.QUERY, {"payment_id": transaction_id})

        status_code = response.get("payment_status")
        status, captured, cancelled = PAYMENT_STATUS_MAP.get(
            status_code, (status_code or "unknown", False, False)
        )

        try:
            amount = int(response.get("payment_amount", "0") or 0)
        except ValueError as e:
            raise ProtocolError(self.provider_name, "invalid payment_amount", raw=response.raw) from e

        return Transaction(
            id=self._payment_id(response, fallback=transaction_id),
            amount=amount,
            currency=response.get("currency_code") or DEFAULT_CURRENCY,
            captured=captured,
            paid=captured,
            cancelled=cancelled,
            status=status,
            order_id=response.get("trading_id") or None,
            created_at=self._parse_date(response.get("payment_date")),
            params=self._params_out(response, payment_status=status_code),
        )

    @staticmethod
    def _parse_date(value: str) -> datetime | None:
        if not value:
            return None
        try:
            return datetime.strptime(value, "%Y%m%d%H%M%S")
        except ValueError:
            return None

    # ============================================
    # Tarjetas guardadas
    # ============================================

    async def create_credit_card(self, params: CreateCreditCardParams) -> CreditCardResponse:
        """Registra la tarjeta; el PAN viaja una única vez."""
        card = params.credit_card
        response = await self._request(
            TelegramOperation.CREATE_CARD,
            {
                "customer_id": params.customer_id,
                "card_number": card.number,
                "card_valid_term": card_valid_term(card),
                "cardholder_name": card.name,
                "card_conf_number": card.cvc,
            },
        )

        credit_card_id = response.get("customer_card_id")
        if not credit_card_id:
            raise ProtocolError(self.provider_name, "response without customer_card_id", raw=response.raw)

        logger.info(
            "Paygent card saved",
            customer_id=params.customer_id,
            customer_card_id=credit_card_id,
            card=card.masked_number,
        )

        return CreditCardResponse(
            customer_id=response.get("customer_id") or params.customer_id,
            credit_card_id=credit_card_id,
            params=self._params_out(response),
        )

    async def get_credit_card(self, params: GetCreditCardParams) -> GetCreditCardResponse:
        response = await self._request(
            TelegramOperation.QUERY_CARDS,
            {"customer_id": params.customer_id, "customer_card_id": params.credit_card_id},
        )
        for record in response.records_with("customer_card_id"):
            if record["customer_card_id"] == params.credit_card_id:
                return GetCreditCardResponse(
                    credit_card=self._to_customer_credit_card(params.customer_id, record),
                )
        raise ProviderError(self.provider_name, CARD_NOT_FOUND_CODE, "card not found")

    async def list_credit_cards(self, params: ListCreditCardsParams) -> ListCreditCardsResponse:
        response = await self._request(
            TelegramOperation.QUERY_CARDS,
            {"customer_id": params.customer_id},
        )
        return ListCreditCardsResponse(
            credit_cards=[
                self._to_customer_credit_card(params.customer_id, record)
                for record in response.records_with("customer_card_id")
            ],
        )

    async def delete_credit_card(self, params: DeleteCreditCardParams) -> DeleteCreditCardResponse:
        """Elimina la tarjeta; CARD_NOT_FOUND_CODE se trata como éxito."""
        try:
            response = await self._request(
                TelegramOperation.DELETE_CARD,
                {"customer_id": params.customer_id, "customer_card_id": params.credit_card_id},
            )
        except ProviderError as e:
            if e.provider_code != CARD_NOT_FOUND_CODE:
                raise
            logger.info(
                "Paygent card already deleted",
                customer_id=params.customer_id,
                customer_card_id=params.credit_card_id,
            )
            return DeleteCreditCardResponse()
        return DeleteCreditCardResponse(params=self._params_out(response))

    @staticmethod
    def _to_customer_credit_card(customer_id: str, record: dict[str, str]) -> CustomerCreditCard:
        valid_term = record.get("card_valid_term", "")
        exp_month, exp_year = 0, 0
        if len(valid_term) == 4 and valid_term.isdigit():
            exp_month = int(valid_term[:2])
            exp_year = 2000 + int(valid_term[2:])

        return CustomerCreditCard(
            customer_id=record.get("customer_id") or customer_id,
            customer_name=record.get("cardholder_name", ""),
            credit_card_id=record["customer_card_id"],
            masked_number=record.get("card_number", ""),
            exp_month=exp_month,
            exp_year=exp_year,
            brand=record.get("card_brand", ""),
        )

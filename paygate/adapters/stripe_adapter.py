"""
Adapter para Stripe.
Implementa PaymentGateway usando el SDK oficial de Stripe (Charges API).
"""

import asyncio
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable

import stripe
import structlog

from paygate.adapters.base import PaymentGateway, validate_payment_method
from paygate.config import StripeConfig
from paygate.schemas.common import get_param
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
    Address,
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
from paygate.utils.currency import normalize_currency, to_minor_units
from paygate.utils.exceptions import (
    InvalidRequestError,
    ProtocolError,
    ProviderError,
    TransportError,
)


logger = structlog.get_logger(__name__)

# Código de Stripe para objetos inexistentes
RESOURCE_MISSING = "resource_missing"


class StripeAdapter(PaymentGateway):
    """
    Adapter para Stripe Charges.

    - Tarjetas en crudo: se crea un token de un solo uso y se usa como source.
    - Tarjetas guardadas: se usa el card id como source junto al customer.
    - Montos escalados a la unidad menor según la tabla de monedas.

    Cada instancia tiene su propio StripeClient (API key y timeout de red),
    así varias cuentas conviven en el mismo proceso.
    """

    def __init__(self, config: StripeConfig, client: stripe.StripeClient | None = None):
        """
        Inicializa el adapter de Stripe.

        Args:
            config: API key, timeout y opciones de captura
            client: Cliente alternativo (tests)
        """
        self._config = config
        self._client = client or stripe.StripeClient(
            config.api_key.get_secret_value(),
            http_client=stripe.RequestsClient(timeout=config.timeout),
        )

        logger.info(
            "StripeAdapter initialized",
            capture_on_authorize=config.capture_on_authorize,
        )

    @property
    def provider_name(self) -> str:
        return "stripe"

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Ejecuta una llamada bloqueante del SDK en un hilo y traduce sus errores.

        Raises:
            TransportError: Fallo de red hacia Stripe
            ProviderError: Stripe devolvió un error
        """
        try:
            return await asyncio.to_thread(partial(func, *args, **kwargs))
        except stripe.APIConnectionError as e:
            logger.error("Stripe connection failed", error=str(e))
            raise TransportError(self.provider_name, str(e)) from e
        except stripe.StripeError as e:
            code = e.code or type(e).__name__
            logger.error("Stripe request failed", code=code, error=str(e))
            raise ProviderError(self.provider_name, code, e.user_message or str(e)) from e

    async def _create_token(
        self,
        customer: str,
        card: CreditCard,
        billing_address: Address | None,
    ) -> str:
        """Crea un token de Stripe para la tarjeta (y dirección) dadas."""
        card_params: dict[str, Any] = {
            "name": card.name,
            "number": card.number,
            "exp_month": str(card.exp_month),
            "exp_year": str(card.exp_year),
        }
        if card.cvc:
            card_params["cvc"] = card.cvc

        if billing_address is not None:
            address_fields = {
                "address_line1": billing_address.address1,
                "address_line2": billing_address.address2,
                "address_city": billing_address.city,
                "address_state": billing_address.state,
                "address_zip": billing_address.zip,
                "address_country": billing_address.country,
            }
            card_params.update({k: v for k, v in address_fields.items() if v})

        token_params: dict[str, Any] = {"card": card_params}
        if customer:
            token_params["customer"] = customer

        token = await self._call(self._client.tokens.create, params=token_params)
        return token.id

    async def authorize(self, amount: int, params: AuthorizeParams) -> AuthorizeResponse:
        """Crea un Charge; por defecto Stripe autoriza y captura a la vez."""
        payment_method = validate_payment_method(params.payment_method)
        currency = normalize_currency(params.currency)

        capture = get_param(params.params, "capture", self._config.capture_on_authorize)
        charge_params: dict[str, Any] = {
            "amount": to_minor_units(amount, currency),
            "currency": currency.lower(),
            "description": params.description,
            "metadata": {"order_id": params.order_id},
            "capture": bool(capture),
        }

        descriptor = get_param(params.params, "statement_descriptor")
        if descriptor:
            charge_params["statement_descriptor"] = descriptor
        options: dict[str, Any] = {}
        idempotency_key = get_param(params.params, "idempotency_key")
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        if payment_method.credit_card is not None:
            charge_params["source"] = await self._create_token(
                params.customer,
                payment_method.credit_card,
                params.billing_address,
            )
        else:
            saved = payment_method.saved_credit_card
            if saved.customer_id:
                charge_params["customer"] = saved.customer_id
            charge_params["source"] = saved.credit_card_id

        charge = await self._call(self._client.charges.create, params=charge_params, options=options)

        logger.info(
            "Stripe charge created",
            charge_id=charge.id,
            order_id=params.order_id,
            amount=charge_params["amount"],
            currency=currency,
            captured=bool(capture),
        )

        return AuthorizeResponse(transaction_id=charge.id)

    async def complete_authorize(
        self,
        payment_id: str,
        params: CompleteAuthorizeParams,
    ) -> CompleteAuthorizeResponse:
        """Los Charges no tienen segunda pata: se confirma que el cargo existe."""
        charge = await self._call(self._client.charges.retrieve, payment_id)
        return CompleteAuthorizeResponse(transaction_id=charge.id)

    async def capture(self, transaction_id: str, params: CaptureParams) -> CaptureResponse:
        """Captura el cargo; si ya estaba capturado retorna éxito sin llamar."""
        charge = await self._call(self._client.charges.retrieve, transaction_id)
        if charge.captured:
            logger.info("Stripe charge already captured", charge_id=transaction_id)
            return CaptureResponse(transaction_id=transaction_id)

        capture_params: dict[str, Any] = {}
        if params.amount is not None:
            capture_params["amount"] = to_minor_units(params.amount, charge.currency)

        await self._call(self._client.charges.capture, transaction_id, params=capture_params)
        logger.info("Stripe charge captured", charge_id=transaction_id, **capture_params)

        return CaptureResponse(transaction_id=transaction_id)

    async def refund(
        self,
        transaction_id: str,
        amount: int,
        params: RefundParams,
    ) -> RefundResponse:
        """
        Reembolsa un cargo.

        Capturado: crea un Refund por amount escalado.
        No capturado: captura parcialmente lo autorizado menos amount; si no
        queda nada por capturar, libera la retención con un Refund total.
        """
        transaction = await self.query(transaction_id)
        refund_amount = to_minor_units(amount, transaction.currency)

        if refund_amount > transaction.amount:
            raise InvalidRequestError(
                f"refund amount {refund_amount} exceeds remaining {transaction.amount}",
                field="amount",
            )

        capture_amount = transaction.amount - refund_amount
        if transaction.captured:
            await self._call(
                self._client.refunds.create,
                params={"charge": transaction_id, "amount": refund_amount},
            )
            logger.info("Stripe refund created", charge_id=transaction_id, amount=refund_amount)
        elif capture_amount == 0:
            # Stripe rechaza capturas de 0
            await self._call(self._client.refunds.create, params={"charge": transaction_id})
            logger.info("Stripe authorization released", charge_id=transaction_id)
        else:
            await self._call(
                self._client.charges.capture,
                transaction_id,
                params={"amount": capture_amount},
            )
            logger.info(
                "Stripe uncaptured charge reduced by partial capture",
                charge_id=transaction_id,
                capture_amount=capture_amount,
            )

        return RefundResponse(transaction_id=transaction_id)

    async def void(self, transaction_id: str, params: VoidParams) -> VoidResponse:
        """Anula el cargo con un reembolso total."""
        await self._call(self._client.refunds.create, params={"charge": transaction_id})
        logger.info("Stripe charge voided", charge_id=transaction_id)
        return VoidResponse(transaction_id=transaction_id)

    async def query(self, transaction_id: str) -> Transaction:
        """Obtiene el Charge y lo traduce al modelo común."""
        charge = await self._call(self._client.charges.retrieve, transaction_id)
        if not charge or not charge.id:
            raise ProtocolError(self.provider_name, "charge without id", raw=charge)

        metadata = getattr(charge, "metadata", None) or {}
        created_at = None
        if charge.created:
            created_at = datetime.fromtimestamp(charge.created, tz=timezone.utc)

        return Transaction(
            id=charge.id,
            amount=int(charge.amount - (charge.amount_refunded or 0)),
            currency=(charge.currency or "").upper(),
            captured=bool(charge.captured),
            paid=bool(charge.paid),
            cancelled=bool(charge.refunded),
            status=charge.status or "",
            order_id=metadata.get("order_id"),
            created_at=created_at,
        )

    # ============================================
    # Tarjetas guardadas
    # ============================================

    async def create_credit_card(self, params: CreateCreditCardParams) -> CreditCardResponse:
        """Tokeniza la tarjeta y la adjunta como source del customer."""
        token_id = await self._create_token(params.customer_id, params.credit_card, None)
        card = await self._call(
            self._client.customers.payment_sources.create,
            params.customer_id,
            params={"source": token_id},
        )

        logger.info(
            "Stripe card saved",
            customer_id=params.customer_id,
            card_id=card.id,
            card=params.credit_card.masked_number,
        )

        return CreditCardResponse(
            customer_id=card.customer or params.customer_id,
            credit_card_id=card.id,
        )

    async def get_credit_card(self, params: GetCreditCardParams) -> GetCreditCardResponse:
        card = await self._call(
            self._client.customers.payment_sources.retrieve,
            params.customer_id,
            params.credit_card_id,
        )
        return GetCreditCardResponse(credit_card=self._to_customer_credit_card(card))

    async def list_credit_cards(self, params: ListCreditCardsParams) -> ListCreditCardsResponse:
        """Recorre todas las páginas de sources tipo card en el orden de Stripe."""

        def fetch_all() -> list[Any]:
            page = self._client.customers.payment_sources.list(
                params.customer_id,
                params={"object": "card"},
            )
            return list(page.auto_paging_iter())

        cards = await self._call(fetch_all)
        return ListCreditCardsResponse(
            credit_cards=[self._to_customer_credit_card(card) for card in cards],
        )

    async def delete_credit_card(self, params: DeleteCreditCardParams) -> DeleteCreditCardResponse:
        """Elimina el source; si ya no existe se considera éxito."""
        try:
            await self._call(
                self._client.customers.payment_sources.delete,
                params.customer_id,
                params.credit_card_id,
            )
        except ProviderError as e:
            if e.provider_code != RESOURCE_MISSING:
                raise
            logger.info(
                "Stripe card already deleted",
                customer_id=params.customer_id,
                card_id=params.credit_card_id,
            )
        return DeleteCreditCardResponse()

    @staticmethod
    def _to_customer_credit_card(card: Any) -> CustomerCreditCard:
        return CustomerCreditCard(
            customer_id=card.customer or "",
            customer_name=card.name or "",
            credit_card_id=card.id,
            masked_number=str(card.last4),
            exp_month=int(card.exp_month),
            exp_year=int(card.exp_year),
            brand=str(card.brand or ""),
        )

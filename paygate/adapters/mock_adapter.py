"""
Mock Adapter para desarrollo y testing.
Simula el comportamiento de una pasarela de pago en memoria.
"""

import random
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import structlog

from paygate.adapters.base import PaymentGateway, validate_payment_method
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
from paygate.utils.currency import normalize_currency, to_minor_units
from paygate.utils.exceptions import InvalidRequestError, ProviderError


logger = structlog.get_logger(__name__)


class MockAdapter(PaymentGateway):
    """
    Adapter mock para desarrollo y testing.

    Simula el comportamiento de una pasarela real:
    - Autorizaciones con retención y captura diferida
    - 3-D Secure en dos patas con params["3DMode"]
    - Tarjetas guardadas por cliente
    - Rechazos según success_rate

    Útil para desarrollo local sin necesidad de credenciales reales.
    """

    ACS_URL = "http://localhost:3000/mock-acs"

    def __init__(self, success_rate: float = 1.0):
        """
        Inicializa el adapter mock.

        Args:
            success_rate: Probabilidad de que una autorización sea aprobada
        """
        self._success_rate = success_rate
        self._charges: dict[str, dict[str, Any]] = {}
        self._cards: dict[str, dict[str, dict[str, Any]]] = {}
        logger.info("MockAdapter initialized", success_rate=success_rate)

    @property
    def provider_name(self) -> str:
        return "mock"

    def _generate_mock_id(self, prefix: str = "mock") -> str:
        """Genera un ID mock similar al formato de Stripe."""
        return f"{prefix}_{uuid4().hex[:24]}"

    def _should_succeed(self) -> bool:
        return random.random() < self._success_rate

    def _get_charge(self, transaction_id: str) -> dict[str, Any]:
        charge = self._charges.get(transaction_id)
        if charge is None:
            raise ProviderError(self.provider_name, "resource_missing", f"No such charge: {transaction_id}")
        return charge

    async def authorize(self, amount: int, params: AuthorizeParams) -> AuthorizeResponse:
        payment_method = validate_payment_method(params.payment_method)
        currency = normalize_currency(params.currency)

        if payment_method.saved_credit_card is not None:
            saved = payment_method.saved_credit_card
            if saved.credit_card_id not in self._cards.get(saved.customer_id, {}):
                raise ProviderError(self.provider_name, "resource_missing", "No such card")

        if not self._should_succeed():
            logger.info("Mock authorization declined", order_id=params.order_id)
            raise ProviderError(self.provider_name, "card_declined", "Card declined (simulated)")

        three_d_mode = get_param(params.params, "3DMode") is True
        charge_id = self._generate_mock_id("ch")
        self._charges[charge_id] = {
            "id": charge_id,
            "authorized": to_minor_units(amount, currency),
            "captured_amount": 0,
            "refunded": 0,
            "currency": currency,
            "order_id": params.order_id,
            "status": "pending_3ds" if three_d_mode else "authorized",
            "cancelled": False,
            "created_at": datetime.now(timezone.utc),
        }

        logger.info(
            "Mock authorization created",
            charge_id=charge_id,
            order_id=params.order_id,
            three_d_secure=three_d_mode,
        )

        if three_d_mode:
            return AuthorizeResponse(
                transaction_id=charge_id,
                handled_by_3d_secure=True,
                params={
                    "acs_url": f"{self.ACS_URL}/{charge_id}",
                    "pareq": self._generate_mock_id("pareq"),
                    "md": charge_id,
                },
            )
        return AuthorizeResponse(transaction_id=charge_id)

    async def complete_authorize(
        self,
        payment_id: str,
        params: CompleteAuthorizeParams,
    ) -> CompleteAuthorizeResponse:
        charge = self._get_charge(payment_id)
        if charge["status"] == "pending_3ds":
            if not get_param(params.params, "pares"):
                raise InvalidRequestError("pares is required to complete 3-D Secure", field="pares")
            charge["status"] = "authorized"
        return CompleteAuthorizeResponse(transaction_id=payment_id)

    async def capture(self, transaction_id: str, params: CaptureParams) -> CaptureResponse:
        charge = self._get_charge(transaction_id)
        if charge["status"] == "captured":
            return CaptureResponse(transaction_id=transaction_id)
        if charge["status"] != "authorized":
            raise ProviderError(self.provider_name, "charge_not_capturable", f"status {charge['status']}")

        amount = charge["authorized"]
        if params.amount is not None:
            amount = to_minor_units(params.amount, charge["currency"])
        if amount > charge["authorized"]:
            raise InvalidRequestError("capture amount exceeds authorized amount", field="amount")

        charge["captured_amount"] = amount
        charge["status"] = "captured"
        return CaptureResponse(transaction_id=transaction_id)

    async def refund(
        self,
        transaction_id: str,
        amount: int,
        params: RefundParams,
    ) -> RefundResponse:
        transaction = await self.query(transaction_id)
        charge = self._charges[transaction_id]
        if charge["status"] not in ("authorized", "captured") or charge["cancelled"]:
            raise ProviderError(self.provider_name, "charge_not_refundable", f"status {charge['status']}")
        refund_amount = to_minor_units(amount, charge["currency"])

        if refund_amount > transaction.amount:
            raise InvalidRequestError("refund amount exceeds remaining amount", field="amount")

        if transaction.captured:
            charge["refunded"] += refund_amount
            if charge["refunded"] == charge["captured_amount"]:
                charge["cancelled"] = True
        else:
            # Sin capturar: se captura lo autorizado menos el reembolso
            charge["captured_amount"] = charge["authorized"] - refund_amount
            charge["status"] = "captured"
        return RefundResponse(transaction_id=transaction_id)

    async def void(self, transaction_id: str, params: VoidParams) -> VoidResponse:
        charge = self._get_charge(transaction_id)
        charge["cancelled"] = True
        charge["status"] = "cancelled"
        return VoidResponse(transaction_id=transaction_id)

    async def query(self, transaction_id: str) -> Transaction:
        charge = self._get_charge(transaction_id)
        captured = charge["status"] == "captured"
        base = charge["captured_amount"] if captured else charge["authorized"]
        return Transaction(
            id=charge["id"],
            amount=base - charge["refunded"],
            currency=charge["currency"],
            captured=captured,
            paid=captured,
            cancelled=charge["cancelled"],
            status=charge["status"],
            order_id=charge["order_id"],
            created_at=charge["created_at"],
        )

    # ============================================
    # Tarjetas guardadas
    # ============================================

    async def create_credit_card(self, params: CreateCreditCardParams) -> CreditCardResponse:
        card = params.credit_card
        customer_id = params.customer_id or self._generate_mock_id("cus")
        card_id = self._generate_mock_id("card")
        self._cards.setdefault(customer_id, {})[card_id] = {
            "name": card.name,
            "last4": card.last4,
            "exp_month": card.exp_month,
            "exp_year": card.exp_year,
            "brand": "mock",
        }
        return CreditCardResponse(customer_id=customer_id, credit_card_id=card_id)

    async def get_credit_card(self, params: GetCreditCardParams) -> GetCreditCardResponse:
        card = self._cards.get(params.customer_id, {}).get(params.credit_card_id)
        if card is None:
            raise ProviderError(self.provider_name, "resource_missing", "No such card")
        return GetCreditCardResponse(
            credit_card=self._to_customer_credit_card(params.customer_id, params.credit_card_id, card),
        )

    async def list_credit_cards(self, params: ListCreditCardsParams) -> ListCreditCardsResponse:
        cards = self._cards.get(params.customer_id, {})
        return ListCreditCardsResponse(
            credit_cards=[
                self._to_customer_credit_card(params.customer_id, card_id, card)
                for card_id, card in cards.items()
            ],
        )

    async def delete_credit_card(self, params: DeleteCreditCardParams) -> DeleteCreditCardResponse:
        self._cards.get(params.customer_id, {}).pop(params.credit_card_id, None)
        return DeleteCreditCardResponse()

    @staticmethod
    def _to_customer_credit_card(
        customer_id: str,
        card_id: str,
        card: dict[str, Any],
    ) -> CustomerCreditCard:
        return CustomerCreditCard(
            customer_id=customer_id,
            customer_name=card["name"],
            credit_card_id=card_id,
            masked_number=card["last4"],
            exp_month=card["exp_month"],
            exp_year=card["exp_year"],
            brand=card["brand"],
        )

    def clear(self) -> None:
        """Limpia cargos y tarjetas (para testing)."""
        self._charges.clear()
        self._cards.clear()
        logger.info("Mock payments cleared")

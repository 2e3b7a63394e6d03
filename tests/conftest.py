"""
Configuración de tests y fixtures compartidos.

Los proveedores externos se simulan en memoria:
- Paygent: un endpoint falso servido con httpx.MockTransport
- Stripe: un StripeClient falso inyectado en el adapter
"""

import itertools
from datetime import datetime
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
import stripe

from paygate.adapters.mock_adapter import MockAdapter
from paygate.adapters.paygent import PaygentAdapter
from paygate.adapters.stripe_adapter import StripeAdapter
from paygate.config import PaygentConfig, StripeConfig
from paygate.schemas.payment import CreditCard


NEXT_YEAR = datetime.now().year + 1

JCB_NUMBER = "3580876521284076"
THREE_D_SECURE_NUMBER = "5123459358515820"


@pytest.fixture
def jcb_card() -> CreditCard:
    return CreditCard(name="JCB Card", number=JCB_NUMBER, exp_month=1, exp_year=NEXT_YEAR)


@pytest.fixture
def three_d_secure_card() -> CreditCard:
    return CreditCard(name="JCB Card", number=THREE_D_SECURE_NUMBER, exp_month=1, exp_year=NEXT_YEAR)


# ============================================
# Paygent
# ============================================

Reply = list[tuple[str, str]]


class FakePaygentProvider:
    """
    Endpoint de Paygent en memoria.

    Decodifica los telegramas recibidos, mantiene pagos y tarjetas, y
    responde con registros clave=valor como el proveedor real.
    """

    CARD_NOT_FOUND = "P026"

    def __init__(self):
        self.requests: list[dict[str, str]] = []
        self.payments: dict[str, dict[str, Any]] = {}
        self.cards: dict[str, dict[str, dict[str, str]]] = {}
        self.extra_lines: list[str] = []
        self._ids = itertools.count(1000)

    def handle(self, request: httpx.Request) -> httpx.Response:
        fields = {}
        for line in request.content.decode("utf-8").split("\r\n"):
            if line:
                key, _, value = line.partition("=")
                fields[key] = value
        self.requests.append(fields)

        handler = getattr(self, f"_kind_{fields['telegram_kind']}")
        reply = handler(fields)

        lines = [f"{key}={value}" for key, value in reply] + self.extra_lines
        return httpx.Response(200, content=("\r\n".join(lines) + "\r\n").encode("utf-8"))

    @property
    def kinds(self) -> list[str]:
        return [fields["telegram_kind"] for fields in self.requests]

    def _error(self, code: str, detail: str) -> Reply:
        return [("result", "1"), ("response_code", code), ("response_detail", detail)]

    def _new_payment(self, fields: dict[str, str], status: str) -> str:
        if "stock_card_mode" in fields:
            cards = self.cards.get(fields["customer_id"], {})
            if fields["customer_card_id"] not in cards:
                raise LookupError
        payment_id = str(next(self._ids))
        self.payments[payment_id] = {
            "amount": int(fields["payment_amount"]),
            "status": status,
            "trading_id": fields["trading_id"],
        }
        return payment_id

    def _transition(self, fields: dict[str, str], expected: str, new: str) -> Reply:
        payment = self.payments.get(fields["payment_id"])
        if payment is None:
            return self._error("P010", "payment not found")
        if payment["status"] != expected:
            return self._error("P020", f"invalid status {payment['status']}")
        payment["status"] = new
        if "payment_amount" in fields:
            payment["amount"] = int(fields["payment_amount"])
        return [("result", "0"), ("payment_id", fields["payment_id"])]

    # Autorización
    def _kind_020(self, fields):
        try:
            payment_id = self._new_payment(fields, "20")
        except LookupError:
            return self._error(self.CARD_NOT_FOUND, "card not found")
        return [("result", "0"), ("payment_id", payment_id), ("trading_id", fields["trading_id"])]

    # Autorización con 3-D Secure
    def _kind_010(self, fields):
        payment_id = self._new_payment(fields, "10")
        return [
            ("result", "0"),
            ("payment_id", payment_id),
            ("trading_id", fields["trading_id"]),
            ("acs_url", "https://acs.example.com/challenge"),
            ("PaReq", "eJxVUttuwjAM"),
            ("MD", payment_id),
        ]

    def _kind_024(self, fields):
        return self._transition(fields, "10", "20")

    def _kind_021(self, fields):
        return self._transition(fields, "20", "32")

    def _kind_022(self, fields):
        return self._transition(fields, "20", "40")

    def _kind_023(self, fields):
        return self._transition(fields, "40", "60")

    def _kind_028(self, fields):
        return self._transition(fields, "20", "20")

    def _kind_029(self, fields):
        return self._transition(fields, "40", "40")

    def _kind_094(self, fields):
        payment = self.payments.get(fields["payment_id"])
        if payment is None:
            return self._error("P010", "payment not found")
        return [
            ("result", "0"),
            ("payment_id", fields["payment_id"]),
            ("trading_id", payment["trading_id"]),
            ("payment_amount", str(payment["amount"])),
            ("payment_status", payment["status"]),
            ("payment_date", "20260101120000"),
        ]

    # Tarjetas guardadas
    def _kind_025(self, fields):
        card_id = str(next(self._ids))
        number = fields["card_number"]
        self.cards.setdefault(fields["customer_id"], {})[card_id] = {
            "customer_card_id": card_id,
            "card_number": number[:6] + "*" * (len(number) - 10) + number[-4:],
            "card_valid_term": fields["card_valid_term"],
            "cardholder_name": fields.get("cardholder_name", ""),
            "card_brand": "JCB",
        }
        return [("result", "0"), ("customer_id", fields["customer_id"]), ("customer_card_id", card_id)]

    def _kind_026(self, fields):
        cards = self.cards.get(fields["customer_id"], {})
        if cards.pop(fields["customer_card_id"], None) is None:
            return self._error(self.CARD_NOT_FOUND, "card not found")
        return [("result", "0")]

    def _kind_027(self, fields):
        cards = self.cards.get(fields["customer_id"], {})
        if "customer_card_id" in fields:
            card = cards.get(fields["customer_card_id"])
            if card is None:
                return self._error(self.CARD_NOT_FOUND, "card not found")
            selected = [card]
        else:
            selected = list(cards.values())

        reply: Reply = [("result", "0")]
        for card in selected:
            reply.extend(card.items())
        return reply


@pytest.fixture
def paygent_config() -> PaygentConfig:
    return PaygentConfig(
        merchant_id="merchant-1",
        connect_id="connect-1",
        connect_password="secret",
    )


@pytest.fixture
def fake_paygent() -> FakePaygentProvider:
    return FakePaygentProvider()


@pytest.fixture
def paygent_adapter(paygent_config, fake_paygent) -> PaygentAdapter:
    return PaygentAdapter(paygent_config, transport=httpx.MockTransport(fake_paygent.handle))


# ============================================
# Stripe
# ============================================

def _missing(kind: str, object_id: str) -> stripe.InvalidRequestError:
    return stripe.InvalidRequestError(f"No such {kind}: '{object_id}'", "id", code="resource_missing")


class FakeStripe:
    """
    Estado en memoria con la forma de los servicios de StripeClient.

    ``client`` expone tokens, charges, refunds y customers.payment_sources;
    cada llamada se registra en ``calls`` con sus params.
    """

    def __init__(self):
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.tokens: dict[str, dict[str, Any]] = {}
        self.charges: dict[str, SimpleNamespace] = {}
        self.sources: dict[str, list[SimpleNamespace]] = {}
        self._ids = itertools.count(1)

        self.client = SimpleNamespace(
            tokens=SimpleNamespace(create=self.token_create),
            charges=SimpleNamespace(
                create=self.charge_create,
                retrieve=self.charge_retrieve,
                capture=self.charge_capture,
            ),
            refunds=SimpleNamespace(create=self.refund_create),
            customers=SimpleNamespace(
                payment_sources=SimpleNamespace(
                    create=self.source_create,
                    retrieve=self.source_retrieve,
                    list=self.source_list,
                    delete=self.source_delete,
                ),
            ),
        )

    def _next(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids):06d}"

    def token_create(self, params=None, options=None):
        self.calls.append(("token.create", dict(params)))
        token_id = self._next("tok")
        self.tokens[token_id] = params["card"]
        return SimpleNamespace(id=token_id)

    def charge_create(self, params=None, options=None):
        self.calls.append(("charge.create", {**params, "options": options or {}}))
        charge = SimpleNamespace(
            id=self._next("ch"),
            amount=params["amount"],
            amount_refunded=0,
            currency=params["currency"],
            captured=params.get("capture", True),
            paid=True,
            refunded=False,
            status="succeeded",
            created=1767225600,
            metadata=params.get("metadata", {}),
        )
        self.charges[charge.id] = charge
        return charge

    def charge_retrieve(self, charge_id, params=None, options=None):
        self.calls.append(("charge.retrieve", {"id": charge_id}))
        if charge_id not in self.charges:
            raise _missing("charge", charge_id)
        return self.charges[charge_id]

    def charge_capture(self, charge_id, params=None, options=None):
        params = params or {}
        self.calls.append(("charge.capture", {"id": charge_id, **params}))
        charge = self.charges[charge_id]
        if charge.captured:
            raise stripe.InvalidRequestError("Charge has already been captured", None, code="charge_already_captured")
        amount = params.get("amount")
        if amount is not None and amount <= 0:
            raise stripe.InvalidRequestError("Amount must be at least 1", "amount", code="parameter_invalid_integer")
        charge.captured = True
        if amount is not None:
            # Stripe libera lo no capturado como monto reembolsado
            charge.amount_refunded = charge.amount - amount
        return charge

    def refund_create(self, params=None, options=None):
        self.calls.append(("refund.create", dict(params)))
        target = self.charges[params["charge"]]
        amount = params.get("amount")
        target.amount_refunded += amount if amount is not None else target.amount - target.amount_refunded
        target.refunded = target.amount_refunded == target.amount
        return SimpleNamespace(id=self._next("re"), amount=amount)

    def source_create(self, customer_id, params=None, options=None):
        self.calls.append(("customer.create_source", {"customer": customer_id, **params}))
        card = self.tokens[params["source"]]
        created = SimpleNamespace(
            id=self._next("card"),
            customer=customer_id,
            name=card["name"],
            last4=card["number"][-4:],
            exp_month=int(card["exp_month"]),
            exp_year=int(card["exp_year"]),
            brand="JCB",
        )
        self.sources.setdefault(customer_id, []).append(created)
        return created

    def source_retrieve(self, customer_id, card_id, params=None, options=None):
        for card in self.sources.get(customer_id, []):
            if card.id == card_id:
                return card
        raise _missing("source", card_id)

    def source_list(self, customer_id, params=None, options=None):
        self.calls.append(("customer.list_sources", {"customer": customer_id, **(params or {})}))
        cards = list(self.sources.get(customer_id, []))
        return SimpleNamespace(auto_paging_iter=lambda: iter(cards))

    def source_delete(self, customer_id, card_id, params=None, options=None):
        cards = self.sources.get(customer_id, [])
        for card in cards:
            if card.id == card_id:
                cards.remove(card)
                return SimpleNamespace(id=card_id, deleted=True)
        raise _missing("source", card_id)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def last(self, name: str) -> dict[str, Any]:
        return [kwargs for call, kwargs in self.calls if call == name][-1]


@pytest.fixture
def stripe_config() -> StripeConfig:
    return StripeConfig(api_key="sk_test_123")


@pytest.fixture
def fake_stripe() -> FakeStripe:
    return FakeStripe()


@pytest.fixture
def stripe_adapter(stripe_config, fake_stripe) -> StripeAdapter:
    return StripeAdapter(stripe_config, client=fake_stripe.client)


@pytest.fixture
def deferred_stripe_adapter(stripe_config, fake_stripe) -> StripeAdapter:
    config = stripe_config.model_copy(update={"capture_on_authorize": False})
    return StripeAdapter(config, client=fake_stripe.client)


@pytest.fixture
def mock_adapter() -> MockAdapter:
    adapter = MockAdapter(success_rate=1.0)
    adapter.clear()
    return adapter

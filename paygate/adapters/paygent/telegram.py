"""
Catálogo y codec de telegramas de Paygent.

Un telegrama es un registro de líneas ``clave=valor`` terminadas en CRLF.
Cada operación tiene un ``telegram_kind`` numérico y un conjunto de campos
obligatorios y opcionales; el catálogo se mantiene como datos.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from paygate.utils.exceptions import InvalidRequestError, ProtocolError


PROVIDER_NAME = "paygent"

LINE_SEPARATOR = "\r\n"
ENCODING = "utf-8"

# Campos de credenciales presentes en todo telegrama
CREDENTIAL_FIELDS = frozenset(
    {"merchant_id", "connect_id", "connect_password", "telegram_version", "telegram_kind"}
)

# result=0 indica éxito
RESULT_SUCCESS = "0"


class TelegramOperation(str, Enum):
    """Operaciones soportadas por el proveedor."""

    AUTHORIZE = "authorize"
    AUTHORIZE_3DS = "authorize_3ds"
    COMPLETE_3DS = "complete_3ds"
    VOID = "void"
    CAPTURE = "capture"
    REFUND = "refund"
    CHANGE_AUTHORIZATION = "change_authorization"
    CHANGE_SALE = "change_sale"
    QUERY = "query"
    CREATE_CARD = "create_card"
    DELETE_CARD = "delete_card"
    QUERY_CARDS = "query_cards"


@dataclass(frozen=True)
class TelegramKind:
    """Definición de un tipo de telegrama."""

    code: str
    required: frozenset[str]
    optional: frozenset[str] = frozenset()

    @property
    def allowed(self) -> frozenset[str]:
        return self.required | self.optional

    def build(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """
        Filtra los campos según el catálogo.

        Descarta los campos no declarados y los valores None.

        Raises:
            InvalidRequestError: Si falta un campo obligatorio
        """
        values = {
            key: value
            for key, value in fields.items()
            if key in self.allowed and value is not None and value != ""
        }
        missing = sorted(self.required - values.keys())
        if missing:
            raise InvalidRequestError(
                f"telegram {self.code} missing required fields: {', '.join(missing)}",
                field=missing[0],
            )
        return values


_CARD_FIELDS = frozenset({"card_number", "card_valid_term", "card_conf_number"})
_STOCK_CARD_FIELDS = frozenset({"stock_card_mode", "customer_id", "customer_card_id"})

TELEGRAM_CATALOG: dict[TelegramOperation, TelegramKind] = {
    TelegramOperation.AUTHORIZE: TelegramKind(
        code="020",
        required=frozenset({"trading_id", "payment_amount", "payment_class"}),
        optional=_CARD_FIELDS | _STOCK_CARD_FIELDS | {"split_count", "3dsecure_ryaku"},
    ),
    TelegramOperation.AUTHORIZE_3DS: TelegramKind(
        code="010",
        required=frozenset(
            {"trading_id", "payment_amount", "payment_class",
             "http_user_agent", "http_accept", "term_url"}
        ),
        optional=_CARD_FIELDS | _STOCK_CARD_FIELDS | {"split_count", "merchant_name"},
    ),
    TelegramOperation.COMPLETE_3DS: TelegramKind(
        code="024",
        required=frozenset({"payment_id", "PaRes"}),
        optional=frozenset({"MD", "trading_id"}),
    ),
    TelegramOperation.VOID: TelegramKind(
        code="021",
        required=frozenset({"payment_id"}),
        optional=frozenset({"trading_id"}),
    ),
    TelegramOperation.CAPTURE: TelegramKind(
        code="022",
        required=frozenset({"payment_id"}),
        optional=frozenset({"trading_id", "payment_amount"}),
    ),
    TelegramOperation.REFUND: TelegramKind(
        code="023",
        required=frozenset({"payment_id"}),
        optional=frozenset({"trading_id"}),
    ),
    TelegramOperation.CHANGE_AUTHORIZATION: TelegramKind(
        code="028",
        required=frozenset({"payment_id", "payment_amount"}),
        optional=frozenset({"trading_id"}),
    ),
    TelegramOperation.CHANGE_SALE: TelegramKind(
        code="029",
        required=frozenset({"payment_id", "payment_amount"}),
        optional=frozenset({"trading_id"}),
    ),
    TelegramOperation.QUERY: TelegramKind(
        code="094",
        required=frozenset({"payment_id"}),
        optional=frozenset({"trading_id"}),
    ),
    TelegramOperation.CREATE_CARD: TelegramKind(
        code="025",
        required=frozenset({"customer_id", "card_number", "card_valid_term"}),
        optional=frozenset({"cardholder_name", "card_conf_number"}),
    ),
    TelegramOperation.DELETE_CARD: TelegramKind(
        code="026",
        required=frozenset({"customer_id", "customer_card_id"}),
    ),
    TelegramOperation.QUERY_CARDS: TelegramKind(
        code="027",
        required=frozenset({"customer_id"}),
        optional=frozenset({"customer_card_id"}),
    ),
}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def encode_telegram(fields: Mapping[str, Any]) -> bytes:
    """
    Codifica un telegrama como líneas ``clave=valor`` con CRLF.

    Raises:
        InvalidRequestError: Si una clave o valor contiene saltos de línea
    """
    lines = []
    for key, value in fields.items():
        if value is None:
            continue
        text = _format_value(value)
        if any(c in key or c in text for c in "\r\n") or "=" in key:
            raise InvalidRequestError(f"telegram field '{key}' contains a forbidden character", field=key)
        lines.append(f"{key}={text}")
    return (LINE_SEPARATOR.join(lines) + LINE_SEPARATOR).encode(ENCODING)


@dataclass
class TelegramResponse:
    """
    Respuesta decodificada.

    records contiene uno o más registros; una clave repetida dentro del
    registro actual abre uno nuevo (así llegan los listados de tarjetas).
    El primer registro lleva result, response_code y response_detail.
    """

    records: list[dict[str, str]] = field(default_factory=list)
    unparsed: list[str] = field(default_factory=list)
    raw: str = ""

    @property
    def fields(self) -> dict[str, str]:
        return self.records[0] if self.records else {}

    def get(self, key: str, default: str = "") -> str:
        return self.fields.get(key, default)

    @property
    def result(self) -> str | None:
        return self.fields.get("result")

    @property
    def response_code(self) -> str:
        return self.get("response_code")

    @property
    def response_detail(self) -> str:
        return self.get("response_detail")

    @property
    def is_success(self) -> bool:
        return self.result == RESULT_SUCCESS

    def records_with(self, key: str) -> list[dict[str, str]]:
        """Registros que contienen la clave dada, en el orden recibido."""
        return [record for record in self.records if record.get(key)]


def parse_telegram(payload: bytes | str) -> TelegramResponse:
    """
    Decodifica una respuesta de Paygent.

    El parser es total: las líneas que no son ``clave=valor`` se guardan en
    unparsed sin fallar.

    Raises:
        ProtocolError: Si la respuesta no trae el campo result
    """
    text = payload.decode(ENCODING, errors="replace") if isinstance(payload, bytes) else payload
    response = TelegramResponse(raw=text)

    # Solo CRLF o LF separan líneas
    current: dict[str, str] = {}
    for line in text.replace("\r\n", "\n").split("\n"):
        if not line.strip():
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            response.unparsed.append(line)
            continue
        if key in current:
            response.records.append(current)
            current = {}
        current[key] = value.strip(" \t")
    if current:
        response.records.append(current)

    if response.result is None:
        raise ProtocolError(PROVIDER_NAME, "response without result field", raw=text)

    return response

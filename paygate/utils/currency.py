"""
Escalado de montos a la unidad menor de cada moneda.

En la frontera del gateway los montos se expresan en la unidad mayor
(dólares, euros, yenes). Los proveedores que trabajan en unidad menor
(centavos) usan estas funciones antes de enviar el monto.
"""

from paygate.utils.exceptions import InvalidRequestError


# Multiplicador de unidad mayor -> unidad menor
MINOR_UNIT_FACTORS: dict[str, int] = {
    "USD": 100,
    "EUR": 100,
    "GBP": 100,
    "CAD": 100,
    "AUD": 100,
    "CHF": 100,
    "CNY": 100,
    "HKD": 100,
    "SGD": 100,
    "JPY": 1,  # Sin subunidad
    "KRW": 1,
    "VND": 1,
}


def normalize_currency(currency: str) -> str:
    """Normaliza un código ISO-4217 a mayúsculas."""
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise InvalidRequestError(f"invalid currency code '{currency}'", field="currency")
    return code


def minor_unit_factor(currency: str) -> int:
    """
    Retorna el multiplicador de la moneda.

    Raises:
        InvalidRequestError: Si la moneda no está en la tabla
    """
    code = normalize_currency(currency)
    try:
        return MINOR_UNIT_FACTORS[code]
    except KeyError:
        raise InvalidRequestError(
            f"currency '{code}' has no known minor unit", field="currency"
        ) from None


def to_minor_units(amount: int, currency: str) -> int:
    """Convierte un monto en unidad mayor a unidad menor (100 USD -> 10000)."""
    return int(amount) * minor_unit_factor(currency)


def from_minor_units(amount: int, currency: str) -> int:
    """Convierte un monto en unidad menor a unidad mayor, truncando."""
    return int(amount) // minor_unit_factor(currency)

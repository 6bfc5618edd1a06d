"""
Utilidades de montos, tarifas y formato en pesos colombianos.

Los cálculos intermedios se llevan en Decimal exacto; solo los valores a pagar
se redondean al peso, una sola vez.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, str, Decimal]

ONE_PESO = Decimal("1")
RATE_PLACES = Decimal("0.000001")
PERCENT_PLACES = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Convierte a Decimal sin arrastrar el error binario de los float."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_currency(value: Number) -> int:
    """Redondea al peso más cercano (mitad hacia arriba)."""
    return int(to_decimal(value).quantize(ONE_PESO, rounding=ROUND_HALF_UP))


def quantize_rate(value: Number) -> Decimal:
    """Tarifa con seis decimales (p. ej. 0.005220)."""
    return to_decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def percentage(part: Number, whole: Number) -> Decimal:
    """Porcentaje 0-100 con dos decimales; cero si el total es cero."""
    whole = to_decimal(whole)
    if whole == 0:
        return Decimal("0.00")
    return (to_decimal(part) * 100 / whole).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def _group_thousands(value: int) -> str:
    return f"{value:,}".replace(",", ".")


def format_currency(value: Number) -> str:
    """Formato COP sin decimales: 1234567 -> '$1.234.567'."""
    amount = round_currency(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${_group_thousands(abs(amount))}"


def format_rate(rate: Number, places: int = 1) -> str:
    """Tarifa decimal como porcentaje: 0.059 -> '5.9%'."""
    return f"{to_decimal(rate) * 100:.{places}f}%"


def format_uvt(value: Number) -> str:
    """Valor en UVT con separador de miles: 1340 -> '1.340 UVT'."""
    value = to_decimal(value)
    if value == value.to_integral_value():
        return f"{_group_thousands(int(value))} UVT"
    return f"{value:.2f} UVT"

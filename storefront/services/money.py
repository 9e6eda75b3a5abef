"""
Decimal helpers for cart amounts.

Medusa sends prices as JSON numbers. They are turned into Decimal exactly
once (floats go through str()) and every sum after that stays Decimal.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0")

Number = Union[str, int, float, Decimal, None]


def to_decimal(value: Number) -> Decimal:
    """
    Coerce a backend or config amount to Decimal.

    None and unparsable input become 0, so a broken price never aborts a
    cart render.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return ZERO


def round_money(value: Number) -> Decimal:
    """Quantize to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Number, currency: str = "CHF") -> str:
    """
    Display string with the currency code in front.

        format_money(129, "chf") -> "CHF 129.00"
    """
    code = (currency or "CHF").upper()
    return f"{code} {round_money(value):.2f}"


def add(a: Number, b: Number) -> Decimal:
    return to_decimal(a) + to_decimal(b)


def subtract(a: Number, b: Number) -> Decimal:
    return to_decimal(a) - to_decimal(b)


def multiply(value: Number, factor: Number) -> Decimal:
    return to_decimal(value) * to_decimal(factor)


def divide(value: Number, divisor: Number) -> Decimal:
    """Division that yields 0 for a zero divisor."""
    divisor = to_decimal(divisor)
    if not divisor:
        return ZERO
    return to_decimal(value) / divisor


def included_tax(gross: Number, rate: Number) -> Decimal:
    """
    Tax portion already contained in a tax-inclusive amount.

    gross * rate / (1 + rate), rounded to cents.
    """
    return round_money(divide(multiply(gross, rate), add(1, rate)))

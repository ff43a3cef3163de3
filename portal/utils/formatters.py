"""
Formatting helpers for documents.
French style: space as thousands separator, comma as decimal separator.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union, Optional

Number = Union[int, float, Decimal, str, None]


def _to_decimal(value: Number) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        if isinstance(value, str):
            value = value.replace(",", ".")
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None


def num_fr(value: Number, decimals: Optional[int] = None) -> str:
    """
    Format a number in French style.

    Examples:
        num_fr(1500) -> "1 500"
        num_fr(1500.5) -> "1 500,5"
        num_fr(1234.5, 2) -> "1 234,50"
        num_fr(None) -> "-"
    """
    num = _to_decimal(value)
    if num is None:
        return "-"

    if decimals is not None:
        num = num.quantize(Decimal(10) ** -decimals, rounding=ROUND_HALF_UP)

    num_str = f"{num:f}"
    if '.' in num_str:
        integer_part, decimal_part = num_str.split('.')
        if decimals is None:
            decimal_part = decimal_part.rstrip('0')
    else:
        integer_part, decimal_part = num_str, ""

    sign_str = ''
    if integer_part.startswith('-'):
        sign_str = '-'
        integer_part = integer_part[1:]

    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i + 3] for i in range(0, len(reversed_int), 3)]
    integer_formatted = ' '.join(groups)[::-1]

    if decimal_part:
        return f"{sign_str}{integer_formatted},{decimal_part}"
    return f"{sign_str}{integer_formatted}"


def money_fr(value: Number, currency: str = "€") -> str:
    """
    Amount with two decimals and the currency symbol after it.

    money_fr(648) -> "648,00 €"
    """
    if _to_decimal(value) is None:
        return "-"
    return f"{num_fr(value, 2)} {currency}"


def unit_price_fr(value: Number, currency: str = "€") -> str:
    """Unit prices keep up to four decimals, never fewer than two."""
    num = _to_decimal(value)
    if num is None:
        return "-"
    num = num.quantize(Decimal('0.0001'), rounding=ROUND_HALF_UP).normalize()
    exponent = num.as_tuple().exponent
    decimals = max(2, -exponent if isinstance(exponent, int) and exponent < 0 else 0)
    return f"{num_fr(num, decimals)} {currency}"


def date_fr(value: Union[date, datetime, None]) -> str:
    """dd/mm/yyyy, or "-" when missing."""
    if value is None:
        return "-"
    return value.strftime('%d/%m/%Y')

"""
Fixed-point helpers for monetary values and percentage rates.

All amounts and rates are 2-decimal Decimals in memory and Numeric(10, 2)
(Numeric(5, 2) for rates) in the database. Floats from JSON are converted
through their string form so 0.1 stays 0.1.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value, *, exact: bool = False) -> Decimal:
    """
    Coerce int/float/str/Decimal to a 2-decimal Decimal.

    With exact=True, a value that would change when rounded to cents is
    rejected instead ("1.005" fails, "1.000" passes).

    Raises ValueError for booleans, blanks, non-numeric strings and
    non-finite values.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, float):
        d = Decimal(repr(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError("blank is not a number")
        try:
            d = Decimal(stripped)
        except InvalidOperation:
            raise ValueError(f"{value!r} is not a number")
    else:
        raise ValueError(f"{type(value).__name__} is not a number")

    if not d.is_finite():
        raise ValueError("number must be finite")
    try:
        quantized = d.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError("number is too large")
    if exact and quantized != d:
        raise ValueError("number has more than 2 decimal places")
    return quantized


def format_amount(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def sum_amounts(values) -> Decimal:
    total = ZERO
    for v in values:
        if v is not None:
            total += Decimal(v)
    return total.quantize(CENT, rounding=ROUND_HALF_UP)

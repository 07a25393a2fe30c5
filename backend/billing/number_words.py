"""
Amounts in words, Indian numbering system.

Groups: crore (10^7), lakh (10^5), thousand (10^3), then hundreds/tens/ones.
Paise are not spelled out: the amount is rounded half-up to whole rupees
first. Output always ends with " Only".

    >>> amount_to_words(1234567)
    'Twelve Lakh Thirty Four Thousand Five Hundred Sixty Seven Only'
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
TEENS = [
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen",
    "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

CRORE = 10_000_000
LAKH = 100_000
THOUSAND = 1_000


def _below_thousand(num: int) -> str:
    if num == 0:
        return ""
    if num < 10:
        return ONES[num]
    if num < 20:
        return TEENS[num - 10]
    if num < 100:
        return TENS[num // 10] + (" " + ONES[num % 10] if num % 10 else "")
    rest = num % 100
    return ONES[num // 100] + " Hundred" + (" " + _below_thousand(rest) if rest else "")


def _spell(num: int) -> str:
    # Crore counts above 99 are spelled with the same grouping
    crore = num // CRORE
    lakh = (num % CRORE) // LAKH
    thousand = (num % LAKH) // THOUSAND
    remainder = num % THOUSAND

    result = ""
    if crore:
        result += _spell(crore) + " Crore "
    if lakh:
        result += _below_thousand(lakh) + " Lakh "
    if thousand:
        result += _below_thousand(thousand) + " Thousand "
    if remainder:
        result += _below_thousand(remainder)
    return result.strip()


def _to_decimal(amount) -> Decimal:
    if isinstance(amount, bool):
        raise ValueError("amount must be a number")
    if isinstance(amount, float):
        amount = repr(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError):
        raise ValueError(f"amount must be a number, got {amount!r}")
    if not value.is_finite():
        raise ValueError("amount must be finite")
    if value < 0:
        raise ValueError("amount must be non-negative")
    return value


def amount_to_words(amount) -> str:
    """
    Spell a non-negative amount in words.

    Raises ValueError for negative, non-finite or non-numeric input.
    """
    whole = int(_to_decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    if whole == 0:
        return "Zero Only"
    return _spell(whole) + " Only"

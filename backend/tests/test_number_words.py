from decimal import Decimal

import pytest

from billing.number_words import amount_to_words


@pytest.mark.parametrize(
    "amount, words",
    [
        (0, "Zero Only"),
        (7, "Seven Only"),
        (15, "Fifteen Only"),
        (40, "Forty Only"),
        (100, "One Hundred Only"),
        (1000, "One Thousand Only"),
        (100000, "One Lakh Only"),
        (1234567, "Twelve Lakh Thirty Four Thousand Five Hundred Sixty Seven Only"),
        (10000000, "One Crore Only"),
        (250000001, "Twenty Five Crore One Only"),
    ],
)
def test_indian_grouping(amount, words):
    assert amount_to_words(amount) == words


def test_paise_round_half_up():
    assert amount_to_words(Decimal("5192.49")) == "Five Thousand One Hundred Ninety Two Only"
    assert amount_to_words("5192.50") == "Five Thousand One Hundred Ninety Three Only"
    assert amount_to_words(0.4) == "Zero Only"


def test_large_crore_counts_keep_grouping():
    assert amount_to_words(1234500000000) == "One Lakh Twenty Three Thousand Four Hundred Fifty Crore Only"


@pytest.mark.parametrize("bad", [-1, "-0.6", float("nan"), float("inf"), "abc", None, True])
def test_rejects_invalid_amounts(bad):
    with pytest.raises(ValueError):
        amount_to_words(bad)

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from num2words import num2words


ZERO_WORDS = "Zero rupees only"
_CRORE = 10 ** 7


def round_rupees(value: Any) -> int:
    """Nearest whole rupee, halves rounded up; unusable input is 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        amount = Decimal(str(value).strip() or "0")
    except InvalidOperation:
        return 0
    if not amount.is_finite():
        return 0
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _indian_words(number: int) -> str:
    crores, rest = divmod(number, _CRORE)
    if crores >= 100:
        # num2words stops at a thousand crore; spell the multiplier itself.
        head = f"{_indian_words(crores)} crore"
        return f"{head} {_indian_words(rest)}" if rest else head

    # num2words renders 150000 as "one lakh, fifty thousand" and 120 as
    # "one hundred and twenty"; invoices print plain space-joined words.
    words = num2words(number, lang="en_IN")
    words = words.replace(",", " ").replace("-", " ")
    words = re.sub(r"\band\b", " ", words)
    return re.sub(r"\s+", " ", words).strip()


def amount_in_words(value: Any) -> str:
    rupees = round_rupees(value)
    if rupees <= 0:
        return ZERO_WORDS
    words = _indian_words(rupees)
    return f"{words[0].upper()}{words[1:]} rupees only"

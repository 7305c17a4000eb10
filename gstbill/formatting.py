from __future__ import annotations

from typing import Any

from gstbill.models import coerce_amount


def _group_indian(whole: str) -> str:
    # 1234567 -> 12,34,567: last three digits, then pairs.
    if len(whole) <= 3:
        return whole
    head, tail = whole[:-3], whole[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(value: Any, decimals: int = 2) -> str:
    try:
        amount = float(value or 0)
    except (TypeError, ValueError):
        amount = 0.0
    sign = "-" if amount < 0 and round(abs(amount), decimals) > 0 else ""
    whole, _, frac = f"{abs(amount):.{decimals}f}".partition(".")
    grouped = _group_indian(whole)
    return f"{sign}{grouped}.{frac}" if frac else f"{sign}{grouped}"


def format_line_amount(value: Any) -> str:
    """Line-level money: blank when zero or empty."""
    if not coerce_amount(value):
        return ""
    return format_inr(value)


def format_total_amount(value: Any) -> str:
    """Aggregate money: "0" when zero or empty."""
    if not coerce_amount(value):
        return "0"
    return format_inr(value)


def _trim(number: float) -> str:
    return f"{number:.3f}".rstrip("0").rstrip(".")


def format_quantity(value: Any) -> str:
    qty = coerce_amount(value)
    return _trim(qty) if qty else ""


def format_percent(value: Any, blank_zero: bool = True) -> str:
    rate = coerce_amount(value)
    if not rate and blank_zero:
        return ""
    return f"{_trim(rate)}%"

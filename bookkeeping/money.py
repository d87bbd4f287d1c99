#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Fixed-point money helpers.

Amounts travel through the engine as integer cents. Conversion from display
strings rounds half away from zero to two decimals; all arithmetic after that
is integer arithmetic.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Tuple, Union

from bookkeeping.errors import InputError

Number = Union[str, int, float, Decimal]

_CENT = Decimal("0.01")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InputError(f"无效金额: {value!r}", {"value": str(value)})
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return Decimal(0)
        try:
            amount = Decimal(text)
        except InvalidOperation as exc:
            raise InputError(f"无效金额: {value!r}", {"value": value}) from exc
    else:
        raise InputError(f"无效金额: {value!r}", {"value": str(value)})
    if not amount.is_finite():
        raise InputError(f"无效金额: {value!r}", {"value": str(value)})
    return amount


def to_cents(value: Number) -> int:
    """Convert a display amount ("1234.5", 12.3, Decimal) to integer cents."""
    amount = _to_decimal(value)
    return int((amount * _HUNDRED).quantize(_ONE, rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> str:
    """Render integer cents as a two-decimal string."""
    return str((Decimal(int(cents)) / _HUNDRED).quantize(_CENT))


def to_rate(value: Number) -> Decimal:
    """Parse a percentage such as ``7`` or ``"2.5"``."""
    rate = _to_decimal(value)
    if rate < 0:
        raise InputError(f"比例不能为负: {value!r}", {"value": str(value)})
    return rate


def apply_percent(cents: int, percent: Number) -> int:
    """``cents * percent / 100`` rounded half away from zero."""
    result = Decimal(int(cents)) * to_rate(percent) / _HUNDRED
    return int(result.quantize(_ONE, rounding=ROUND_HALF_UP))


def split_tax(total_cents: int, rate_percent: Number) -> Tuple[int, int]:
    """Separate a tax-inclusive total into (net, tax).

    ``net = round(total / (1 + rate))`` and ``tax = total - net``, so the two
    parts always add back to the original total.
    """
    rate = to_rate(rate_percent) / _HUNDRED
    net = (Decimal(int(total_cents)) / (_ONE + rate)).quantize(_ONE, rounding=ROUND_HALF_UP)
    net_cents = int(net)
    return net_cents, int(total_cents) - net_cents

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Subject balance aggregation over a voucher set.

Balances are always re-derived from vouchers (plus leaf opening balances for
the cumulative scope); nothing computed here is cached or persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from bookkeeping.errors import InputError
from bookkeeping.models import AuxiliaryRef, Direction, Subject, Voucher, VoucherStatus
from bookkeeping.money import from_cents
from bookkeeping.periods import check_period, fiscal_year_start_period

logger = logging.getLogger(__name__)

SCOPE_PERIOD = "period"
SCOPE_YEAR = "year"
SCOPE_CUMULATIVE = "cumulative"
SCOPES = (SCOPE_PERIOD, SCOPE_YEAR, SCOPE_CUMULATIVE)

# transfers that empty profit-and-loss subjects; excluded when measuring them
PROFIT_CLOSING_TYPES = ("profit", "year-transfer")


@dataclass
class BalanceResult:
    code: str
    period: str
    scope: str
    direction: Direction
    debit_total: int
    credit_total: int
    net_balance: int
    opening: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "period": self.period,
            "scope": self.scope,
            "direction": self.direction.value,
            "opening": from_cents(self.opening),
            "debit_total": from_cents(self.debit_total),
            "credit_total": from_cents(self.credit_total),
            "net_balance": from_cents(self.net_balance),
        }


def is_eligible(voucher: Voucher) -> bool:
    """Approved vouchers count; system-generated ones are trusted immediately."""
    return (
        voucher.status is VoucherStatus.APPROVED
        or voucher.is_system
        or voucher.closing_type is not None
    )


def in_scope(voucher: Voucher, period: str, scope: str, fiscal_start_month: int = 1) -> bool:
    voucher_period = voucher.period or voucher.date[:7]
    if scope == SCOPE_PERIOD:
        return voucher_period == period
    if scope == SCOPE_YEAR:
        return fiscal_year_start_period(period, fiscal_start_month) <= voucher_period <= period
    if scope == SCOPE_CUMULATIVE:
        return voucher_period <= period
    raise InputError(f"无效汇总范围: {scope}", {"scope": scope, "allowed": list(SCOPES)})


def eligible_vouchers(
    vouchers: Iterable[Voucher],
    period: str,
    scope: str = SCOPE_PERIOD,
    fiscal_start_month: int = 1,
    exclude_closing_types: Iterable[str] = (),
) -> List[Voucher]:
    excluded = set(exclude_closing_types)
    return [
        v
        for v in vouchers
        if is_eligible(v)
        and v.closing_type not in excluded
        and in_scope(v, period, scope, fiscal_start_month)
    ]


def resolve_direction(code: str, subjects: Mapping[str, Subject]) -> Direction:
    subject = subjects.get(code)
    if subject is not None:
        return subject.direction
    for candidate_code in sorted(subjects):
        if candidate_code.startswith(code):
            return subjects[candidate_code].direction
    return Direction.DEBIT


def _opening(code: str, direction: Direction, subjects: Mapping[str, Subject]) -> int:
    parents = {s.parent_code for s in subjects.values() if s.parent_code}
    total = 0
    for subject in subjects.values():
        if not subject.code.startswith(code) or subject.code in parents:
            continue
        if subject.direction is direction:
            total += subject.opening_cents
        else:
            total -= subject.opening_cents
    return total


def balance(
    code: str,
    period: str,
    vouchers: Iterable[Voucher],
    subjects: Mapping[str, Subject],
    scope: str = SCOPE_PERIOD,
    fiscal_start_month: int = 1,
    exclude_closing_types: Iterable[str] = (),
    auxiliary: Optional[AuxiliaryRef] = None,
) -> BalanceResult:
    """Aggregate debit/credit for ``code`` and every child code it prefixes."""
    if not code:
        raise InputError("科目编码不能为空")
    check_period(period)
    if scope not in SCOPES:
        raise InputError(f"无效汇总范围: {scope}", {"scope": scope, "allowed": list(SCOPES)})
    direction = resolve_direction(code, subjects)
    debit_total = 0
    credit_total = 0
    for voucher in eligible_vouchers(
        vouchers, period, scope, fiscal_start_month, exclude_closing_types
    ):
        for line in voucher.lines:
            if not line.subject_code.startswith(code):
                continue
            if auxiliary is not None and line.auxiliary != auxiliary:
                continue
            debit_total += line.debit_cents
            credit_total += line.credit_cents

    opening = 0
    if scope == SCOPE_CUMULATIVE and auxiliary is None:
        opening = _opening(code, direction, subjects)
    if direction is Direction.DEBIT:
        net = opening + debit_total - credit_total
    else:
        net = opening + credit_total - debit_total
    logger.debug(
        "balance %s %s/%s debit=%s credit=%s net=%s",
        code, period, scope, debit_total, credit_total, net,
    )
    return BalanceResult(code, period, scope, direction, debit_total, credit_total, net, opening)


def profit_and_loss_balances(
    period: str,
    vouchers: Iterable[Voucher],
    subjects: Mapping[str, Subject],
    exclude_closing_types: Iterable[str] = PROFIT_CLOSING_TYPES,
) -> List[Tuple[Subject, Optional[AuxiliaryRef], int, int]]:
    """Period debit/credit per (profit-and-loss subject, auxiliary item).

    Classification comes from the subject's category, never from its code.
    """
    totals: Dict[Tuple[str, Optional[AuxiliaryRef]], List[int]] = {}
    for voucher in eligible_vouchers(
        vouchers, period, SCOPE_PERIOD, exclude_closing_types=exclude_closing_types
    ):
        for line in voucher.lines:
            subject = subjects.get(line.subject_code)
            if subject is None or not subject.is_profit_and_loss:
                continue
            bucket = totals.setdefault((line.subject_code, line.auxiliary), [0, 0])
            bucket[0] += line.debit_cents
            bucket[1] += line.credit_cents

    result = []
    for (subject_code, aux), (debit, credit) in sorted(
        totals.items(), key=lambda item: (item[0][0], _aux_key(item[0][1]))
    ):
        result.append((subjects[subject_code], aux, debit, credit))
    return result


def _aux_key(aux: Optional[AuxiliaryRef]) -> Tuple[str, str]:
    if aux is None:
        return ("", "")
    return (aux.dimension, aux.item_id)


def year_to_date_profit(
    period: str,
    vouchers: Iterable[Voucher],
    subjects: Mapping[str, Subject],
    fiscal_start_month: int = 1,
) -> int:
    """Revenue minus expense from fiscal-year start through ``period``."""
    profit = 0
    for voucher in eligible_vouchers(
        vouchers, period, SCOPE_YEAR, fiscal_start_month, PROFIT_CLOSING_TYPES
    ):
        for line in voucher.lines:
            subject = subjects.get(line.subject_code)
            if subject is None or not subject.is_profit_and_loss:
                continue
            if subject.is_revenue:
                profit += line.credit_cents - line.debit_cents
            else:
                profit -= line.debit_cents - line.credit_cents
    return profit

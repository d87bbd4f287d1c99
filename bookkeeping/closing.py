#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Closing voucher generators.

Each generator is a pure function of a period, the aggregated figures it
needs, and a small rule dict. The returned draft is balanced by construction;
the engine still runs it through :func:`bookkeeping.vouchers.validate` before
anything is saved. A zero amount is refused with
:class:`~bookkeeping.errors.NothingToTransferError` rather than producing an
empty voucher.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bookkeeping.errors import InputError, NothingToTransferError, PeriodStateError
from bookkeeping.models import AuxiliaryRef, ClosingTemplate, Subject, VoucherLine
from bookkeeping.money import apply_percent, from_cents
from bookkeeping.periods import is_fiscal_year_end, period_end_date

CLOSING_VOUCHER_TYPE = "转"

COST = "cost"
VAT_TRANSFER = "vat-transfer"
SIMPLE_TAX = "simple-tax"
SURTAX = "surtax"
INCOME_TAX = "income-tax"
PROFIT = "profit"
YEAR_TRANSFER = "year-transfer"

RESERVED_CLOSING_TYPES = (COST, VAT_TRANSFER, SIMPLE_TAX, SURTAX, INCOME_TAX, PROFIT, YEAR_TRANSFER)


@dataclass
class ClosingDraft:
    closing_type: str
    period: str
    lines: List[VoucherLine]
    date: str = ""
    voucher_type: str = CLOSING_VOUCHER_TYPE
    inputs: Dict[str, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.date:
            self.date = period_end_date(self.period)

    @property
    def total_cents(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "closing_type": self.closing_type,
            "period": self.period,
            "date": self.date,
            "voucher_type": self.voucher_type,
            "total": from_cents(self.total_cents),
            "inputs": {key: from_cents(value) for key, value in self.inputs.items()},
            "warnings": list(self.warnings),
            "lines": [line.to_dict() for line in self.lines],
        }


def _require(rule: Dict[str, Any], key: str) -> Any:
    value = rule.get(key)
    if value in (None, ""):
        raise InputError(f"结转规则缺少配置: {key}", {"key": key})
    return value


def _refuse(closing_type: str, period: str, message: str) -> NothingToTransferError:
    return NothingToTransferError(message, {"closing_type": closing_type, "period": period})


def _pair(
    closing_type: str,
    period: str,
    summary: str,
    debit_code: str,
    credit_code: str,
    amount: int,
    inputs: Dict[str, int],
) -> ClosingDraft:
    lines = [
        VoucherLine(summary, debit_code, debit_cents=amount),
        VoucherLine(summary, credit_code, credit_cents=amount),
    ]
    return ClosingDraft(closing_type, period, lines, inputs=inputs)


def generate_cost_transfer(period: str, inputs: Dict[str, int], rule: Dict[str, Any]) -> ClosingDraft:
    """Debit cost of sales, credit inventory: ``revenue * transfer_percent``."""
    revenue = max(0, inputs.get("revenue", 0))
    amount = apply_percent(revenue, rule.get("transfer_percent", 100))
    if amount <= 0:
        raise _refuse(COST, period, "本期主营业务收入为零，无需结转成本")
    draft = _pair(
        COST,
        period,
        "结转本期销售成本",
        _require(rule, "debit_code"),
        _require(rule, "credit_code"),
        amount,
        {"revenue": revenue, "inventory": inputs.get("inventory", 0), "amount": amount},
    )
    inventory = inputs.get("inventory")
    if inventory is not None and amount > inventory:
        draft.warnings.append(
            f"结转成本 {from_cents(amount)} 超过库存余额 {from_cents(inventory)}"
        )
    return draft


def generate_vat_transfer(period: str, inputs: Dict[str, int], rule: Dict[str, Any]) -> ClosingDraft:
    """General taxpayer: transfer ``max(0, output - input)`` to unpaid VAT."""
    output_tax = inputs.get("output_tax", 0)
    input_tax = inputs.get("input_tax", 0)
    amount = max(0, output_tax - input_tax)
    if amount <= 0:
        raise _refuse(VAT_TRANSFER, period, "本期无应转出的未交增值税")
    return _pair(
        VAT_TRANSFER,
        period,
        "转出未交增值税",
        _require(rule, "debit_code"),
        _require(rule, "credit_code"),
        amount,
        {"output_tax": output_tax, "input_tax": input_tax, "amount": amount},
    )


def generate_simple_vat(period: str, inputs: Dict[str, int], rule: Dict[str, Any]) -> ClosingDraft:
    """Small-scale taxpayer: ``revenue * tax_rate`` from VAT payable to unpaid VAT."""
    revenue = max(0, inputs.get("revenue", 0))
    amount = apply_percent(revenue, rule.get("tax_rate", 3))
    if amount <= 0:
        raise _refuse(SIMPLE_TAX, period, "本期无应交增值税")
    return _pair(
        SIMPLE_TAX,
        period,
        "结转本月应交增值税",
        _require(rule, "debit_code"),
        _require(rule, "credit_code"),
        amount,
        {"revenue": revenue, "amount": amount},
    )


def generate_surtax(period: str, inputs: Dict[str, int], rule: Dict[str, Any]) -> ClosingDraft:
    """One tax-and-surcharges debit against the three surtax liabilities."""
    base = max(0, inputs.get("vat_base", 0))
    parts: List[Tuple[str, str, int]] = [
        ("计提城建税", _require(rule, "city_code"), apply_percent(base, rule.get("city_rate", 7))),
        (
            "计提教育费附加",
            _require(rule, "education_code"),
            apply_percent(base, rule.get("education_rate", 3)),
        ),
        (
            "计提地方教育附加",
            _require(rule, "local_education_code"),
            apply_percent(base, rule.get("local_education_rate", 2)),
        ),
    ]
    total = sum(amount for _, _, amount in parts)
    if total <= 0:
        raise _refuse(SURTAX, period, "增值税额为零，无需计提附加税")
    lines = [VoucherLine("计提附加税", _require(rule, "debit_code"), debit_cents=total)]
    lines.extend(
        VoucherLine(summary, code, credit_cents=amount) for summary, code, amount in parts if amount
    )
    inputs_out = {"vat_base": base, "amount": total}
    return ClosingDraft(SURTAX, period, lines, inputs=inputs_out)


def generate_income_tax(period: str, inputs: Dict[str, int], rule: Dict[str, Any]) -> ClosingDraft:
    profit = inputs.get("year_profit", 0)
    amount = apply_percent(max(0, profit), rule.get("tax_rate", 25))
    if amount <= 0:
        raise _refuse(INCOME_TAX, period, "本年累计利润不大于零，无需计提所得税")
    return _pair(
        INCOME_TAX,
        period,
        "计提企业所得税",
        _require(rule, "debit_code"),
        _require(rule, "credit_code"),
        amount,
        {"year_profit": profit, "amount": amount},
    )


def generate_custom_transfer(
    period: str, template: ClosingTemplate, inputs: Dict[str, int]
) -> ClosingDraft:
    amount = abs(inputs.get("amount", 0))
    if amount <= 0:
        raise _refuse(template.id, period, f"{template.name}: 结转金额为零")
    return _pair(
        template.id,
        period,
        template.name,
        template.debit_code,
        template.credit_code,
        amount,
        {"amount": amount},
    )


def generate_profit_transfer(
    period: str,
    pl_balances: Iterable[Tuple[Subject, Optional[AuxiliaryRef], int, int]],
    profit_code: str,
) -> ClosingDraft:
    """Zero every profit-and-loss balance into current-year profit."""
    year, month = period.split("-")
    summary = f"结转{year}年{month}月损益"
    lines: List[VoucherLine] = []
    profit = 0
    for subject, aux, debit, credit in pl_balances:
        net_debit = debit - credit
        if net_debit == 0:
            continue
        profit -= net_debit
        if net_debit > 0:
            lines.append(VoucherLine(summary, subject.code, credit_cents=net_debit, auxiliary=aux))
        else:
            lines.append(VoucherLine(summary, subject.code, debit_cents=-net_debit, auxiliary=aux))
    if not lines:
        raise _refuse(PROFIT, period, "本期损益类科目无余额，无需结转")

    if profit > 0:
        lines.append(VoucherLine(summary, profit_code, credit_cents=profit))
    elif profit < 0:
        lines.append(VoucherLine(summary, profit_code, debit_cents=-profit))
    lines.sort(key=lambda line: 0 if line.debit_cents else 1)
    return ClosingDraft(PROFIT, period, lines, inputs={"net_profit": profit})


def generate_year_end_transfer(
    period: str,
    profit_balance: int,
    profit_code: str,
    retain_code: str,
    fiscal_start_month: int = 1,
) -> ClosingDraft:
    """Move the current-year profit balance into retained earnings."""
    if not is_fiscal_year_end(period, fiscal_start_month):
        raise PeriodStateError(
            f"非会计年度末期间，不能结转全年利润: {period}",
            {"period": period},
            code="PERIOD_NOT_YEAR_END",
        )
    if profit_balance == 0:
        raise _refuse(YEAR_TRANSFER, period, "本年利润余额为零，无需结转")
    inputs = {"profit_balance": profit_balance}
    if profit_balance > 0:
        return _pair(
            YEAR_TRANSFER, period, "结转全年净利润", profit_code, retain_code, profit_balance, inputs
        )
    return _pair(
        YEAR_TRANSFER, period, "结转全年亏损", retain_code, profit_code, -profit_balance, inputs
    )

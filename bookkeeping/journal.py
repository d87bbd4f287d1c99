#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Cash journal: running balances and voucher generation from entries."""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from bookkeeping.errors import (
    EmptyOrInvalidLineError,
    ExclusivityViolationError,
    InconsistentMergeSelectionError,
    InputError,
    InvalidSubjectError,
    LockedByVoucherError,
)
from bookkeeping.models import FundAccount, JournalEntry, Subject, VoucherLine
from bookkeeping.models.journal import SOURCE_INTERNAL_TRANSFER
from bookkeeping.money import split_tax
from bookkeeping.periods import check_date


def validate_entry(entry: JournalEntry) -> None:
    check_date(entry.date)
    if not (entry.summary or "").strip():
        raise InputError("请输入摘要", {"entry_id": entry.id, "field": "summary"})
    if entry.income_cents < 0 or entry.expense_cents < 0:
        raise InputError("收支金额不能为负", {"entry_id": entry.id})
    if entry.income_cents > 0 and entry.expense_cents > 0:
        raise ExclusivityViolationError("收入和支出只能填写一项", {"entry_id": entry.id})
    if entry.income_cents == 0 and entry.expense_cents == 0:
        raise ExclusivityViolationError("收入和支出不能同时为零", {"entry_id": entry.id})


def assert_editable(entry: JournalEntry) -> None:
    if entry.is_locked:
        raise LockedByVoucherError(
            f"流水已生成凭证 {entry.voucher_code}，不能修改或删除",
            {"entry_id": entry.id, "voucher_code": entry.voucher_code},
        )


def recompute(entries: Iterable[JournalEntry], opening_cents: int) -> List[JournalEntry]:
    """Return copies sorted by date (stable on ties) carrying running balances."""
    ordered = sorted((copy.copy(e) for e in entries), key=lambda e: e.date)
    balance = opening_cents
    for entry in ordered:
        balance += entry.income_cents - entry.expense_cents
        entry.running_balance = balance
    return ordered


def check_selection(entries: List[JournalEntry], merge: bool) -> None:
    if not entries:
        raise InputError("请选择要生成凭证的流水")
    for entry in entries:
        assert_editable(entry)
        if not entry.counterparty_code:
            raise EmptyOrInvalidLineError(
                f"流水未指定对方科目: {entry.id}", {"entry_id": entry.id}
            )
    if merge and len(entries) > 1:
        first = entries[0]
        mismatched = [
            e.id for e in entries if e.date != first.date or e.account_id != first.account_id
        ]
        if mismatched:
            raise InconsistentMergeSelectionError(
                "合并生成凭证的流水必须属于同一天且同一资金账户",
                {"date": first.date, "account_id": first.account_id, "mismatched": mismatched},
            )


def tax_subject_code(
    is_income: bool, subjects: Mapping[str, Subject], config: Dict[str, Any]
) -> str:
    target = config["output_tax_code"] if is_income else config["input_tax_code"]
    for code in (target, config.get("tax_fallback_code")):
        if code and code in subjects:
            return code
    raise InvalidSubjectError(f"未找到税金科目: {target}", {"subject_code": target})


def _split(
    entry: JournalEntry,
    subjects: Mapping[str, Subject],
    tax: Optional[Dict[str, Any]],
    config: Dict[str, Any],
) -> Tuple[int, int, Optional[str]]:
    total = entry.amount_cents
    if not tax or not tax.get("enabled"):
        return total, 0, None
    net, tax_amount = split_tax(total, tax.get("rate", config["tax_rate"]))
    if tax_amount <= 0:
        return total, 0, None
    return net, tax_amount, tax_subject_code(entry.is_income, subjects, config)


def _counterparty_lines(
    entry: JournalEntry,
    subjects: Mapping[str, Subject],
    tax: Optional[Dict[str, Any]],
    config: Dict[str, Any],
) -> List[VoucherLine]:
    net, tax_amount, tax_code = _split(entry, subjects, tax, config)
    summary = entry.summary or ""
    tax_summary = f"税金: {summary}"
    lines = []
    if entry.is_income:
        lines.append(
            VoucherLine(summary, entry.counterparty_code, credit_cents=net,
                        auxiliary=entry.counterparty_auxiliary)
        )
        if tax_code:
            lines.append(VoucherLine(tax_summary, tax_code, credit_cents=tax_amount))
    else:
        lines.append(
            VoucherLine(summary, entry.counterparty_code, debit_cents=net,
                        auxiliary=entry.counterparty_auxiliary)
        )
        if tax_code:
            lines.append(VoucherLine(tax_summary, tax_code, debit_cents=tax_amount))
    return lines


def single_voucher_lines(
    entry: JournalEntry,
    account: FundAccount,
    subjects: Mapping[str, Subject],
    tax: Optional[Dict[str, Any]],
    config: Dict[str, Any],
) -> List[VoucherLine]:
    """Inflow: debit fund / credit counterparty (+tax). Outflow: the reverse."""
    counterparty = _counterparty_lines(entry, subjects, tax, config)
    summary = entry.summary or ""
    if entry.is_income:
        fund = VoucherLine(summary, account.subject_code, debit_cents=entry.income_cents,
                           auxiliary=account.auxiliary)
        return [fund, *counterparty]
    fund = VoucherLine(summary, account.subject_code, credit_cents=entry.expense_cents,
                       auxiliary=account.auxiliary)
    return [*counterparty, fund]


def merged_voucher_lines(
    entries: List[JournalEntry],
    account: FundAccount,
    subjects: Mapping[str, Subject],
    tax: Optional[Dict[str, Any]],
    config: Dict[str, Any],
) -> List[VoucherLine]:
    """One counterparty line per entry plus aggregated fund-account lines."""
    lines: List[VoucherLine] = []
    income_total = 0
    expense_total = 0
    for entry in entries:
        lines.extend(_counterparty_lines(entry, subjects, tax, config))
        income_total += entry.income_cents
        expense_total += entry.expense_cents
    if income_total:
        lines.append(VoucherLine("汇总收款", account.subject_code, debit_cents=income_total,
                                 auxiliary=account.auxiliary))
    if expense_total:
        lines.append(VoucherLine("汇总付款", account.subject_code, credit_cents=expense_total,
                                 auxiliary=account.auxiliary))
    return lines


def transfer_number(date: str, existing: Iterable[str]) -> str:
    """``ZZ-YYYYMMDD-NNN``, numbered per day."""
    prefix = f"ZZ-{date.replace('-', '')}-"
    used = [int(t[len(prefix):]) for t in existing if t.startswith(prefix) and t[len(prefix):].isdigit()]
    return f"{prefix}{max(used, default=0) + 1:03d}"


def transfer_entries(
    book_id: str,
    transfer_id: str,
    date: str,
    source: FundAccount,
    target: FundAccount,
    amount_cents: int,
    summary: str = "",
) -> Tuple[JournalEntry, JournalEntry]:
    if source.id == target.id:
        raise InputError("转出账户和转入账户不能相同", {"account_id": source.id})
    if amount_cents <= 0:
        raise InputError("转账金额必须大于零", {"amount_cents": amount_cents})
    note = f" {summary}" if summary else ""
    outflow = JournalEntry(
        book_id=book_id,
        account_id=source.id,
        date=date,
        summary=f"[内部转账] 转至 {target.name}{note}",
        expense_cents=amount_cents,
        counterparty_code=target.subject_code,
        counterparty_auxiliary=target.auxiliary,
        source_type=SOURCE_INTERNAL_TRANSFER,
        transfer_id=transfer_id,
    )
    inflow = JournalEntry(
        book_id=book_id,
        account_id=target.id,
        date=date,
        summary=f"[内部转账] 来自 {source.name}{note}",
        income_cents=amount_cents,
        counterparty_code=source.subject_code,
        counterparty_auxiliary=source.auxiliary,
        source_type=SOURCE_INTERNAL_TRANSFER,
        transfer_id=transfer_id,
    )
    validate_entry(outflow)
    validate_entry(inflow)
    return outflow, inflow

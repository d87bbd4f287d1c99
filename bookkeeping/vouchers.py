#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Voucher invariants: line validation, numbering and construction."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from bookkeeping.errors import (
    EmptyOrInvalidLineError,
    ExclusivityViolationError,
    ImbalanceError,
    InputError,
    InvalidSubjectError,
    MissingAuxiliaryError,
)
from bookkeeping.models import (
    AuxiliaryRef,
    Subject,
    Voucher,
    VoucherLine,
    VoucherOrigin,
    VoucherStatus,
)
from bookkeeping.money import from_cents, to_cents
from bookkeeping.periods import check_date, parse_period


def validate(lines: List[VoucherLine], subjects: Mapping[str, Subject]) -> None:
    """Raise on the first violated voucher invariant; never auto-corrects."""
    if len(lines) < 2:
        raise EmptyOrInvalidLineError(
            "凭证至少需要两条分录", {"line_count": len(lines)}
        )

    for index, line in enumerate(lines, start=1):
        where = {"line": index, "subject_code": line.subject_code}
        if not (line.summary or "").strip():
            raise EmptyOrInvalidLineError(f"第{index}行缺少摘要", where)
        if not (line.subject_code or "").strip():
            raise EmptyOrInvalidLineError(f"第{index}行缺少科目", where)
        subject = subjects.get(line.subject_code)
        if subject is None:
            raise InvalidSubjectError(f"科目不存在: {line.subject_code}", where)
        if line.debit_cents < 0 or line.credit_cents < 0:
            raise EmptyOrInvalidLineError(f"第{index}行金额不能为负", where)
        if line.debit_cents > 0 and line.credit_cents > 0:
            raise ExclusivityViolationError(f"第{index}行借贷方金额只能填写一方", where)
        if line.debit_cents == 0 and line.credit_cents == 0:
            raise EmptyOrInvalidLineError(f"第{index}行金额为零", where)
        if subject.auxiliary_dimension:
            aux = line.auxiliary
            if aux is None or aux.dimension != subject.auxiliary_dimension or not aux.item_id:
                raise MissingAuxiliaryError(
                    f"科目 {subject.code} 需要辅助核算: {subject.auxiliary_dimension}",
                    {**where, "dimension": subject.auxiliary_dimension},
                )

    debit_total = sum(line.debit_cents for line in lines)
    credit_total = sum(line.credit_cents for line in lines)
    if debit_total != credit_total or debit_total <= 0:
        raise ImbalanceError(
            f"借贷不相等：借方{from_cents(debit_total)}，贷方{from_cents(credit_total)}",
            {
                "debit_total": from_cents(debit_total),
                "credit_total": from_cents(credit_total),
                "difference": from_cents(debit_total - credit_total),
            },
        )


def next_number(vouchers: Iterable[Voucher], voucher_type: str, high_water: int = 0) -> int:
    """Next sequence number for ``voucher_type``; numbers are never reused."""
    current = high_water
    for voucher in vouchers:
        if voucher.voucher_type == voucher_type and voucher.number > current:
            current = voucher.number
    return current + 1


def build(
    book_id: str,
    lines: List[VoucherLine],
    date: str,
    voucher_type: str,
    number: int,
    subjects: Mapping[str, Subject],
    *,
    origin: VoucherOrigin = VoucherOrigin.USER,
    status: VoucherStatus = VoucherStatus.DRAFT,
    closing_type: Optional[str] = None,
    maker: str = "",
    auditor: Optional[str] = None,
) -> Voucher:
    check_date(date)
    if not voucher_type or len(voucher_type) != 1:
        raise InputError(f"凭证字必须为单个字符: {voucher_type!r}", {"voucher_type": voucher_type})
    validate(lines, subjects)
    return Voucher(
        book_id=book_id,
        date=date,
        voucher_type=voucher_type,
        number=number,
        lines=list(lines),
        status=status,
        origin=origin,
        period=parse_period(date),
        closing_type=closing_type,
        maker=maker,
        auditor=auditor,
    )


def line_from_dict(data: Mapping[str, Any]) -> VoucherLine:
    """Build a line from CLI/JSON input (``debit``/``credit`` as display amounts)."""
    aux = data.get("auxiliary")
    auxiliary = None
    if isinstance(aux, Mapping):
        auxiliary = AuxiliaryRef(str(aux.get("dimension", "")), str(aux.get("item_id", "")))
    return VoucherLine(
        summary=data.get("summary", ""),
        subject_code=str(data.get("subject_code") or data.get("subject") or ""),
        debit_cents=to_cents(data.get("debit") or 0),
        credit_cents=to_cents(data.get("credit") or 0),
        auxiliary=auxiliary,
    )


def lines_from_dicts(items: Iterable[Mapping[str, Any]]) -> List[VoucherLine]:
    return [line_from_dict(item) for item in items]

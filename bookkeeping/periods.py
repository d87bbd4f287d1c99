#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Period arithmetic, locking and the closing checklist."""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bookkeeping.errors import InputError, PeriodLockedError
from bookkeeping.models import AccountBook, PeriodStatus, Voucher, VoucherStatus
from bookkeeping.utils import LedgerError


def check_date(date_str: str) -> str:
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except (TypeError, ValueError) as exc:
        raise InputError(f"无效日期: {date_str}", {"date": date_str}) from exc
    return date_str


def check_period(period: str) -> str:
    try:
        datetime.strptime(period, "%Y-%m")
    except (TypeError, ValueError) as exc:
        raise InputError(f"无效期间: {period}", {"period": period}) from exc
    if len(period) != 7:
        raise InputError(f"无效期间: {period}", {"period": period})
    return period


def parse_period(date_str: str) -> str:
    return date_str[:7]


def _split(period: str) -> Tuple[int, int]:
    check_period(period)
    year, month = period.split("-")
    return int(year), int(month)


def prev_period(period: str) -> str:
    year, month = _split(period)
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


def next_period(period: str) -> str:
    year, month = _split(period)
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def period_end_date(period: str) -> str:
    year, month = _split(period)
    last_day = calendar.monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-{last_day:02d}"


def fiscal_year_end_month(start_month: int) -> int:
    return 12 if start_month == 1 else start_month - 1


def fiscal_year_start_period(period: str, start_month: int = 1) -> str:
    year, month = _split(period)
    if month < start_month:
        year -= 1
    return f"{year:04d}-{start_month:02d}"


def is_fiscal_year_end(period: str, start_month: int = 1) -> bool:
    _, month = _split(period)
    return month == fiscal_year_end_month(start_month)


def is_locked(book: AccountBook, date_or_period: str) -> bool:
    return book.period_status(parse_period(date_or_period)) is PeriodStatus.CLOSED


def assert_unlocked(book: AccountBook, date_or_period: str) -> None:
    period = parse_period(date_or_period)
    if is_locked(book, period):
        raise PeriodLockedError(
            f"期间已结账: {period}",
            {"period": period, "last_closed_period": book.last_closed_period},
        )


@dataclass
class ChecklistItem:
    key: str
    title: str
    passed: bool
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "title": self.title, "passed": self.passed, "detail": self.detail}


@dataclass
class CardState:
    """Whether a closing card (or transfer step) is satisfied for a period."""

    card_id: str
    title: str
    generated: bool
    skipped: bool = False
    amount_cents: int = 0


def evaluate_checklist(
    book: AccountBook,
    period: str,
    vouchers: Iterable[Voucher],
    cards: List[CardState],
    profit: CardState,
    year_transfer: Optional[CardState] = None,
) -> List[ChecklistItem]:
    items: List[ChecklistItem] = []
    for card in cards:
        items.append(_card_item(f"step1:{card.card_id}", card))
    items.append(_card_item("step2:profit", profit))
    if is_fiscal_year_end(period, book.fiscal_year_start_month) and year_transfer is not None:
        items.append(_card_item("step2:year-transfer", year_transfer))

    drafts = sorted(
        (v for v in vouchers if v.period == period and v.status is VoucherStatus.DRAFT),
        key=lambda v: (v.date, v.voucher_type, v.number),
    )
    if drafts:
        detail = "未审核凭证: " + ", ".join(f"{v.code}({v.date})" for v in drafts)
    else:
        detail = ""
    items.append(ChecklistItem("audit", "凭证全部审核", not drafts, detail))
    return items


def _card_item(key: str, card: CardState) -> ChecklistItem:
    if card.generated:
        return ChecklistItem(key, card.title, True)
    if card.skipped:
        return ChecklistItem(key, card.title, True, "无需结转")
    return ChecklistItem(key, card.title, False, f"未生成凭证: {card.title}")


@dataclass
class BatchResult:
    """Outcome of a best-effort batch; partial completion is not success."""

    succeeded: List[Any] = field(default_factory=list)
    failed: List[Tuple[Any, LedgerError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "succeeded": list(self.succeeded),
            "failed": [{"id": item_id, **err.to_dict()} for item_id, err in self.failed],
        }

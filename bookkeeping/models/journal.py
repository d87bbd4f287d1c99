#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Cash journal models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from bookkeeping.models.voucher import AuxiliaryRef
from bookkeeping.money import from_cents

SOURCE_MANUAL = "manual"
SOURCE_INTERNAL_TRANSFER = "internal_transfer"


@dataclass
class FundAccount:
    book_id: str
    name: str
    subject_code: str
    opening_cents: int = 0
    auxiliary: Optional[AuxiliaryRef] = None
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "subject_code": self.subject_code,
            "opening_balance": from_cents(self.opening_cents),
        }


@dataclass
class JournalEntry:
    book_id: str
    account_id: int
    date: str
    summary: str = ""
    income_cents: int = 0
    expense_cents: int = 0
    counterparty_code: Optional[str] = None
    counterparty_auxiliary: Optional[AuxiliaryRef] = None
    voucher_code: Optional[str] = None
    source_type: str = SOURCE_MANUAL
    transfer_id: Optional[str] = None
    id: Optional[int] = None
    # derived on every read, never persisted
    running_balance: Optional[int] = None

    @property
    def is_locked(self) -> bool:
        return bool(self.voucher_code)

    @property
    def is_income(self) -> bool:
        return self.income_cents > 0

    @property
    def amount_cents(self) -> int:
        return self.income_cents if self.income_cents > 0 else self.expense_cents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "date": self.date,
            "summary": self.summary,
            "income": from_cents(self.income_cents) if self.income_cents else "",
            "expense": from_cents(self.expense_cents) if self.expense_cents else "",
            "counterparty_code": self.counterparty_code,
            "voucher_code": self.voucher_code,
            "source_type": self.source_type,
            "transfer_id": self.transfer_id,
            "running_balance": (
                from_cents(self.running_balance) if self.running_balance is not None else None
            ),
        }


@dataclass
class InternalTransfer:
    transfer_id: str
    book_id: str
    date: str
    from_account_id: int
    to_account_id: int
    amount_cents: int
    summary: str = ""
    outflow_entry_id: Optional[int] = None
    inflow_entry_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transfer_id": self.transfer_id,
            "date": self.date,
            "from_account_id": self.from_account_id,
            "to_account_id": self.to_account_id,
            "amount": from_cents(self.amount_cents),
            "summary": self.summary,
            "outflow_entry_id": self.outflow_entry_id,
            "inflow_entry_id": self.inflow_entry_id,
        }

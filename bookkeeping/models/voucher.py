#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Voucher models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from bookkeeping.money import from_cents


class VoucherStatus(Enum):
    DRAFT = "draft"
    APPROVED = "approved"


class VoucherOrigin(Enum):
    USER = "user_entered"
    SYSTEM = "system_generated"


@dataclass(frozen=True)
class AuxiliaryRef:
    dimension: str
    item_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"dimension": self.dimension, "item_id": self.item_id}


@dataclass
class VoucherLine:
    summary: str
    subject_code: str
    debit_cents: int = 0
    credit_cents: int = 0
    auxiliary: Optional[AuxiliaryRef] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "subject_code": self.subject_code,
            "debit": from_cents(self.debit_cents) if self.debit_cents else "",
            "credit": from_cents(self.credit_cents) if self.credit_cents else "",
            "auxiliary": self.auxiliary.to_dict() if self.auxiliary else None,
        }


@dataclass
class Voucher:
    book_id: str
    date: str
    voucher_type: str
    number: int
    lines: List[VoucherLine] = field(default_factory=list)
    status: VoucherStatus = VoucherStatus.DRAFT
    origin: VoucherOrigin = VoucherOrigin.USER
    period: Optional[str] = None
    closing_type: Optional[str] = None
    maker: str = ""
    auditor: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.period is None and self.date:
            self.period = self.date[:7]

    @property
    def code(self) -> str:
        return f"{self.voucher_type}-{self.number:03d}"

    @property
    def debit_total(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    @property
    def credit_total(self) -> int:
        return sum(line.credit_cents for line in self.lines)

    @property
    def is_system(self) -> bool:
        return self.origin is VoucherOrigin.SYSTEM

    @property
    def is_approved(self) -> bool:
        return self.status is VoucherStatus.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "date": self.date,
            "period": self.period,
            "voucher_type": self.voucher_type,
            "number": self.number,
            "status": self.status.value,
            "origin": self.origin.value,
            "closing_type": self.closing_type,
            "maker": self.maker,
            "auditor": self.auditor,
            "debit_total": from_cents(self.debit_total),
            "credit_total": from_cents(self.credit_total),
            "lines": [line.to_dict() for line in self.lines],
        }

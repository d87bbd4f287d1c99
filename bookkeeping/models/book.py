#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Account book and closing template models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TaxType(Enum):
    """纳税人类型"""
    GENERAL = "general"          # 一般纳税人
    SMALL_SCALE = "small_scale"  # 小规模纳税人


class PeriodStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass
class AccountBook:
    id: str
    name: str
    start_period: str
    current_period: str
    tax_type: TaxType = TaxType.GENERAL
    fiscal_year_start_month: int = 1
    last_closed_period: Optional[str] = None
    review_enabled: bool = True

    def period_status(self, period: str) -> PeriodStatus:
        if self.last_closed_period and period <= self.last_closed_period:
            return PeriodStatus.CLOSED
        return PeriodStatus.OPEN

    @property
    def status(self) -> PeriodStatus:
        return self.period_status(self.current_period)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start_period": self.start_period,
            "current_period": self.current_period,
            "status": self.status.value,
            "last_closed_period": self.last_closed_period,
            "tax_type": self.tax_type.value,
            "fiscal_year_start_month": self.fiscal_year_start_month,
            "review_enabled": self.review_enabled,
        }


SOURCE_BALANCE = "balance"
SOURCE_MANUAL = "manual"


@dataclass
class ClosingTemplate:
    id: str
    book_id: str
    name: str
    debit_code: str
    credit_code: str
    source_type: str = SOURCE_MANUAL
    source_code: Optional[str] = None
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "debit_code": self.debit_code,
            "credit_code": self.credit_code,
            "source_type": self.source_type,
            "source_code": self.source_code,
            "enabled": self.enabled,
        }

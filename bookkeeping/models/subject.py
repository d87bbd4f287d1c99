#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Subject (chart of accounts) model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from bookkeeping.errors import InvalidSubjectError


class SubjectCategory(Enum):
    """科目类别"""
    ASSET = "asset"                      # 资产
    LIABILITY = "liability"              # 负债
    EQUITY = "equity"                    # 权益
    COST = "cost"                        # 成本
    PROFIT_AND_LOSS = "profit_and_loss"  # 损益


class Direction(Enum):
    """余额方向"""
    DEBIT = "debit"
    CREDIT = "credit"


@dataclass
class Subject:
    code: str
    name: str
    category: SubjectCategory
    direction: Direction
    parent_code: Optional[str] = None
    auxiliary_dimension: Optional[str] = None
    opening_cents: int = 0

    @property
    def is_profit_and_loss(self) -> bool:
        return self.category is SubjectCategory.PROFIT_AND_LOSS

    @property
    def is_revenue(self) -> bool:
        return self.is_profit_and_loss and self.direction is Direction.CREDIT

    @property
    def is_expense(self) -> bool:
        return self.is_profit_and_loss and self.direction is Direction.DEBIT

    def net(self, debit_cents: int, credit_cents: int) -> int:
        """Net balance in this subject's normal direction."""
        if self.direction is Direction.DEBIT:
            return debit_cents - credit_cents
        return credit_cents - debit_cents

    def check_parent(self, subjects: Mapping[str, "Subject"]) -> None:
        if not self.code:
            raise InvalidSubjectError("科目编码不能为空")
        if self.parent_code is None:
            return
        if len(self.parent_code) >= len(self.code) or not self.code.startswith(self.parent_code):
            raise InvalidSubjectError(
                f"上级科目编码必须是本科目编码的前缀: {self.parent_code} -> {self.code}",
                {"code": self.code, "parent_code": self.parent_code},
            )
        if self.parent_code not in subjects:
            raise InvalidSubjectError(
                f"上级科目不存在: {self.parent_code}",
                {"code": self.code, "parent_code": self.parent_code},
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "category": self.category.value,
            "direction": self.direction.value,
            "parent_code": self.parent_code,
            "auxiliary_dimension": self.auxiliary_dimension,
            "opening_cents": self.opening_cents,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Subject":
        try:
            category = SubjectCategory(data.get("category", "asset"))
            direction = Direction(data.get("direction", "debit"))
        except ValueError as exc:
            raise InvalidSubjectError(f"无效科目属性: {exc}", {"code": data.get("code")}) from exc
        return cls(
            code=str(data["code"]),
            name=data.get("name", ""),
            category=category,
            direction=direction,
            parent_code=data.get("parent_code"),
            auxiliary_dimension=data.get("auxiliary_dimension"),
            opening_cents=int(data.get("opening_cents", 0)),
        )

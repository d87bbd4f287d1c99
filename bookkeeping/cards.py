#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Closing cards: which closing vouchers a period needs and their inputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bookkeeping import balances, closing
from bookkeeping.config import card_rule
from bookkeeping.errors import InputError, NothingToTransferError
from bookkeeping.models import (
    AccountBook,
    ClosingTemplate,
    Subject,
    TaxType,
    Voucher,
)
from bookkeeping.models.book import SOURCE_BALANCE
from bookkeeping.money import to_cents
from bookkeeping.periods import CardState, is_fiscal_year_end

STANDARD_CARDS = {
    TaxType.GENERAL: [closing.COST, closing.VAT_TRANSFER, closing.SURTAX, closing.INCOME_TAX],
    TaxType.SMALL_SCALE: [closing.COST, closing.SIMPLE_TAX, closing.SURTAX, closing.INCOME_TAX],
}

CARD_TITLES = {
    closing.COST: "结转销售成本",
    closing.VAT_TRANSFER: "结转未交增值税",
    closing.SIMPLE_TAX: "计提增值税",
    closing.SURTAX: "计提附加税",
    closing.INCOME_TAX: "计提所得税",
    closing.PROFIT: "结转损益",
    closing.YEAR_TRANSFER: "结转全年利润",
}


@dataclass
class ClosingContext:
    book: AccountBook
    period: str
    vouchers: List[Voucher]
    subjects: Dict[str, Subject]
    templates: List[ClosingTemplate]
    config: Dict[str, Any]

    def _balance(self, code: str, scope: str = balances.SCOPE_PERIOD, exclude=()):
        return balances.balance(
            code,
            self.period,
            self.vouchers,
            self.subjects,
            scope=scope,
            fiscal_start_month=self.book.fiscal_year_start_month,
            exclude_closing_types=exclude,
        )

    def credit_net(self, code: str) -> int:
        result = self._balance(code, exclude=balances.PROFIT_CLOSING_TYPES)
        return result.credit_total - result.debit_total

    def debit_net(self, code: str) -> int:
        result = self._balance(code, exclude=balances.PROFIT_CLOSING_TYPES)
        return result.debit_total - result.credit_total

    def closing_balance(self, code: str, exclude=()) -> int:
        return self._balance(code, balances.SCOPE_CUMULATIVE, exclude).net_balance

    def closing_voucher(self, closing_type: str) -> Optional[Voucher]:
        for voucher in self.vouchers:
            if voucher.period == self.period and voucher.closing_type == closing_type:
                return voucher
        return None

    def profit_code(self) -> str:
        primary = self.config["profit_account"]
        fallback = self.config.get("profit_account_fallback")
        if primary not in self.subjects and fallback and fallback in self.subjects:
            return fallback
        return primary

    def enabled_templates(self) -> List[ClosingTemplate]:
        return [t for t in self.templates if t.enabled]

    def template(self, template_id: str) -> Optional[ClosingTemplate]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def card_ids(self) -> List[str]:
        ids = list(STANDARD_CARDS[self.book.tax_type])
        ids.extend(t.id for t in self.enabled_templates())
        return ids

    def title(self, card_id: str) -> str:
        if card_id in CARD_TITLES:
            return CARD_TITLES[card_id]
        template = self.template(card_id)
        return template.name if template else card_id

    @property
    def vat_card(self) -> str:
        if self.book.tax_type is TaxType.SMALL_SCALE:
            return closing.SIMPLE_TAX
        return closing.VAT_TRANSFER


def draft(
    ctx: ClosingContext, kind: str, overrides: Optional[Dict[str, Any]] = None
) -> closing.ClosingDraft:
    """Aggregate the inputs ``kind`` needs and run its generator."""
    rule = card_rule(ctx.config, kind, overrides)
    if kind == closing.COST:
        inputs = {
            "revenue": max(0, ctx.credit_net(rule["source_code"])),
            "inventory": ctx.closing_balance(rule["credit_code"]),
        }
        return closing.generate_cost_transfer(ctx.period, inputs, rule)
    if kind == closing.VAT_TRANSFER:
        inputs = {
            "output_tax": ctx.credit_net(rule["output_code"]),
            "input_tax": ctx.debit_net(rule["input_code"]),
        }
        return closing.generate_vat_transfer(ctx.period, inputs, rule)
    if kind == closing.SIMPLE_TAX:
        inputs = {"revenue": max(0, ctx.credit_net(rule["source_code"]))}
        return closing.generate_simple_vat(ctx.period, inputs, rule)
    if kind == closing.SURTAX:
        return closing.generate_surtax(ctx.period, {"vat_base": _vat_base(ctx)}, rule)
    if kind == closing.INCOME_TAX:
        profit = balances.year_to_date_profit(
            ctx.period, ctx.vouchers, ctx.subjects, ctx.book.fiscal_year_start_month
        )
        return closing.generate_income_tax(ctx.period, {"year_profit": profit}, rule)
    if kind == closing.PROFIT:
        pl = balances.profit_and_loss_balances(ctx.period, ctx.vouchers, ctx.subjects)
        return closing.generate_profit_transfer(ctx.period, pl, ctx.profit_code())
    if kind == closing.YEAR_TRANSFER:
        profit_code = ctx.profit_code()
        profit_balance = ctx.closing_balance(profit_code, exclude=(closing.YEAR_TRANSFER,))
        return closing.generate_year_end_transfer(
            ctx.period,
            profit_balance,
            profit_code,
            ctx.config["retain_account"],
            ctx.book.fiscal_year_start_month,
        )

    template = ctx.template(kind)
    if template is None or not template.enabled:
        raise InputError(f"未知的结转类型: {kind}", {"closing_type": kind})
    if template.source_type == SOURCE_BALANCE:
        if not template.source_code:
            raise InputError(f"结转模板缺少取数科目: {template.id}", {"closing_type": kind})
        amount = ctx.closing_balance(template.source_code)
    else:
        amount = to_cents((overrides or {}).get("amount") or 0)
    return closing.generate_custom_transfer(ctx.period, template, {"amount": amount})


def _vat_base(ctx: ClosingContext) -> int:
    existing = ctx.closing_voucher(ctx.vat_card)
    if existing is not None:
        return existing.debit_total
    try:
        return draft(ctx, ctx.vat_card).total_cents
    except NothingToTransferError:
        return 0


def _state(ctx: ClosingContext, card_id: str) -> CardState:
    voucher = ctx.closing_voucher(card_id)
    if voucher is not None:
        return CardState(card_id, ctx.title(card_id), True, amount_cents=voucher.debit_total)
    template = ctx.template(card_id)
    if template is not None and template.source_type != SOURCE_BALANCE:
        return CardState(card_id, ctx.title(card_id), False)
    try:
        preview = draft(ctx, card_id)
    except NothingToTransferError:
        return CardState(card_id, ctx.title(card_id), False, skipped=True)
    return CardState(card_id, ctx.title(card_id), False, amount_cents=preview.total_cents)


def card_states(ctx: ClosingContext) -> List[CardState]:
    return [_state(ctx, card_id) for card_id in ctx.card_ids()]


def profit_state(ctx: ClosingContext) -> CardState:
    return _state(ctx, closing.PROFIT)


def year_transfer_state(ctx: ClosingContext) -> Optional[CardState]:
    if not is_fiscal_year_end(ctx.period, ctx.book.fiscal_year_start_month):
        return None
    return _state(ctx, closing.YEAR_TRANSFER)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Ledger engine facade.

:class:`BookkeepingEngine` is the only component that talks to the
repository. Read-aggregate-then-write operations (closing voucher generation,
voucher number allocation, close and reverse-close) run under a per-book
re-entrant lock so two callers can never create duplicate closing vouchers or
receive the same voucher number.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from bookkeeping import balances, cards, closing, journal, vouchers
from bookkeeping.config import SYSTEM_OPERATOR, load_close_config, load_journal_config
from bookkeeping.errors import (
    ChecklistNotSatisfiedError,
    DuplicateClosingVoucherError,
    InputError,
    InvalidSubjectError,
    LockedByVoucherError,
    NotFoundError,
    PeriodStateError,
    VoucherStatusError,
)
from bookkeeping.models import (
    AccountBook,
    AuxiliaryRef,
    ClosingTemplate,
    FundAccount,
    InternalTransfer,
    JournalEntry,
    PeriodStatus,
    Subject,
    TaxType,
    Voucher,
    VoucherLine,
    VoucherOrigin,
    VoucherStatus,
)
from bookkeeping.models.journal import SOURCE_INTERNAL_TRANSFER
from bookkeeping.periods import (
    BatchResult,
    ChecklistItem,
    assert_unlocked,
    check_date,
    check_period,
    evaluate_checklist,
    next_period,
    prev_period,
)
from bookkeeping.money import from_cents
from bookkeeping.repository import Repository
from bookkeeping.utils import LedgerError

logger = logging.getLogger(__name__)

_ENTRY_FIELDS = {
    "account_id",
    "date",
    "summary",
    "income_cents",
    "expense_cents",
    "counterparty_code",
    "counterparty_auxiliary",
}


class BookkeepingEngine:
    def __init__(
        self,
        repository: Repository,
        close_config: Optional[Dict[str, Any]] = None,
        journal_config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.repo = repository
        self.close_config = close_config or load_close_config()
        self.journal_config = journal_config or load_journal_config()
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def book_lock(self, book_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(book_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[book_id] = lock
            return lock

    # ------------------------------------------------------------------
    # lookups

    def get_book(self, book_id: str) -> AccountBook:
        book = self.repo.get_account_book(book_id)
        if book is None:
            raise NotFoundError(f"账套不存在: {book_id}", {"book_id": book_id}, code="BOOK_NOT_FOUND")
        return book

    def subjects(self, book_id: str) -> Dict[str, Subject]:
        return {s.code: s for s in self.repo.list_subjects(book_id)}

    def get_voucher(self, voucher_id: int) -> Voucher:
        voucher = self.repo.get_voucher(voucher_id)
        if voucher is None:
            raise NotFoundError(
                f"凭证不存在: {voucher_id}", {"voucher_id": voucher_id}, code="VOUCHER_NOT_FOUND"
            )
        return voucher

    def _entry(self, entry_id: int) -> JournalEntry:
        entry = self.repo.get_journal_entry(entry_id)
        if entry is None:
            raise NotFoundError(
                f"流水不存在: {entry_id}", {"entry_id": entry_id}, code="ENTRY_NOT_FOUND"
            )
        return entry

    def _fund_account(self, book_id: str, account_id: int) -> FundAccount:
        account = self.repo.get_fund_account(account_id)
        if account is None or account.book_id != book_id:
            raise NotFoundError(
                f"资金账户不存在: {account_id}",
                {"account_id": account_id},
                code="FUND_ACCOUNT_NOT_FOUND",
            )
        return account

    # ------------------------------------------------------------------
    # book setup

    def create_account_book(
        self,
        book_id: str,
        name: str,
        start_period: str,
        tax_type: TaxType = TaxType.GENERAL,
        fiscal_year_start_month: int = 1,
        review_enabled: bool = True,
    ) -> AccountBook:
        check_period(start_period)
        if not 1 <= fiscal_year_start_month <= 12:
            raise InputError(
                f"无效的会计年度起始月: {fiscal_year_start_month}",
                {"fiscal_year_start_month": fiscal_year_start_month},
            )
        if self.repo.get_account_book(book_id) is not None:
            raise InputError(f"账套已存在: {book_id}", {"book_id": book_id}, code="BOOK_EXISTS")
        book = AccountBook(
            id=book_id,
            name=name,
            start_period=start_period,
            current_period=start_period,
            tax_type=tax_type,
            fiscal_year_start_month=fiscal_year_start_month,
            review_enabled=review_enabled,
        )
        created = self.repo.create_account_book(book)
        logger.info("account book %s created, start period %s", book_id, start_period)
        return created

    def add_subject(self, book_id: str, subject: Subject) -> Subject:
        self.get_book(book_id)
        existing = self.subjects(book_id)
        if subject.code in existing:
            raise InvalidSubjectError(f"科目已存在: {subject.code}", {"code": subject.code})
        subject.check_parent(existing)
        parent = existing.get(subject.parent_code) if subject.parent_code else None
        if parent is not None and parent.opening_cents:
            raise InvalidSubjectError(
                f"上级科目已录入期初余额，不能再增加下级: {parent.code}",
                {"code": subject.code, "parent_code": parent.code},
            )
        self.repo.add_subject(book_id, subject)
        return subject

    def set_opening_balance(self, book_id: str, code: str, amount_cents: int) -> Subject:
        subjects = self.subjects(book_id)
        subject = subjects.get(code)
        if subject is None:
            raise InvalidSubjectError(f"科目不存在: {code}", {"code": code})
        if any(s.parent_code == code for s in subjects.values()):
            raise InvalidSubjectError(
                f"非末级科目的余额由下级汇总，不能直接录入: {code}", {"code": code}
            )
        subject.opening_cents = amount_cents
        self.repo.add_subject(book_id, subject)
        return subject

    def add_fund_account(
        self,
        book_id: str,
        name: str,
        subject_code: str,
        opening_cents: int = 0,
        auxiliary: Optional[AuxiliaryRef] = None,
    ) -> FundAccount:
        self.get_book(book_id)
        if subject_code not in self.subjects(book_id):
            raise InvalidSubjectError(f"科目不存在: {subject_code}", {"code": subject_code})
        account = FundAccount(book_id, name, subject_code, opening_cents, auxiliary)
        return self.repo.add_fund_account(account)

    def add_closing_template(self, template: ClosingTemplate) -> ClosingTemplate:
        self.get_book(template.book_id)
        if template.id in closing.RESERVED_CLOSING_TYPES:
            raise InputError(f"结转模板编号与系统结转冲突: {template.id}", {"id": template.id})
        subjects = self.subjects(template.book_id)
        for code in (template.debit_code, template.credit_code, template.source_code):
            if code and code not in subjects:
                raise InvalidSubjectError(f"科目不存在: {code}", {"code": code})
        self.repo.add_closing_template(template)
        return template

    # ------------------------------------------------------------------
    # balances

    def aggregate_balance(
        self,
        book_id: str,
        code: str,
        period: Optional[str] = None,
        scope: str = balances.SCOPE_PERIOD,
    ) -> balances.BalanceResult:
        book = self.get_book(book_id)
        return balances.balance(
            code,
            period or book.current_period,
            self.repo.list_vouchers(book_id),
            self.subjects(book_id),
            scope=scope,
            fiscal_start_month=book.fiscal_year_start_month,
        )

    # ------------------------------------------------------------------
    # vouchers

    def validate_voucher(self, book_id: str, lines: List[VoucherLine]) -> None:
        vouchers.validate(lines, self.subjects(book_id))

    def _create_voucher(
        self,
        book: AccountBook,
        subjects: Dict[str, Subject],
        lines: List[VoucherLine],
        date: str,
        voucher_type: str,
        **kwargs: Any,
    ) -> Voucher:
        check_date(date)
        vouchers.validate(lines, subjects)
        with self.book_lock(book.id):
            number = self.repo.next_voucher_number(book.id, voucher_type)
            voucher = vouchers.build(
                book.id, lines, date, voucher_type, number, subjects, **kwargs
            )
            created = self.repo.create_voucher(voucher)
        logger.info(
            "voucher %s created in book %s (%s, %s)",
            created.code, book.id, created.origin.value, created.status.value,
        )
        return created

    def record_voucher(
        self,
        book_id: str,
        date: str,
        lines: List[VoucherLine],
        voucher_type: str = "记",
        maker: str = "",
    ) -> Voucher:
        book = self.get_book(book_id)
        check_date(date)
        assert_unlocked(book, date)
        auto_approve = not book.review_enabled
        return self._create_voucher(
            book,
            self.subjects(book_id),
            lines,
            date,
            voucher_type,
            status=VoucherStatus.APPROVED if auto_approve else VoucherStatus.DRAFT,
            maker=maker,
            auditor=maker if auto_approve else None,
        )

    def update_voucher(
        self,
        voucher_id: int,
        lines: Optional[List[VoucherLine]] = None,
        date: Optional[str] = None,
    ) -> Voucher:
        voucher = self.get_voucher(voucher_id)
        book = self.get_book(voucher.book_id)
        assert_unlocked(book, voucher.date)
        if voucher.is_system:
            raise VoucherStatusError(
                f"系统生成的凭证不能手工修改: {voucher.code}",
                {"voucher_id": voucher_id},
                code="SYSTEM_VOUCHER_READONLY",
            )
        if voucher.is_approved:
            raise VoucherStatusError(
                f"已审核凭证不能修改，请先反审核: {voucher.code}", {"voucher_id": voucher_id}
            )
        if date is not None:
            check_date(date)
            assert_unlocked(book, date)
            voucher.date = date
            voucher.period = date[:7]
        if lines is not None:
            voucher.lines = list(lines)
        vouchers.validate(voucher.lines, self.subjects(voucher.book_id))
        self.repo.update_voucher(voucher)
        logger.info("voucher %s updated", voucher.code)
        return voucher

    def approve_voucher(self, voucher_id: int, auditor: str = "") -> Voucher:
        voucher = self.get_voucher(voucher_id)
        assert_unlocked(self.get_book(voucher.book_id), voucher.date)
        if voucher.is_approved:
            raise VoucherStatusError(f"凭证已审核: {voucher.code}", {"voucher_id": voucher_id})
        self.repo.audit_voucher(voucher_id, auditor)
        logger.info("voucher %s approved by %s", voucher.code, auditor or "-")
        return self.get_voucher(voucher_id)

    def unapprove_voucher(self, voucher_id: int) -> Voucher:
        voucher = self.get_voucher(voucher_id)
        assert_unlocked(self.get_book(voucher.book_id), voucher.date)
        if not voucher.is_approved:
            raise VoucherStatusError(
                f"仅已审核凭证可反审核: {voucher.code}", {"voucher_id": voucher_id}
            )
        self.repo.unaudit_voucher(voucher_id)
        logger.info("voucher %s unapproved", voucher.code)
        return self.get_voucher(voucher_id)

    def delete_voucher(self, voucher_id: int) -> Voucher:
        voucher = self.get_voucher(voucher_id)
        assert_unlocked(self.get_book(voucher.book_id), voucher.date)
        if voucher.is_approved:
            raise VoucherStatusError(
                f"已审核凭证不能删除，请先反审核: {voucher.code}", {"voucher_id": voucher_id}
            )
        self._remove_voucher(voucher)
        return voucher

    def _remove_voucher(self, voucher: Voucher) -> None:
        """Delete without lock checks; un-approves first when needed."""
        if voucher.is_approved:
            self.repo.unaudit_voucher(voucher.id)
        self.repo.delete_voucher(voucher.id)
        unlocked = 0
        for entry in self.repo.list_journal_entries(voucher.book_id):
            if entry.voucher_code == voucher.code:
                entry.voucher_code = None
                self.repo.update_journal_entry(entry)
                unlocked += 1
        logger.info("voucher %s deleted, %d journal entries unlocked", voucher.code, unlocked)

    def list_vouchers(self, book_id: str, period: Optional[str] = None) -> List[Voucher]:
        self.get_book(book_id)
        result = self.repo.list_vouchers(book_id)
        if period:
            result = [v for v in result if v.period == period]
        return sorted(result, key=lambda v: (v.date, v.voucher_type, v.number))

    # ------------------------------------------------------------------
    # closing vouchers

    def closing_context(self, book_id: str, period: Optional[str] = None) -> cards.ClosingContext:
        book = self.get_book(book_id)
        period = check_period(period or book.current_period)
        return cards.ClosingContext(
            book=book,
            period=period,
            vouchers=self.repo.list_vouchers(book_id),
            subjects=self.subjects(book_id),
            templates=self.repo.list_closing_templates(book_id),
            config=self.close_config,
        )

    def _check_kind(self, ctx: cards.ClosingContext, kind: str) -> None:
        allowed = ctx.card_ids() + [closing.PROFIT, closing.YEAR_TRANSFER]
        if kind not in allowed:
            raise InputError(
                f"当前账套不支持的结转类型: {kind}",
                {"closing_type": kind, "allowed": allowed},
                code="CLOSING_TYPE_INVALID",
            )

    def closing_cards(self, book_id: str, period: Optional[str] = None) -> List[Dict[str, Any]]:
        ctx = self.closing_context(book_id, period)
        states = cards.card_states(ctx)
        states.append(cards.profit_state(ctx))
        year_state = cards.year_transfer_state(ctx)
        if year_state is not None:
            states.append(year_state)
        result = []
        for state in states:
            voucher = ctx.closing_voucher(state.card_id)
            result.append(
                {
                    "card_id": state.card_id,
                    "title": state.title,
                    "generated": state.generated,
                    "skipped": state.skipped,
                    "amount": from_cents(state.amount_cents),
                    "voucher_code": voucher.code if voucher else None,
                }
            )
        return result

    def draft_closing_voucher(
        self,
        book_id: str,
        kind: str,
        rule_config: Optional[Dict[str, Any]] = None,
        period: Optional[str] = None,
    ) -> closing.ClosingDraft:
        ctx = self.closing_context(book_id, period)
        self._check_kind(ctx, kind)
        draft = cards.draft(ctx, kind, rule_config)
        vouchers.validate(draft.lines, ctx.subjects)
        return draft

    def generate_closing_voucher(
        self,
        book_id: str,
        kind: str,
        rule_config: Optional[Dict[str, Any]] = None,
        period: Optional[str] = None,
        replace: bool = False,
    ) -> Voucher:
        with self.book_lock(book_id):
            ctx = self.closing_context(book_id, period)
            self._check_kind(ctx, kind)
            assert_unlocked(ctx.book, ctx.period)
            existing = ctx.closing_voucher(kind)
            if existing is not None:
                if not replace:
                    raise DuplicateClosingVoucherError(
                        f"{ctx.period} 已存在结转凭证 {existing.code}，请先删除后重新生成",
                        {"period": ctx.period, "closing_type": kind, "voucher_code": existing.code},
                    )
                # draft against the book as it will be once the old voucher is gone
                remaining = [v for v in ctx.vouchers if v.id != existing.id]
                ctx = dataclasses.replace(ctx, vouchers=remaining)
            try:
                draft = cards.draft(ctx, kind, rule_config)
                vouchers.validate(draft.lines, ctx.subjects)
            except LedgerError as exc:
                logger.warning("closing %s for %s refused: %s", kind, ctx.period, exc.message)
                raise
            if existing is not None:
                self._remove_voucher(existing)
            voucher = self._create_voucher(
                ctx.book,
                ctx.subjects,
                draft.lines,
                draft.date,
                draft.voucher_type,
                origin=VoucherOrigin.SYSTEM,
                status=VoucherStatus.APPROVED,
                closing_type=kind,
                maker=SYSTEM_OPERATOR,
                auditor=SYSTEM_OPERATOR,
            )
        for warning in draft.warnings:
            logger.warning("closing %s for %s: %s", kind, ctx.period, warning)
        return voucher

    def undo_closing_voucher(
        self, book_id: str, kind: str, period: Optional[str] = None
    ) -> Voucher:
        with self.book_lock(book_id):
            ctx = self.closing_context(book_id, period)
            assert_unlocked(ctx.book, ctx.period)
            existing = ctx.closing_voucher(kind)
            if existing is None:
                raise NotFoundError(
                    f"{ctx.period} 不存在结转凭证: {kind}",
                    {"period": ctx.period, "closing_type": kind},
                    code="CLOSING_VOUCHER_NOT_FOUND",
                )
            self._remove_voucher(existing)
            return existing

    # ------------------------------------------------------------------
    # period state machine

    def checklist(self, book_id: str, period: Optional[str] = None) -> List[ChecklistItem]:
        ctx = self.closing_context(book_id, period)
        return evaluate_checklist(
            ctx.book,
            ctx.period,
            ctx.vouchers,
            cards.card_states(ctx),
            cards.profit_state(ctx),
            cards.year_transfer_state(ctx),
        )

    def attempt_close(self, book_id: str, period: Optional[str] = None) -> AccountBook:
        with self.book_lock(book_id):
            book = self.get_book(book_id)
            period = period or book.current_period
            if book.period_status(period) is PeriodStatus.CLOSED:
                raise PeriodStateError(
                    f"期间已结账: {period}", {"period": period}, code="PERIOD_ALREADY_CLOSED"
                )
            if period != book.current_period:
                raise PeriodStateError(
                    f"只能结账当前期间 {book.current_period}",
                    {"period": period, "current_period": book.current_period},
                    code="PERIOD_NOT_CURRENT",
                )
            failed = [item for item in self.checklist(book_id, period) if not item.passed]
            if failed:
                raise ChecklistNotSatisfiedError(
                    "结账检查未通过: " + "；".join(item.detail or item.title for item in failed),
                    {"period": period, "items": [item.to_dict() for item in failed]},
                )
            book.last_closed_period = period
            book.current_period = next_period(period)
            self.repo.update_account_book(book)
        logger.info("book %s closed period %s, current period %s", book_id, period, book.current_period)
        return book

    def reverse_close(self, book_id: str, period: Optional[str] = None) -> BatchResult:
        with self.book_lock(book_id):
            book = self.get_book(book_id)
            if not book.last_closed_period:
                raise PeriodStateError("账套尚未结账", {"book_id": book_id}, code="PERIOD_NOT_CLOSED")
            period = period or book.last_closed_period
            if period != book.last_closed_period:
                raise PeriodStateError(
                    f"只能反结账最近已结账期间 {book.last_closed_period}",
                    {"period": period, "last_closed_period": book.last_closed_period},
                    code="PERIOD_NOT_LAST_CLOSED",
                )
            result = BatchResult()
            targets = [
                v for v in self.repo.list_vouchers(book_id)
                if v.period == period and v.closing_type is not None
            ]
            for voucher in targets:
                try:
                    self._remove_voucher(voucher)
                except LedgerError as exc:
                    logger.warning("reverse close %s: voucher %s failed: %s", period, voucher.code, exc)
                    result.failed.append((voucher.id, exc))
                else:
                    result.succeeded.append(voucher.id)
            if not result.ok:
                logger.warning(
                    "reverse close of %s incomplete: %d of %d vouchers failed",
                    period, len(result.failed), len(targets),
                )
                return result

            previous = prev_period(period)
            book.last_closed_period = previous if previous >= book.start_period else None
            book.current_period = period
            self.repo.update_account_book(book)
        logger.info("book %s reopened period %s", book_id, period)
        return result

    # ------------------------------------------------------------------
    # cash journal

    def _check_counterparty(self, book_id: str, code: Optional[str]) -> None:
        if code and code not in self.subjects(book_id):
            raise InvalidSubjectError(f"科目不存在: {code}", {"code": code})

    def create_journal_entry(
        self,
        book_id: str,
        account_id: int,
        date: str,
        summary: str = "",
        income_cents: int = 0,
        expense_cents: int = 0,
        counterparty_code: Optional[str] = None,
        counterparty_auxiliary: Optional[AuxiliaryRef] = None,
    ) -> JournalEntry:
        self.get_book(book_id)
        self._fund_account(book_id, account_id)
        self._check_counterparty(book_id, counterparty_code)
        entry = JournalEntry(
            book_id=book_id,
            account_id=account_id,
            date=date,
            summary=summary,
            income_cents=income_cents,
            expense_cents=expense_cents,
            counterparty_code=counterparty_code,
            counterparty_auxiliary=counterparty_auxiliary,
        )
        journal.validate_entry(entry)
        return self.repo.create_journal_entry(entry)

    def update_journal_entry(self, entry_id: int, **changes: Any) -> JournalEntry:
        unknown = set(changes) - _ENTRY_FIELDS
        if unknown:
            raise InputError(f"不支持修改的字段: {sorted(unknown)}", {"fields": sorted(unknown)})
        entry = self._entry(entry_id)
        journal.assert_editable(entry)
        for key, value in changes.items():
            setattr(entry, key, value)
        if "account_id" in changes:
            self._fund_account(entry.book_id, entry.account_id)
        self._check_counterparty(entry.book_id, entry.counterparty_code)
        journal.validate_entry(entry)
        self.repo.update_journal_entry(entry)
        return entry

    def delete_journal_entry(self, entry_id: int) -> None:
        entry = self._entry(entry_id)
        journal.assert_editable(entry)
        if entry.source_type == SOURCE_INTERNAL_TRANSFER:
            raise InputError(
                f"内部转账流水请删除对应的内部转账: {entry.transfer_id}",
                {"entry_id": entry_id, "transfer_id": entry.transfer_id},
                code="TRANSFER_ENTRY",
            )
        self.repo.delete_journal_entry(entry_id)

    def classify_journal_entries(
        self,
        entry_ids: Iterable[int],
        counterparty_code: str,
        auxiliary: Optional[AuxiliaryRef] = None,
    ) -> BatchResult:
        """Assign a counterparty subject; locked entries are reported, not changed."""
        result = BatchResult()
        for entry_id in entry_ids:
            try:
                entry = self._entry(entry_id)
                self._check_counterparty(entry.book_id, counterparty_code)
                journal.assert_editable(entry)
            except LedgerError as exc:
                result.failed.append((entry_id, exc))
                continue
            entry.counterparty_code = counterparty_code
            entry.counterparty_auxiliary = auxiliary
            self.repo.update_journal_entry(entry)
            result.succeeded.append(entry_id)
        return result

    def recompute_journal_balances(self, book_id: str, account_id: int) -> List[JournalEntry]:
        account = self._fund_account(book_id, account_id)
        entries = self.repo.list_journal_entries(book_id, account_id=account_id)
        return journal.recompute(entries, account.opening_cents)

    def list_journal(
        self,
        book_id: str,
        account_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[JournalEntry]:
        """Entries with running balances; the filter never shifts the balances."""
        if account_id is not None:
            account_ids = [account_id]
        else:
            account_ids = [a.id for a in self.repo.list_fund_accounts(book_id)]
        result: List[JournalEntry] = []
        for acc_id in account_ids:
            for entry in self.recompute_journal_balances(book_id, acc_id):
                if date_from and entry.date < date_from:
                    continue
                if date_to and entry.date > date_to:
                    continue
                result.append(entry)
        result.sort(key=lambda e: e.date)
        return result

    def generate_voucher_from_journal_entries(
        self,
        book_id: str,
        entry_ids: List[int],
        merge: bool = False,
        tax_config: Optional[Dict[str, Any]] = None,
    ) -> List[Voucher]:
        with self.book_lock(book_id):
            book = self.get_book(book_id)
            entry_ids = list(entry_ids)
            repeated = sorted({i for i in entry_ids if entry_ids.count(i) > 1})
            if repeated:
                raise InputError(f"流水重复选择: {repeated}", {"entry_ids": repeated})
            entries = [self._entry(entry_id) for entry_id in entry_ids]
            foreign = [e.id for e in entries if e.book_id != book_id]
            if foreign:
                raise InputError("流水不属于当前账套", {"entry_ids": foreign})
            journal.check_selection(entries, merge)
            subjects = self.subjects(book_id)

            groups = [entries] if merge and len(entries) > 1 else [[e] for e in entries]
            planned = []
            for group in groups:
                account = self._fund_account(book_id, group[0].account_id)
                assert_unlocked(book, group[0].date)
                if len(group) > 1:
                    lines = journal.merged_voucher_lines(
                        group, account, subjects, tax_config, self.journal_config
                    )
                else:
                    lines = journal.single_voucher_lines(
                        group[0], account, subjects, tax_config, self.journal_config
                    )
                vouchers.validate(lines, subjects)
                planned.append((group, lines))

            created: List[Voucher] = []
            auto_approve = not book.review_enabled
            for group, lines in planned:
                voucher = self._create_voucher(
                    book,
                    subjects,
                    lines,
                    group[0].date,
                    self.journal_config["voucher_type"],
                    origin=VoucherOrigin.SYSTEM,
                    status=VoucherStatus.APPROVED if auto_approve else VoucherStatus.DRAFT,
                    maker=SYSTEM_OPERATOR,
                    auditor=SYSTEM_OPERATOR if auto_approve else None,
                )
                for entry in group:
                    entry.voucher_code = voucher.code
                    self.repo.update_journal_entry(entry)
                created.append(voucher)
        logger.info(
            "book %s: %d vouchers generated from %d journal entries",
            book_id, len(created), len(entries),
        )
        return created

    def create_internal_transfer(
        self,
        book_id: str,
        from_account_id: int,
        to_account_id: int,
        date: str,
        amount_cents: int,
        summary: str = "",
    ) -> InternalTransfer:
        with self.book_lock(book_id):
            self.get_book(book_id)
            check_date(date)
            source = self._fund_account(book_id, from_account_id)
            target = self._fund_account(book_id, to_account_id)
            transfer_id = journal.transfer_number(
                date, (t.transfer_id for t in self.repo.list_internal_transfers(book_id))
            )
            outflow, inflow = journal.transfer_entries(
                book_id, transfer_id, date, source, target, amount_cents, summary
            )
            outflow = self.repo.create_journal_entry(outflow)
            inflow = self.repo.create_journal_entry(inflow)
            transfer = InternalTransfer(
                transfer_id=transfer_id,
                book_id=book_id,
                date=date,
                from_account_id=source.id,
                to_account_id=target.id,
                amount_cents=amount_cents,
                summary=summary,
                outflow_entry_id=outflow.id,
                inflow_entry_id=inflow.id,
            )
            created = self.repo.create_internal_transfer(transfer)
        logger.info("internal transfer %s created", transfer_id)
        return created

    def delete_internal_transfer(self, book_id: str, transfer_id: str) -> None:
        transfer = self.repo.get_internal_transfer(book_id, transfer_id)
        if transfer is None:
            raise NotFoundError(
                f"内部转账不存在: {transfer_id}",
                {"book_id": book_id, "transfer_id": transfer_id},
                code="TRANSFER_NOT_FOUND",
            )
        with self.book_lock(book_id):
            entries = [
                self.repo.get_journal_entry(entry_id)
                for entry_id in (transfer.outflow_entry_id, transfer.inflow_entry_id)
            ]
            locked = [e for e in entries if e is not None and e.is_locked]
            if locked:
                raise LockedByVoucherError(
                    f"内部转账流水已生成凭证，不能删除: {transfer_id}",
                    {"transfer_id": transfer_id, "voucher_codes": [e.voucher_code for e in locked]},
                )
            for entry in entries:
                if entry is not None:
                    self.repo.delete_journal_entry(entry.id)
            self.repo.delete_internal_transfer(book_id, transfer_id)
        logger.info("internal transfer %s deleted", transfer_id)

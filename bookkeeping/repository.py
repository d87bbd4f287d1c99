#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Storage collaborator interface and an in-memory implementation."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from bookkeeping.errors import NotFoundError
from bookkeeping.vouchers import next_number
from bookkeeping.models import (
    AccountBook,
    ClosingTemplate,
    FundAccount,
    InternalTransfer,
    JournalEntry,
    Subject,
    Voucher,
    VoucherStatus,
)


class Repository(ABC):
    """Everything the engine reads from or writes to storage.

    Implementations must give read-your-writes consistency: a value written
    by one call is visible to the next read in the same logical operation.
    """

    # account books
    @abstractmethod
    def create_account_book(self, book: AccountBook) -> AccountBook: ...

    @abstractmethod
    def get_account_book(self, book_id: str) -> Optional[AccountBook]: ...

    @abstractmethod
    def update_account_book(self, book: AccountBook) -> None: ...

    # subjects
    @abstractmethod
    def add_subject(self, book_id: str, subject: Subject) -> None: ...

    @abstractmethod
    def list_subjects(self, book_id: str) -> List[Subject]: ...

    # vouchers
    @abstractmethod
    def list_vouchers(self, book_id: str) -> List[Voucher]: ...

    @abstractmethod
    def get_voucher(self, voucher_id: int) -> Optional[Voucher]: ...

    @abstractmethod
    def create_voucher(self, voucher: Voucher) -> Voucher: ...

    @abstractmethod
    def update_voucher(self, voucher: Voucher) -> None: ...

    @abstractmethod
    def delete_voucher(self, voucher_id: int) -> None: ...

    @abstractmethod
    def audit_voucher(self, voucher_id: int, auditor: str) -> None: ...

    @abstractmethod
    def unaudit_voucher(self, voucher_id: int) -> None: ...

    @abstractmethod
    def next_voucher_number(self, book_id: str, voucher_type: str) -> int:
        """Allocate a number; it must never be handed out again."""

    # cash journal
    @abstractmethod
    def add_fund_account(self, account: FundAccount) -> FundAccount: ...

    @abstractmethod
    def get_fund_account(self, account_id: int) -> Optional[FundAccount]: ...

    @abstractmethod
    def list_fund_accounts(self, book_id: str) -> List[FundAccount]: ...

    @abstractmethod
    def create_journal_entry(self, entry: JournalEntry) -> JournalEntry: ...

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]: ...

    @abstractmethod
    def list_journal_entries(
        self,
        book_id: str,
        account_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[JournalEntry]: ...

    @abstractmethod
    def update_journal_entry(self, entry: JournalEntry) -> None: ...

    @abstractmethod
    def delete_journal_entry(self, entry_id: int) -> None: ...

    @abstractmethod
    def create_internal_transfer(self, transfer: InternalTransfer) -> InternalTransfer: ...

    @abstractmethod
    def get_internal_transfer(self, book_id: str, transfer_id: str) -> Optional[InternalTransfer]: ...

    @abstractmethod
    def list_internal_transfers(self, book_id: str) -> List[InternalTransfer]: ...

    @abstractmethod
    def delete_internal_transfer(self, book_id: str, transfer_id: str) -> None: ...

    # closing templates
    @abstractmethod
    def add_closing_template(self, template: ClosingTemplate) -> None: ...

    @abstractmethod
    def list_closing_templates(self, book_id: str) -> List[ClosingTemplate]: ...


class MemoryRepository(Repository):
    """Dict-backed repository; reads and writes copy so callers never alias state."""

    def __init__(self) -> None:
        self._books: Dict[str, AccountBook] = {}
        self._subjects: Dict[str, Dict[str, Subject]] = {}
        self._vouchers: Dict[int, Voucher] = {}
        self._sequences: Dict[Tuple[str, str], int] = {}
        self._fund_accounts: Dict[int, FundAccount] = {}
        self._entries: Dict[int, JournalEntry] = {}
        self._transfers: Dict[Tuple[str, str], InternalTransfer] = {}
        self._templates: Dict[str, Dict[str, ClosingTemplate]] = {}
        self._next_id = 0

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def create_account_book(self, book: AccountBook) -> AccountBook:
        self._books[book.id] = copy.deepcopy(book)
        self._subjects.setdefault(book.id, {})
        return copy.deepcopy(book)

    def get_account_book(self, book_id: str) -> Optional[AccountBook]:
        book = self._books.get(book_id)
        return copy.deepcopy(book) if book else None

    def update_account_book(self, book: AccountBook) -> None:
        if book.id not in self._books:
            raise NotFoundError(f"账套不存在: {book.id}", code="BOOK_NOT_FOUND")
        self._books[book.id] = copy.deepcopy(book)

    def add_subject(self, book_id: str, subject: Subject) -> None:
        self._subjects.setdefault(book_id, {})[subject.code] = copy.deepcopy(subject)

    def list_subjects(self, book_id: str) -> List[Subject]:
        subjects = self._subjects.get(book_id, {})
        return [copy.deepcopy(subjects[code]) for code in sorted(subjects)]

    def list_vouchers(self, book_id: str) -> List[Voucher]:
        return [
            copy.deepcopy(v)
            for _, v in sorted(self._vouchers.items())
            if v.book_id == book_id
        ]

    def get_voucher(self, voucher_id: int) -> Optional[Voucher]:
        voucher = self._vouchers.get(voucher_id)
        return copy.deepcopy(voucher) if voucher else None

    def _voucher(self, voucher_id: int) -> Voucher:
        voucher = self._vouchers.get(voucher_id)
        if voucher is None:
            raise NotFoundError(f"凭证不存在: {voucher_id}", code="VOUCHER_NOT_FOUND")
        return voucher

    def create_voucher(self, voucher: Voucher) -> Voucher:
        stored = copy.deepcopy(voucher)
        stored.id = self._new_id()
        key = (stored.book_id, stored.voucher_type)
        self._sequences[key] = max(self._sequences.get(key, 0), stored.number)
        self._vouchers[stored.id] = stored
        return copy.deepcopy(stored)

    def update_voucher(self, voucher: Voucher) -> None:
        self._voucher(voucher.id)
        self._vouchers[voucher.id] = copy.deepcopy(voucher)

    def delete_voucher(self, voucher_id: int) -> None:
        self._voucher(voucher_id)
        del self._vouchers[voucher_id]

    def audit_voucher(self, voucher_id: int, auditor: str) -> None:
        voucher = self._voucher(voucher_id)
        voucher.status = VoucherStatus.APPROVED
        voucher.auditor = auditor

    def unaudit_voucher(self, voucher_id: int) -> None:
        voucher = self._voucher(voucher_id)
        voucher.status = VoucherStatus.DRAFT
        voucher.auditor = None

    def next_voucher_number(self, book_id: str, voucher_type: str) -> int:
        key = (book_id, voucher_type)
        number = next_number(
            (v for v in self._vouchers.values() if v.book_id == book_id),
            voucher_type,
            self._sequences.get(key, 0),
        )
        self._sequences[key] = number
        return number

    def add_fund_account(self, account: FundAccount) -> FundAccount:
        stored = copy.deepcopy(account)
        stored.id = self._new_id()
        self._fund_accounts[stored.id] = stored
        return copy.deepcopy(stored)

    def get_fund_account(self, account_id: int) -> Optional[FundAccount]:
        account = self._fund_accounts.get(account_id)
        return copy.deepcopy(account) if account else None

    def list_fund_accounts(self, book_id: str) -> List[FundAccount]:
        return [
            copy.deepcopy(a)
            for _, a in sorted(self._fund_accounts.items())
            if a.book_id == book_id
        ]

    def create_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        stored = copy.deepcopy(entry)
        stored.id = self._new_id()
        stored.running_balance = None
        self._entries[stored.id] = stored
        return copy.deepcopy(stored)

    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        entry = self._entries.get(entry_id)
        return copy.deepcopy(entry) if entry else None

    def list_journal_entries(
        self,
        book_id: str,
        account_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[JournalEntry]:
        result = []
        for _, entry in sorted(self._entries.items()):
            if entry.book_id != book_id:
                continue
            if account_id is not None and entry.account_id != account_id:
                continue
            if date_from and entry.date < date_from:
                continue
            if date_to and entry.date > date_to:
                continue
            result.append(copy.deepcopy(entry))
        return result

    def update_journal_entry(self, entry: JournalEntry) -> None:
        if entry.id not in self._entries:
            raise NotFoundError(f"流水不存在: {entry.id}", code="ENTRY_NOT_FOUND")
        stored = copy.deepcopy(entry)
        stored.running_balance = None
        self._entries[entry.id] = stored

    def delete_journal_entry(self, entry_id: int) -> None:
        if entry_id not in self._entries:
            raise NotFoundError(f"流水不存在: {entry_id}", code="ENTRY_NOT_FOUND")
        del self._entries[entry_id]

    def create_internal_transfer(self, transfer: InternalTransfer) -> InternalTransfer:
        self._transfers[(transfer.book_id, transfer.transfer_id)] = copy.deepcopy(transfer)
        return copy.deepcopy(transfer)

    def get_internal_transfer(self, book_id: str, transfer_id: str) -> Optional[InternalTransfer]:
        transfer = self._transfers.get((book_id, transfer_id))
        return copy.deepcopy(transfer) if transfer else None

    def list_internal_transfers(self, book_id: str) -> List[InternalTransfer]:
        return [copy.deepcopy(t) for t in self._transfers.values() if t.book_id == book_id]

    def delete_internal_transfer(self, book_id: str, transfer_id: str) -> None:
        if (book_id, transfer_id) not in self._transfers:
            raise NotFoundError(f"内部转账不存在: {transfer_id}", code="TRANSFER_NOT_FOUND")
        del self._transfers[(book_id, transfer_id)]

    def add_closing_template(self, template: ClosingTemplate) -> None:
        self._templates.setdefault(template.book_id, {})[template.id] = copy.deepcopy(template)

    def list_closing_templates(self, book_id: str) -> List[ClosingTemplate]:
        templates = self._templates.get(book_id, {})
        return [copy.deepcopy(templates[key]) for key in sorted(templates)]

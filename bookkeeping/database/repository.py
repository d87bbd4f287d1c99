#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""SQLite-backed repository."""

from __future__ import annotations

import sqlite3
from typing import Any, List, Optional

from bookkeeping.errors import NotFoundError
from bookkeeping.models import (
    AccountBook,
    AuxiliaryRef,
    ClosingTemplate,
    Direction,
    FundAccount,
    InternalTransfer,
    JournalEntry,
    Subject,
    SubjectCategory,
    TaxType,
    Voucher,
    VoucherLine,
    VoucherOrigin,
    VoucherStatus,
)
from bookkeeping.repository import Repository


def _aux(row: sqlite3.Row) -> Optional[AuxiliaryRef]:
    if row["aux_dimension"] is None:
        return None
    return AuxiliaryRef(row["aux_dimension"], row["aux_item_id"] or "")


def _aux_values(aux: Optional[AuxiliaryRef]) -> tuple:
    if aux is None:
        return (None, None)
    return (aux.dimension, aux.item_id)


class SqliteRepository(Repository):
    """Repository over an open connection from :func:`get_db`.

    Amounts are stored as INTEGER cents; running balances are never stored.
    Transactions are owned by the caller's ``get_db`` block.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # account books

    def _book_from_row(self, row: sqlite3.Row) -> AccountBook:
        return AccountBook(
            id=row["id"],
            name=row["name"],
            start_period=row["start_period"],
            current_period=row["current_period"],
            tax_type=TaxType(row["tax_type"]),
            fiscal_year_start_month=row["fiscal_year_start_month"],
            last_closed_period=row["last_closed_period"],
            review_enabled=bool(row["review_enabled"]),
        )

    def create_account_book(self, book: AccountBook) -> AccountBook:
        self.conn.execute(
            """
            INSERT INTO account_books (
              id, name, start_period, current_period, last_closed_period,
              tax_type, fiscal_year_start_month, review_enabled
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                book.id,
                book.name,
                book.start_period,
                book.current_period,
                book.last_closed_period,
                book.tax_type.value,
                book.fiscal_year_start_month,
                int(book.review_enabled),
            ),
        )
        return book

    def get_account_book(self, book_id: str) -> Optional[AccountBook]:
        row = self.conn.execute("SELECT * FROM account_books WHERE id = ?", (book_id,)).fetchone()
        return self._book_from_row(row) if row else None

    def update_account_book(self, book: AccountBook) -> None:
        cur = self.conn.execute(
            """
            UPDATE account_books
            SET name = ?, current_period = ?, last_closed_period = ?, tax_type = ?,
                fiscal_year_start_month = ?, review_enabled = ?
            WHERE id = ?
            """,
            (
                book.name,
                book.current_period,
                book.last_closed_period,
                book.tax_type.value,
                book.fiscal_year_start_month,
                int(book.review_enabled),
                book.id,
            ),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"账套不存在: {book.id}", code="BOOK_NOT_FOUND")

    # subjects

    def add_subject(self, book_id: str, subject: Subject) -> None:
        self.conn.execute(
            """
            INSERT OR REPLACE INTO subjects (
              book_id, code, name, category, direction, parent_code,
              auxiliary_dimension, opening_cents
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                book_id,
                subject.code,
                subject.name,
                subject.category.value,
                subject.direction.value,
                subject.parent_code,
                subject.auxiliary_dimension,
                subject.opening_cents,
            ),
        )

    def list_subjects(self, book_id: str) -> List[Subject]:
        rows = self.conn.execute(
            "SELECT * FROM subjects WHERE book_id = ? ORDER BY code", (book_id,)
        ).fetchall()
        return [
            Subject(
                code=row["code"],
                name=row["name"],
                category=SubjectCategory(row["category"]),
                direction=Direction(row["direction"]),
                parent_code=row["parent_code"],
                auxiliary_dimension=row["auxiliary_dimension"],
                opening_cents=row["opening_cents"],
            )
            for row in rows
        ]

    # vouchers

    def _lines(self, voucher_id: int) -> List[VoucherLine]:
        rows = self.conn.execute(
            "SELECT * FROM voucher_lines WHERE voucher_id = ? ORDER BY line_no", (voucher_id,)
        ).fetchall()
        return [
            VoucherLine(
                summary=row["summary"],
                subject_code=row["subject_code"],
                debit_cents=row["debit_cents"],
                credit_cents=row["credit_cents"],
                auxiliary=_aux(row),
            )
            for row in rows
        ]

    def _voucher_from_row(self, row: sqlite3.Row) -> Voucher:
        return Voucher(
            id=row["id"],
            book_id=row["book_id"],
            date=row["date"],
            period=row["period"],
            voucher_type=row["voucher_type"],
            number=row["number"],
            status=VoucherStatus(row["status"]),
            origin=VoucherOrigin(row["origin"]),
            closing_type=row["closing_type"],
            maker=row["maker"] or "",
            auditor=row["auditor"],
            lines=self._lines(row["id"]),
        )

    def list_vouchers(self, book_id: str) -> List[Voucher]:
        rows = self.conn.execute(
            "SELECT * FROM vouchers WHERE book_id = ? ORDER BY id", (book_id,)
        ).fetchall()
        return [self._voucher_from_row(row) for row in rows]

    def get_voucher(self, voucher_id: int) -> Optional[Voucher]:
        row = self.conn.execute("SELECT * FROM vouchers WHERE id = ?", (voucher_id,)).fetchone()
        return self._voucher_from_row(row) if row else None

    def _insert_lines(self, voucher_id: int, lines: List[VoucherLine]) -> None:
        for line_no, line in enumerate(lines, start=1):
            self.conn.execute(
                """
                INSERT INTO voucher_lines (
                  voucher_id, line_no, summary, subject_code, debit_cents, credit_cents,
                  aux_dimension, aux_item_id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    voucher_id,
                    line_no,
                    line.summary,
                    line.subject_code,
                    line.debit_cents,
                    line.credit_cents,
                    *_aux_values(line.auxiliary),
                ),
            )

    def create_voucher(self, voucher: Voucher) -> Voucher:
        cur = self.conn.execute(
            """
            INSERT INTO vouchers (
              book_id, date, period, voucher_type, number, status, origin,
              closing_type, maker, auditor
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                voucher.book_id,
                voucher.date,
                voucher.period,
                voucher.voucher_type,
                voucher.number,
                voucher.status.value,
                voucher.origin.value,
                voucher.closing_type,
                voucher.maker,
                voucher.auditor,
            ),
        )
        voucher_id = cur.lastrowid
        self._insert_lines(voucher_id, voucher.lines)
        self.conn.execute(
            """
            INSERT INTO voucher_sequences (book_id, voucher_type, last_number)
            VALUES (?, ?, ?)
            ON CONFLICT(book_id, voucher_type)
            DO UPDATE SET last_number = MAX(last_number, excluded.last_number)
            """,
            (voucher.book_id, voucher.voucher_type, voucher.number),
        )
        return self.get_voucher(voucher_id)

    def _require_voucher(self, voucher_id: Any) -> None:
        row = self.conn.execute("SELECT id FROM vouchers WHERE id = ?", (voucher_id,)).fetchone()
        if not row:
            raise NotFoundError(f"凭证不存在: {voucher_id}", code="VOUCHER_NOT_FOUND")

    def update_voucher(self, voucher: Voucher) -> None:
        self._require_voucher(voucher.id)
        self.conn.execute(
            """
            UPDATE vouchers
            SET date = ?, period = ?, status = ?, maker = ?, auditor = ?
            WHERE id = ?
            """,
            (voucher.date, voucher.period, voucher.status.value, voucher.maker,
             voucher.auditor, voucher.id),
        )
        self.conn.execute("DELETE FROM voucher_lines WHERE voucher_id = ?", (voucher.id,))
        self._insert_lines(voucher.id, voucher.lines)

    def delete_voucher(self, voucher_id: int) -> None:
        self._require_voucher(voucher_id)
        self.conn.execute("DELETE FROM voucher_lines WHERE voucher_id = ?", (voucher_id,))
        self.conn.execute("DELETE FROM vouchers WHERE id = ?", (voucher_id,))

    def audit_voucher(self, voucher_id: int, auditor: str) -> None:
        self._require_voucher(voucher_id)
        self.conn.execute(
            "UPDATE vouchers SET status = 'approved', auditor = ? WHERE id = ?",
            (auditor, voucher_id),
        )

    def unaudit_voucher(self, voucher_id: int) -> None:
        self._require_voucher(voucher_id)
        self.conn.execute(
            "UPDATE vouchers SET status = 'draft', auditor = NULL WHERE id = ?",
            (voucher_id,),
        )

    def next_voucher_number(self, book_id: str, voucher_type: str) -> int:
        row = self.conn.execute(
            """
            SELECT MAX(
              COALESCE((SELECT last_number FROM voucher_sequences
                        WHERE book_id = ? AND voucher_type = ?), 0),
              COALESCE((SELECT MAX(number) FROM vouchers
                        WHERE book_id = ? AND voucher_type = ?), 0)
            ) AS current
            """,
            (book_id, voucher_type, book_id, voucher_type),
        ).fetchone()
        number = row["current"] + 1
        self.conn.execute(
            """
            INSERT INTO voucher_sequences (book_id, voucher_type, last_number)
            VALUES (?, ?, ?)
            ON CONFLICT(book_id, voucher_type) DO UPDATE SET last_number = excluded.last_number
            """,
            (book_id, voucher_type, number),
        )
        return number

    # fund accounts and journal

    def _fund_account_from_row(self, row: sqlite3.Row) -> FundAccount:
        return FundAccount(
            id=row["id"],
            book_id=row["book_id"],
            name=row["name"],
            subject_code=row["subject_code"],
            opening_cents=row["opening_cents"],
            auxiliary=_aux(row),
        )

    def add_fund_account(self, account: FundAccount) -> FundAccount:
        cur = self.conn.execute(
            """
            INSERT INTO fund_accounts (
              book_id, name, subject_code, opening_cents, aux_dimension, aux_item_id
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                account.book_id,
                account.name,
                account.subject_code,
                account.opening_cents,
                *_aux_values(account.auxiliary),
            ),
        )
        return self.get_fund_account(cur.lastrowid)

    def get_fund_account(self, account_id: int) -> Optional[FundAccount]:
        row = self.conn.execute(
            "SELECT * FROM fund_accounts WHERE id = ?", (account_id,)
        ).fetchone()
        return self._fund_account_from_row(row) if row else None

    def list_fund_accounts(self, book_id: str) -> List[FundAccount]:
        rows = self.conn.execute(
            "SELECT * FROM fund_accounts WHERE book_id = ? ORDER BY id", (book_id,)
        ).fetchall()
        return [self._fund_account_from_row(row) for row in rows]

    def _entry_from_row(self, row: sqlite3.Row) -> JournalEntry:
        return JournalEntry(
            id=row["id"],
            book_id=row["book_id"],
            account_id=row["account_id"],
            date=row["date"],
            summary=row["summary"] or "",
            income_cents=row["income_cents"],
            expense_cents=row["expense_cents"],
            counterparty_code=row["counterparty_code"],
            counterparty_auxiliary=_aux(row),
            voucher_code=row["voucher_code"],
            source_type=row["source_type"],
            transfer_id=row["transfer_id"],
        )

    def _entry_values(self, entry: JournalEntry) -> tuple:
        return (
            entry.book_id,
            entry.account_id,
            entry.date,
            entry.summary,
            entry.income_cents,
            entry.expense_cents,
            entry.counterparty_code,
            *_aux_values(entry.counterparty_auxiliary),
            entry.voucher_code,
            entry.source_type,
            entry.transfer_id,
        )

    def create_journal_entry(self, entry: JournalEntry) -> JournalEntry:
        cur = self.conn.execute(
            """
            INSERT INTO journal_entries (
              book_id, account_id, date, summary, income_cents, expense_cents,
              counterparty_code, aux_dimension, aux_item_id, voucher_code,
              source_type, transfer_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            self._entry_values(entry),
        )
        return self.get_journal_entry(cur.lastrowid)

    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        row = self.conn.execute(
            "SELECT * FROM journal_entries WHERE id = ?", (entry_id,)
        ).fetchone()
        return self._entry_from_row(row) if row else None

    def list_journal_entries(
        self,
        book_id: str,
        account_id: Optional[int] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> List[JournalEntry]:
        sql = "SELECT * FROM journal_entries WHERE book_id = ?"
        params: List[Any] = [book_id]
        if account_id is not None:
            sql += " AND account_id = ?"
            params.append(account_id)
        if date_from:
            sql += " AND date >= ?"
            params.append(date_from)
        if date_to:
            sql += " AND date <= ?"
            params.append(date_to)
        sql += " ORDER BY id"
        return [self._entry_from_row(row) for row in self.conn.execute(sql, params).fetchall()]

    def update_journal_entry(self, entry: JournalEntry) -> None:
        cur = self.conn.execute(
            """
            UPDATE journal_entries
            SET book_id = ?, account_id = ?, date = ?, summary = ?, income_cents = ?,
                expense_cents = ?, counterparty_code = ?, aux_dimension = ?, aux_item_id = ?,
                voucher_code = ?, source_type = ?, transfer_id = ?
            WHERE id = ?
            """,
            (*self._entry_values(entry), entry.id),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"流水不存在: {entry.id}", code="ENTRY_NOT_FOUND")

    def delete_journal_entry(self, entry_id: int) -> None:
        cur = self.conn.execute("DELETE FROM journal_entries WHERE id = ?", (entry_id,))
        if cur.rowcount == 0:
            raise NotFoundError(f"流水不存在: {entry_id}", code="ENTRY_NOT_FOUND")

    def _transfer_from_row(self, row: sqlite3.Row) -> InternalTransfer:
        return InternalTransfer(
            transfer_id=row["transfer_id"],
            book_id=row["book_id"],
            date=row["date"],
            from_account_id=row["from_account_id"],
            to_account_id=row["to_account_id"],
            amount_cents=row["amount_cents"],
            summary=row["summary"] or "",
            outflow_entry_id=row["outflow_entry_id"],
            inflow_entry_id=row["inflow_entry_id"],
        )

    def create_internal_transfer(self, transfer: InternalTransfer) -> InternalTransfer:
        self.conn.execute(
            """
            INSERT INTO internal_transfers (
              transfer_id, book_id, date, from_account_id, to_account_id, amount_cents,
              summary, outflow_entry_id, inflow_entry_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transfer.transfer_id,
                transfer.book_id,
                transfer.date,
                transfer.from_account_id,
                transfer.to_account_id,
                transfer.amount_cents,
                transfer.summary,
                transfer.outflow_entry_id,
                transfer.inflow_entry_id,
            ),
        )
        return transfer

    def get_internal_transfer(self, book_id: str, transfer_id: str) -> Optional[InternalTransfer]:
        row = self.conn.execute(
            "SELECT * FROM internal_transfers WHERE book_id = ? AND transfer_id = ?",
            (book_id, transfer_id),
        ).fetchone()
        return self._transfer_from_row(row) if row else None

    def list_internal_transfers(self, book_id: str) -> List[InternalTransfer]:
        rows = self.conn.execute(
            "SELECT * FROM internal_transfers WHERE book_id = ? ORDER BY transfer_id", (book_id,)
        ).fetchall()
        return [self._transfer_from_row(row) for row in rows]

    def delete_internal_transfer(self, book_id: str, transfer_id: str) -> None:
        cur = self.conn.execute(
            "DELETE FROM internal_transfers WHERE book_id = ? AND transfer_id = ?",
            (book_id, transfer_id),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"内部转账不存在: {transfer_id}", code="TRANSFER_NOT_FOUND")

    # closing templates

    def add_closing_template(self, template: ClosingTemplate) -> None:
        self.conn.execute(
            """
            INSERT OR REPLACE INTO closing_templates (
              book_id, id, name, debit_code, credit_code, source_type, source_code, enabled
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                template.book_id,
                template.id,
                template.name,
                template.debit_code,
                template.credit_code,
                template.source_type,
                template.source_code,
                int(template.enabled),
            ),
        )

    def list_closing_templates(self, book_id: str) -> List[ClosingTemplate]:
        rows = self.conn.execute(
            "SELECT * FROM closing_templates WHERE book_id = ? ORDER BY id", (book_id,)
        ).fetchall()
        return [
            ClosingTemplate(
                id=row["id"],
                book_id=row["book_id"],
                name=row["name"],
                debit_code=row["debit_code"],
                credit_code=row["credit_code"],
                source_type=row["source_type"],
                source_code=row["source_code"],
                enabled=bool(row["enabled"]),
            )
            for row in rows
        ]

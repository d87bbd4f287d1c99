#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Database schema for bookkeeping."""

from __future__ import annotations

import sqlite3


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS account_books (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  start_period TEXT NOT NULL,
  current_period TEXT NOT NULL,
  last_closed_period TEXT,
  tax_type TEXT NOT NULL DEFAULT 'general',
  fiscal_year_start_month INTEGER NOT NULL DEFAULT 1,
  review_enabled INTEGER NOT NULL DEFAULT 1,
  created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS subjects (
  book_id TEXT NOT NULL,
  code TEXT NOT NULL,
  name TEXT NOT NULL,
  category TEXT NOT NULL,
  direction TEXT NOT NULL,
  parent_code TEXT,
  auxiliary_dimension TEXT,
  opening_cents INTEGER NOT NULL DEFAULT 0,
  PRIMARY KEY (book_id, code),
  FOREIGN KEY (book_id) REFERENCES account_books(id)
);

CREATE TABLE IF NOT EXISTS vouchers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  book_id TEXT NOT NULL,
  date TEXT NOT NULL,
  period TEXT NOT NULL,
  voucher_type TEXT NOT NULL,
  number INTEGER NOT NULL,
  status TEXT NOT NULL DEFAULT 'draft',
  origin TEXT NOT NULL DEFAULT 'user_entered',
  closing_type TEXT,
  maker TEXT,
  auditor TEXT,
  created_at TEXT DEFAULT CURRENT_TIMESTAMP,
  UNIQUE (book_id, voucher_type, number),
  FOREIGN KEY (book_id) REFERENCES account_books(id)
);

CREATE INDEX IF NOT EXISTS idx_vouchers_period ON vouchers(book_id, period);

CREATE UNIQUE INDEX IF NOT EXISTS idx_vouchers_closing
  ON vouchers(book_id, period, closing_type) WHERE closing_type IS NOT NULL;

CREATE TABLE IF NOT EXISTS voucher_lines (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  voucher_id INTEGER NOT NULL,
  line_no INTEGER NOT NULL,
  summary TEXT NOT NULL,
  subject_code TEXT NOT NULL,
  debit_cents INTEGER NOT NULL DEFAULT 0,
  credit_cents INTEGER NOT NULL DEFAULT 0,
  aux_dimension TEXT,
  aux_item_id TEXT,
  FOREIGN KEY (voucher_id) REFERENCES vouchers(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_voucher_lines_voucher ON voucher_lines(voucher_id);

CREATE TABLE IF NOT EXISTS voucher_sequences (
  book_id TEXT NOT NULL,
  voucher_type TEXT NOT NULL,
  last_number INTEGER NOT NULL DEFAULT 0,
  PRIMARY KEY (book_id, voucher_type)
);

CREATE TABLE IF NOT EXISTS fund_accounts (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  book_id TEXT NOT NULL,
  name TEXT NOT NULL,
  subject_code TEXT NOT NULL,
  opening_cents INTEGER NOT NULL DEFAULT 0,
  aux_dimension TEXT,
  aux_item_id TEXT,
  FOREIGN KEY (book_id) REFERENCES account_books(id)
);

CREATE TABLE IF NOT EXISTS journal_entries (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  book_id TEXT NOT NULL,
  account_id INTEGER NOT NULL,
  date TEXT NOT NULL,
  summary TEXT,
  income_cents INTEGER NOT NULL DEFAULT 0,
  expense_cents INTEGER NOT NULL DEFAULT 0,
  counterparty_code TEXT,
  aux_dimension TEXT,
  aux_item_id TEXT,
  voucher_code TEXT,
  source_type TEXT NOT NULL DEFAULT 'manual',
  transfer_id TEXT,
  FOREIGN KEY (account_id) REFERENCES fund_accounts(id)
);

CREATE INDEX IF NOT EXISTS idx_journal_entries_account ON journal_entries(book_id, account_id, date);

CREATE TABLE IF NOT EXISTS internal_transfers (
  book_id TEXT NOT NULL,
  transfer_id TEXT NOT NULL,
  date TEXT NOT NULL,
  from_account_id INTEGER NOT NULL,
  to_account_id INTEGER NOT NULL,
  amount_cents INTEGER NOT NULL,
  summary TEXT,
  outflow_entry_id INTEGER,
  inflow_entry_id INTEGER,
  PRIMARY KEY (book_id, transfer_id)
);

CREATE TABLE IF NOT EXISTS closing_templates (
  book_id TEXT NOT NULL,
  id TEXT NOT NULL,
  name TEXT NOT NULL,
  debit_code TEXT NOT NULL,
  credit_code TEXT NOT NULL,
  source_type TEXT NOT NULL DEFAULT 'manual',
  source_code TEXT,
  enabled INTEGER NOT NULL DEFAULT 1,
  PRIMARY KEY (book_id, id)
);
"""


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)

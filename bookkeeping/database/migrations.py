#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Database migrations."""

from __future__ import annotations

import sqlite3


def run_migrations(conn: sqlite3.Connection) -> None:
    """Seed the voucher number high-water marks from vouchers already stored."""
    tables = {
        row[0]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    }
    if "vouchers" not in tables:
        return
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS voucher_sequences (
          book_id TEXT NOT NULL,
          voucher_type TEXT NOT NULL,
          last_number INTEGER NOT NULL DEFAULT 0,
          PRIMARY KEY (book_id, voucher_type)
        );

        INSERT OR IGNORE INTO voucher_sequences (book_id, voucher_type, last_number)
        SELECT book_id, voucher_type, MAX(number) FROM vouchers GROUP BY book_id, voucher_type;
        """
    )

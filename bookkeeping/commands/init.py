#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping init command."""

from __future__ import annotations

import json
from datetime import datetime

from bookkeeping.config import DATA_DIR
from bookkeeping.database import SqliteRepository, get_db, init_db
from bookkeeping.engine import BookkeepingEngine
from bookkeeping.models import Subject, TaxType
from bookkeeping.utils import LedgerError, print_json

DEFAULT_FUND_ACCOUNTS = [("现金", "1001"), ("银行存款", "1002")]


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("init", help="初始化账套", parents=parents)
    parser.add_argument("--name", default="默认账套", help="账套名称")
    parser.add_argument("--start-period", help="启用期间 (YYYY-MM)，默认当前月")
    parser.add_argument(
        "--tax-type",
        choices=[t.value for t in TaxType],
        default=TaxType.GENERAL.value,
        help="纳税人类型",
    )
    parser.add_argument("--fiscal-start-month", type=int, default=1, help="会计年度起始月")
    parser.add_argument("--no-review", action="store_true", help="关闭凭证审核（录入即审核）")
    parser.set_defaults(func=run)
    return parser


def run(args):
    subjects_path = DATA_DIR / "standard_subjects.json"
    if not subjects_path.exists():
        raise LedgerError("SUBJECT_FILE_NOT_FOUND", "标准科目文件不存在")
    subjects = json.loads(subjects_path.read_text(encoding="utf-8"))

    start_period = args.start_period or datetime.now().strftime("%Y-%m")
    with get_db(args.db_path) as conn:
        init_db(conn)
        engine = BookkeepingEngine(SqliteRepository(conn))
        book = engine.create_account_book(
            args.book,
            args.name,
            start_period,
            tax_type=TaxType(args.tax_type),
            fiscal_year_start_month=args.fiscal_start_month,
            review_enabled=not args.no_review,
        )
        for item in subjects:
            engine.add_subject(book.id, Subject.from_dict(item))
        accounts = [
            engine.add_fund_account(book.id, name, code).to_dict()
            for name, code in DEFAULT_FUND_ACCOUNTS
        ]

    print_json(
        {
            "status": "success",
            "message": "账套初始化完成",
            "book": book.to_dict(),
            "subjects_loaded": len(subjects),
            "fund_accounts": accounts,
        }
    )

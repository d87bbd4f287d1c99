#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping voucher command."""

from __future__ import annotations

from bookkeeping.database import SqliteRepository, get_db
from bookkeeping.engine import BookkeepingEngine
from bookkeeping.utils import LedgerError, load_json_input, print_json
from bookkeeping.vouchers import lines_from_dicts


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("voucher", help="凭证管理", parents=parents)
    sub = parser.add_subparsers(dest="voucher_cmd")

    record_parser = sub.add_parser("record", help="录入凭证（JSON 从标准输入读取）", parents=parents)
    record_parser.set_defaults(func=run_record)

    for name, help_text, func in (
        ("approve", "审核凭证", run_approve),
        ("unapprove", "反审核凭证", run_unapprove),
        ("delete", "删除凭证", run_delete),
    ):
        action = sub.add_parser(name, help=help_text, parents=parents)
        action.add_argument("voucher_id", type=int, help="凭证ID")
        if name == "approve":
            action.add_argument("--auditor", default="", help="审核人")
        action.set_defaults(func=func)

    list_parser = sub.add_parser("list", help="列出凭证", parents=parents)
    list_parser.add_argument("--period", help="期间")
    list_parser.set_defaults(func=run_list)
    return parser


def run_record(args):
    data = load_json_input()
    date = data.get("date")
    lines = data.get("lines")
    if not date:
        raise LedgerError("INPUT_INVALID", "缺少凭证日期")
    if not lines:
        raise LedgerError("INPUT_INVALID", "缺少分录")

    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        voucher = engine.record_voucher(
            args.book,
            date,
            lines_from_dicts(lines),
            voucher_type=data.get("type", "记"),
            maker=data.get("maker", ""),
        )
    print_json({"status": voucher.status.value, "voucher": voucher.to_dict()})


def run_approve(args):
    with get_db(args.db_path) as conn:
        voucher = BookkeepingEngine(SqliteRepository(conn)).approve_voucher(
            args.voucher_id, args.auditor
        )
    print_json({"status": "approved", "voucher": voucher.to_dict()})


def run_unapprove(args):
    with get_db(args.db_path) as conn:
        voucher = BookkeepingEngine(SqliteRepository(conn)).unapprove_voucher(args.voucher_id)
    print_json({"status": "draft", "voucher": voucher.to_dict()})


def run_delete(args):
    with get_db(args.db_path) as conn:
        voucher = BookkeepingEngine(SqliteRepository(conn)).delete_voucher(args.voucher_id)
    print_json({"status": "deleted", "voucher_code": voucher.code})


def run_list(args):
    with get_db(args.db_path) as conn:
        vouchers = BookkeepingEngine(SqliteRepository(conn)).list_vouchers(args.book, args.period)
    print_json({"vouchers": [v.to_dict() for v in vouchers]})

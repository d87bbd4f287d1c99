#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping journal command."""

from __future__ import annotations

from bookkeeping.database import SqliteRepository, get_db
from bookkeeping.engine import BookkeepingEngine
from bookkeeping.money import to_cents
from bookkeeping.utils import LedgerError, load_json_input, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("journal", help="资金日记账", parents=parents)
    sub = parser.add_subparsers(dest="journal_cmd")

    accounts_parser = sub.add_parser("accounts", help="列出资金账户", parents=parents)
    accounts_parser.set_defaults(func=run_accounts)

    add_entry = sub.add_parser("add", help="新增流水（JSON 从标准输入读取）", parents=parents)
    add_entry.set_defaults(func=run_add)

    delete_parser = sub.add_parser("delete", help="删除流水", parents=parents)
    delete_parser.add_argument("entry_id", type=int, help="流水ID")
    delete_parser.set_defaults(func=run_delete)

    list_parser = sub.add_parser("list", help="流水及余额", parents=parents)
    list_parser.add_argument("--account", type=int, help="资金账户ID")
    list_parser.add_argument("--from", dest="date_from", help="开始日期")
    list_parser.add_argument("--to", dest="date_to", help="结束日期")
    list_parser.set_defaults(func=run_list)

    classify_parser = sub.add_parser("classify", help="指定对方科目", parents=parents)
    classify_parser.add_argument("--ids", required=True, help="流水ID，逗号分隔")
    classify_parser.add_argument("--subject", required=True, help="对方科目编码")
    classify_parser.set_defaults(func=run_classify)

    voucher_parser = sub.add_parser("voucher", help="流水生成凭证", parents=parents)
    voucher_parser.add_argument("--ids", required=True, help="流水ID，逗号分隔")
    voucher_parser.add_argument("--merge", action="store_true", help="合并生成一张凭证")
    voucher_parser.add_argument("--tax-rate", help="价税分离税率（%%），不填则不分离")
    voucher_parser.set_defaults(func=run_voucher)

    transfer_parser = sub.add_parser("transfer", help="内部转账", parents=parents)
    transfer_parser.add_argument("--from-account", type=int, required=True, help="转出账户ID")
    transfer_parser.add_argument("--to-account", type=int, required=True, help="转入账户ID")
    transfer_parser.add_argument("--date", required=True, help="日期")
    transfer_parser.add_argument("--amount", required=True, help="金额")
    transfer_parser.add_argument("--summary", default="", help="摘要")
    transfer_parser.set_defaults(func=run_transfer)
    return parser


def _ids(text: str):
    try:
        return [int(item) for item in text.split(",") if item.strip()]
    except ValueError as exc:
        raise LedgerError("INPUT_INVALID", f"无效的流水ID: {text}") from exc


def run_accounts(args):
    with get_db(args.db_path) as conn:
        accounts = SqliteRepository(conn).list_fund_accounts(args.book)
    print_json({"accounts": [a.to_dict() for a in accounts]})


def run_add(args):
    data = load_json_input()
    for field in ("account_id", "date"):
        if field not in data:
            raise LedgerError("INPUT_INVALID", f"缺少字段: {field}")

    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        entry = engine.create_journal_entry(
            args.book,
            int(data["account_id"]),
            data["date"],
            summary=data.get("summary", ""),
            income_cents=to_cents(data.get("income") or 0),
            expense_cents=to_cents(data.get("expense") or 0),
            counterparty_code=data.get("counterparty_code"),
        )
    print_json({"status": "success", "entry": entry.to_dict()})


def run_delete(args):
    with get_db(args.db_path) as conn:
        BookkeepingEngine(SqliteRepository(conn)).delete_journal_entry(args.entry_id)
    print_json({"status": "deleted", "entry_id": args.entry_id})


def run_list(args):
    with get_db(args.db_path) as conn:
        entries = BookkeepingEngine(SqliteRepository(conn)).list_journal(
            args.book, args.account, args.date_from, args.date_to
        )
    print_json({"entries": [e.to_dict() for e in entries]})


def run_classify(args):
    with get_db(args.db_path) as conn:
        result = BookkeepingEngine(SqliteRepository(conn)).classify_journal_entries(
            _ids(args.ids), args.subject
        )
    print_json(result.to_dict())


def run_voucher(args):
    tax = {"enabled": True, "rate": args.tax_rate} if args.tax_rate else None
    with get_db(args.db_path) as conn:
        vouchers = BookkeepingEngine(SqliteRepository(conn)).generate_voucher_from_journal_entries(
            args.book, _ids(args.ids), merge=args.merge, tax_config=tax
        )
    print_json({"status": "generated", "vouchers": [v.to_dict() for v in vouchers]})


def run_transfer(args):
    with get_db(args.db_path) as conn:
        transfer = BookkeepingEngine(SqliteRepository(conn)).create_internal_transfer(
            args.book,
            args.from_account,
            args.to_account,
            args.date,
            to_cents(args.amount),
            args.summary,
        )
    print_json({"status": "success", "transfer": transfer.to_dict()})

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping closing command."""

from __future__ import annotations

import json

from bookkeeping.database import SqliteRepository, get_db
from bookkeeping.engine import BookkeepingEngine
from bookkeeping.utils import LedgerError, print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("closing", help="期末结转与结账", parents=parents)
    sub = parser.add_subparsers(dest="closing_cmd")

    cards_parser = sub.add_parser("cards", help="结转卡片状态", parents=parents)
    cards_parser.add_argument("--period", help="期间，默认当前期间")
    cards_parser.set_defaults(func=run_cards)

    preview_parser = sub.add_parser("preview", help="预览结转凭证", parents=parents)
    _add_kind_args(preview_parser)
    preview_parser.set_defaults(func=run_preview)

    generate_parser = sub.add_parser("generate", help="生成结转凭证", parents=parents)
    _add_kind_args(generate_parser)
    generate_parser.add_argument("--replace", action="store_true", help="删除已有凭证后重新生成")
    generate_parser.set_defaults(func=run_generate)

    undo_parser = sub.add_parser("undo", help="撤销结转凭证", parents=parents)
    undo_parser.add_argument("--kind", required=True, help="结转类型")
    undo_parser.add_argument("--period", help="期间，默认当前期间")
    undo_parser.set_defaults(func=run_undo)

    checklist_parser = sub.add_parser("checklist", help="结账检查", parents=parents)
    checklist_parser.add_argument("--period", help="期间，默认当前期间")
    checklist_parser.set_defaults(func=run_checklist)

    close_parser = sub.add_parser("close", help="结账", parents=parents)
    close_parser.add_argument("--period", help="期间，默认当前期间")
    close_parser.set_defaults(func=run_close)

    reopen_parser = sub.add_parser("reopen", help="反结账", parents=parents)
    reopen_parser.add_argument("--period", help="期间，默认最近已结账期间")
    reopen_parser.set_defaults(func=run_reopen)
    return parser


def _add_kind_args(parser):
    parser.add_argument("--kind", required=True, help="结转类型，如 cost / vat-transfer / profit")
    parser.add_argument("--period", help="期间，默认当前期间")
    parser.add_argument("--rule", help='结转规则 JSON，如 \'{"transfer_percent": 80}\'')


def _rule(args):
    if not args.rule:
        return None
    try:
        rule = json.loads(args.rule)
    except json.JSONDecodeError as exc:
        raise LedgerError("INVALID_JSON", f"无效的结转规则: {exc}") from exc
    if not isinstance(rule, dict):
        raise LedgerError("INVALID_JSON", "结转规则必须是 JSON 对象")
    return rule


def run_cards(args):
    with get_db(args.db_path) as conn:
        cards = BookkeepingEngine(SqliteRepository(conn)).closing_cards(args.book, args.period)
    print_json({"cards": cards})


def run_preview(args):
    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        draft = engine.draft_closing_voucher(args.book, args.kind, _rule(args), args.period)
    print_json({"draft": draft.to_dict()})


def run_generate(args):
    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        voucher = engine.generate_closing_voucher(
            args.book, args.kind, _rule(args), args.period, replace=args.replace
        )
    print_json({"status": "generated", "voucher": voucher.to_dict()})


def run_undo(args):
    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        voucher = engine.undo_closing_voucher(args.book, args.kind, args.period)
    print_json({"status": "deleted", "voucher_code": voucher.code, "closing_type": args.kind})


def run_checklist(args):
    with get_db(args.db_path) as conn:
        items = BookkeepingEngine(SqliteRepository(conn)).checklist(args.book, args.period)
    print_json(
        {
            "ready": all(item.passed for item in items),
            "items": [item.to_dict() for item in items],
        }
    )


def run_close(args):
    with get_db(args.db_path) as conn:
        book = BookkeepingEngine(SqliteRepository(conn)).attempt_close(args.book, args.period)
    print_json({"status": "closed", "book": book.to_dict()})


def run_reopen(args):
    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        result = engine.reverse_close(args.book, args.period)
        book = engine.get_book(args.book)
    if not result.ok:
        raise LedgerError(
            "REVERSE_CLOSE_INCOMPLETE",
            "反结账未完成，请检查失败的凭证后重试",
            result.to_dict(),
        )
    print_json({"status": "reopened", "book": book.to_dict(), **result.to_dict()})

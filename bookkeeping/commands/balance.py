#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""bookkeeping balance command."""

from __future__ import annotations

from bookkeeping.balances import SCOPE_PERIOD, SCOPES
from bookkeeping.database import SqliteRepository, get_db
from bookkeeping.engine import BookkeepingEngine
from bookkeeping.utils import print_json


def add_parser(subparsers, parents):
    parser = subparsers.add_parser("balance", help="科目余额查询", parents=parents)
    parser.add_argument("--code", required=True, help="科目编码或编码前缀")
    parser.add_argument("--period", help="期间，默认当前期间")
    parser.add_argument("--scope", choices=SCOPES, default=SCOPE_PERIOD, help="汇总范围")
    parser.set_defaults(func=run)
    return parser


def run(args):
    with get_db(args.db_path) as conn:
        engine = BookkeepingEngine(SqliteRepository(conn))
        result = engine.aggregate_balance(args.book, args.code, args.period, args.scope)
    print_json(result.to_dict())

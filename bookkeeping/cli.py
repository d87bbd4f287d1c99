#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Main CLI for bookkeeping."""

from __future__ import annotations

import argparse
import logging

from bookkeeping import commands
from bookkeeping.utils import LedgerError, handle_error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookkeeping",
        description="记账与期末结账 CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--db-path", default="./bookkeeping.db", help="数据库路径")
    common.add_argument("--book", default="default", help="账套编号")

    subparsers = parser.add_subparsers(dest="command")

    commands.add_init_parser(subparsers, [common])
    commands.add_voucher_parser(subparsers, [common])
    commands.add_balance_parser(subparsers, [common])
    commands.add_closing_parser(subparsers, [common])
    commands.add_journal_parser(subparsers, [common])

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    if not hasattr(args, "func"):
        parser.print_help()
        return
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except LedgerError as exc:
        handle_error(exc)


if __name__ == "__main__":
    main()

from .init import add_parser as add_init_parser
from .voucher import add_parser as add_voucher_parser
from .balance import add_parser as add_balance_parser
from .closing import add_parser as add_closing_parser
from .journal import add_parser as add_journal_parser

__all__ = [
    "add_init_parser",
    "add_voucher_parser",
    "add_balance_parser",
    "add_closing_parser",
    "add_journal_parser",
]

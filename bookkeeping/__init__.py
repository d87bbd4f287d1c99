"""Ledger and period-closing engine for small-business bookkeeping."""

__version__ = "0.1.0"

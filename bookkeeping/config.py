#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Closing and journal configuration."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from bookkeeping.utils import LedgerError

DATA_DIR = Path(__file__).resolve().parent / "data"

SYSTEM_OPERATOR = "系统自动"

DEFAULT_CLOSE_CONFIG: Dict[str, Any] = {
    "profit_account": "4103",
    "profit_account_fallback": "3103",
    "retain_account": "4104",
    "cost": {
        "source_code": "6001",
        "debit_code": "6401",
        "credit_code": "1405",
        "transfer_percent": 100,
    },
    "vat-transfer": {
        "output_code": "22210102",
        "input_code": "22210101",
        "debit_code": "22210103",
        "credit_code": "222102",
    },
    "simple-tax": {
        "source_code": "6001",
        "debit_code": "222101",
        "credit_code": "222102",
        "tax_rate": 3,
    },
    "surtax": {
        "debit_code": "6403",
        "city_code": "222108",
        "education_code": "222109",
        "local_education_code": "222110",
        "city_rate": 7,
        "education_rate": 3,
        "local_education_rate": 2,
    },
    "income-tax": {
        "debit_code": "6801",
        "credit_code": "222106",
        "tax_rate": 25,
    },
}

DEFAULT_JOURNAL_CONFIG: Dict[str, Any] = {
    "voucher_type": "记",
    "output_tax_code": "22210102",
    "input_tax_code": "22210101",
    "tax_fallback_code": "222101",
    "tax_rate": 13,
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load(name: str, defaults: Dict[str, Any], error_code: str, label: str,
          data_dir: Optional[Path] = None) -> Dict[str, Any]:
    config_path = (data_dir or DATA_DIR) / name
    if not config_path.exists():
        return copy.deepcopy(defaults)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LedgerError(error_code, f"{label}JSON错误: {exc}") from exc
    if not isinstance(data, dict):
        raise LedgerError(error_code, f"{label}必须为对象")
    return _merge(defaults, data)


def load_close_config(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    return _load("close_config.json", DEFAULT_CLOSE_CONFIG, "CLOSE_CONFIG_INVALID", "结账配置", data_dir)


def load_journal_config(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    return _load(
        "journal_config.json", DEFAULT_JOURNAL_CONFIG, "JOURNAL_CONFIG_INVALID", "日记账配置", data_dir
    )


def card_rule(config: Dict[str, Any], card_id: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Per-card rule: configured defaults with caller overrides on top."""
    rule = dict(config.get(card_id) or {})
    if overrides:
        rule.update({k: v for k, v in overrides.items() if v is not None})
    return rule

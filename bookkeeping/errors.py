#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Error taxonomy of the ledger engine.

Every error is a :class:`LedgerError` carrying a stable machine ``code`` so the
CLI and other callers can branch on it without parsing messages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from bookkeeping.utils import LedgerError


class _CodedError(LedgerError):
    default_code = "LEDGER_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(code or self.default_code, message, details)


class InputError(_CodedError):
    default_code = "INPUT_INVALID"


class NotFoundError(_CodedError):
    default_code = "NOT_FOUND"


class InvalidSubjectError(_CodedError):
    default_code = "SUBJECT_INVALID"


class ImbalanceError(_CodedError):
    default_code = "NOT_BALANCED"


class EmptyOrInvalidLineError(_CodedError):
    default_code = "LINE_INVALID"


class ExclusivityViolationError(_CodedError):
    default_code = "AMOUNT_EXCLUSIVITY"


class MissingAuxiliaryError(_CodedError):
    default_code = "AUXILIARY_REQUIRED"


class DuplicateClosingVoucherError(_CodedError):
    default_code = "CLOSING_VOUCHER_EXISTS"


class PeriodLockedError(_CodedError):
    default_code = "PERIOD_LOCKED"


class PeriodStateError(_CodedError):
    default_code = "PERIOD_STATE_INVALID"


class VoucherStatusError(_CodedError):
    default_code = "VOUCHER_STATUS_INVALID"


class LockedByVoucherError(_CodedError):
    default_code = "LOCKED_BY_VOUCHER"


class InconsistentMergeSelectionError(_CodedError):
    default_code = "MERGE_INCONSISTENT"


class NothingToTransferError(_CodedError):
    default_code = "NOTHING_TO_TRANSFER"


class ChecklistNotSatisfiedError(_CodedError):
    default_code = "CHECKLIST_NOT_SATISFIED"

    @property
    def items(self):
        return (self.details or {}).get("items", [])

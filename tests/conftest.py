import json

import pytest

from bookkeeping.config import DATA_DIR
from bookkeeping.engine import BookkeepingEngine
from bookkeeping.models import Subject, TaxType, VoucherLine
from bookkeeping.repository import MemoryRepository

BOOK_ID = "demo"
START_PERIOD = "2025-01"


def standard_subjects():
    data = json.loads((DATA_DIR / "standard_subjects.json").read_text(encoding="utf-8"))
    return [Subject.from_dict(item) for item in data]


def make_engine(tax_type=TaxType.GENERAL, review_enabled=True, fiscal_start_month=1):
    engine = BookkeepingEngine(MemoryRepository())
    engine.create_account_book(
        BOOK_ID,
        "测试账套",
        START_PERIOD,
        tax_type=tax_type,
        fiscal_year_start_month=fiscal_start_month,
        review_enabled=review_enabled,
    )
    for subject in standard_subjects():
        engine.add_subject(BOOK_ID, subject)
    return engine


def post(engine, date, debit_code, credit_code, cents, approve=True, summary="业务"):
    voucher = engine.record_voucher(
        BOOK_ID,
        date,
        [
            VoucherLine(summary, debit_code, debit_cents=cents),
            VoucherLine(summary, credit_code, credit_cents=cents),
        ],
    )
    if approve and not voucher.is_approved:
        voucher = engine.approve_voucher(voucher.id, "审核人")
    return voucher


@pytest.fixture
def engine():
    return make_engine()

import pytest

from bookkeeping.models import AuxiliaryRef, Subject, SubjectCategory, Direction, VoucherLine
from bookkeeping.utils import LedgerError
from bookkeeping.vouchers import line_from_dict, validate

from conftest import BOOK_ID, make_engine, post

SUBJECTS = {
    "1001": Subject("1001", "库存现金", SubjectCategory.ASSET, Direction.DEBIT),
    "1122": Subject(
        "1122", "应收账款", SubjectCategory.ASSET, Direction.DEBIT, auxiliary_dimension="customer"
    ),
    "6001": Subject("6001", "主营业务收入", SubjectCategory.PROFIT_AND_LOSS, Direction.CREDIT),
}


def _code(lines):
    with pytest.raises(LedgerError) as exc:
        validate(lines, SUBJECTS)
    return exc.value


def test_validate_accepts_balanced_lines():
    validate(
        [
            VoucherLine("收款", "1001", debit_cents=1000),
            VoucherLine("收款", "6001", credit_cents=1000),
        ],
        SUBJECTS,
    )


def test_validate_rejects_imbalance_with_totals():
    err = _code(
        [
            VoucherLine("收款", "1001", debit_cents=1000),
            VoucherLine("收款", "6001", credit_cents=900),
        ]
    )
    assert err.code == "NOT_BALANCED"
    assert err.details["debit_total"] == "10.00"
    assert err.details["credit_total"] == "9.00"
    assert err.details["difference"] == "1.00"


def test_validate_rejects_single_line():
    assert _code([VoucherLine("收款", "1001", debit_cents=1000)]).code == "LINE_INVALID"


def test_validate_rejects_both_sides_on_one_line():
    err = _code(
        [
            VoucherLine("收款", "1001", debit_cents=1000, credit_cents=1000),
            VoucherLine("收款", "6001", credit_cents=1000),
        ]
    )
    assert err.code == "AMOUNT_EXCLUSIVITY"


def test_validate_rejects_zero_line_and_missing_summary():
    zero = _code(
        [
            VoucherLine("收款", "1001"),
            VoucherLine("收款", "6001", credit_cents=1000),
        ]
    )
    assert zero.code == "LINE_INVALID"

    blank = _code(
        [
            VoucherLine("", "1001", debit_cents=1000),
            VoucherLine("收款", "6001", credit_cents=1000),
        ]
    )
    assert blank.code == "LINE_INVALID"


def test_validate_rejects_unknown_subject():
    err = _code(
        [
            VoucherLine("收款", "9999", debit_cents=1000),
            VoucherLine("收款", "6001", credit_cents=1000),
        ]
    )
    assert err.code == "SUBJECT_INVALID"


def test_validate_requires_auxiliary_where_declared():
    lines = [
        VoucherLine("赊销", "1122", debit_cents=1000),
        VoucherLine("赊销", "6001", credit_cents=1000),
    ]
    err = _code(lines)
    assert err.code == "AUXILIARY_REQUIRED"
    assert err.details["dimension"] == "customer"

    lines[0].auxiliary = AuxiliaryRef("customer", "C001")
    validate(lines, SUBJECTS)


def test_line_from_dict_parses_display_amounts():
    line = line_from_dict(
        {"summary": "收款", "subject": "1122", "debit": "1,000.50",
         "auxiliary": {"dimension": "customer", "item_id": "C001"}}
    )
    assert line.subject_code == "1122"
    assert line.debit_cents == 100050
    assert line.credit_cents == 0
    assert line.auxiliary == AuxiliaryRef("customer", "C001")


def test_voucher_numbers_are_never_reused():
    engine = make_engine()
    first = post(engine, "2025-01-05", "1001", "6001", 1000, approve=False)
    second = post(engine, "2025-01-06", "1001", "6001", 1000, approve=False)
    assert (first.code, second.code) == ("记-001", "记-002")

    engine.delete_voucher(second.id)
    third = post(engine, "2025-01-07", "1001", "6001", 1000, approve=False)
    assert third.number == 3


def test_voucher_numbers_are_per_type():
    engine = make_engine()
    post(engine, "2025-01-05", "1001", "6001", 1000)
    voucher = engine.record_voucher(
        BOOK_ID,
        "2025-01-06",
        [
            VoucherLine("收款", "1001", debit_cents=500),
            VoucherLine("收款", "6001", credit_cents=500),
        ],
        voucher_type="收",
    )
    assert voucher.code == "收-001"


def test_approved_voucher_cannot_be_deleted_or_edited():
    engine = make_engine()
    voucher = post(engine, "2025-01-05", "1001", "6001", 1000)

    with pytest.raises(LedgerError) as exc:
        engine.delete_voucher(voucher.id)
    assert exc.value.code == "VOUCHER_STATUS_INVALID"

    with pytest.raises(LedgerError) as exc:
        engine.update_voucher(voucher.id, date="2025-01-09")
    assert exc.value.code == "VOUCHER_STATUS_INVALID"

    engine.unapprove_voucher(voucher.id)
    updated = engine.update_voucher(voucher.id, date="2025-01-09")
    assert updated.date == "2025-01-09"
    engine.delete_voucher(voucher.id)
    assert engine.list_vouchers(BOOK_ID) == []


def test_review_disabled_approves_on_record():
    engine = make_engine(review_enabled=False)
    voucher = post(engine, "2025-01-05", "1001", "6001", 1000, approve=False)
    assert voucher.is_approved


def test_record_rejects_unbalanced_voucher_without_saving():
    engine = make_engine()
    with pytest.raises(LedgerError) as exc:
        engine.record_voucher(
            BOOK_ID,
            "2025-01-05",
            [
                VoucherLine("收款", "1001", debit_cents=1000),
                VoucherLine("收款", "6001", credit_cents=999),
            ],
        )
    assert exc.value.code == "NOT_BALANCED"
    assert engine.list_vouchers(BOOK_ID) == []

import pytest

from bookkeeping.closing import (
    generate_cost_transfer,
    generate_profit_transfer,
    generate_surtax,
    generate_year_end_transfer,
)
from bookkeeping.models import ClosingTemplate, Direction, Subject, SubjectCategory, TaxType, VoucherLine
from bookkeeping.models.book import SOURCE_BALANCE
from bookkeeping.utils import LedgerError

from conftest import BOOK_ID, make_engine, post

COST_RULE = {"debit_code": "6401", "credit_code": "1405", "transfer_percent": 80}
SURTAX_RULE = {
    "debit_code": "6403",
    "city_code": "222108",
    "education_code": "222109",
    "local_education_code": "222110",
}
REVENUE = Subject("6001", "主营业务收入", SubjectCategory.PROFIT_AND_LOSS, Direction.CREDIT)
COST = Subject("6401", "主营业务成本", SubjectCategory.PROFIT_AND_LOSS, Direction.DEBIT)


def _lines(voucher_or_draft):
    return [
        (line.subject_code, line.debit_cents, line.credit_cents)
        for line in voucher_or_draft.lines
    ]


def test_cost_transfer_uses_revenue_ratio():
    draft = generate_cost_transfer("2025-03", {"revenue": 10000000, "inventory": 9000000}, COST_RULE)
    assert _lines(draft) == [("6401", 8000000, 0), ("1405", 0, 8000000)]
    assert draft.date == "2025-03-31"
    assert draft.warnings == []


def test_cost_transfer_warns_when_inventory_short():
    draft = generate_cost_transfer("2025-03", {"revenue": 10000000, "inventory": 100}, COST_RULE)
    assert len(draft.warnings) == 1


def test_cost_transfer_refuses_zero_revenue():
    with pytest.raises(LedgerError) as exc:
        generate_cost_transfer("2025-03", {"revenue": 0}, COST_RULE)
    assert exc.value.code == "NOTHING_TO_TRANSFER"


def test_surtax_splits_into_three_liabilities():
    draft = generate_surtax("2025-03", {"vat_base": 10000}, SURTAX_RULE)
    assert _lines(draft) == [
        ("6403", 1200, 0),
        ("222108", 0, 700),
        ("222109", 0, 300),
        ("222110", 0, 200),
    ]


def test_profit_transfer_zeroes_pl_balances():
    draft = generate_profit_transfer(
        "2025-03",
        [(REVENUE, None, 0, 100000), (COST, None, 60000, 0)],
        "4103",
    )
    assert _lines(draft) == [("6001", 100000, 0), ("6401", 0, 60000), ("4103", 0, 40000)]
    assert draft.lines[0].summary == "结转2025年03月损益"


def test_profit_transfer_loss_debits_profit_account():
    draft = generate_profit_transfer("2025-03", [(COST, None, 50000, 0)], "4103")
    assert _lines(draft) == [("4103", 50000, 0), ("6401", 0, 50000)]


def test_year_end_transfer_only_at_fiscal_year_end():
    with pytest.raises(LedgerError) as exc:
        generate_year_end_transfer("2025-11", 1000, "4103", "4104")
    assert exc.value.code == "PERIOD_NOT_YEAR_END"

    draft = generate_year_end_transfer("2025-12", 1000, "4103", "4104")
    assert _lines(draft) == [("4103", 1000, 0), ("4104", 0, 1000)]

    loss = generate_year_end_transfer("2026-03", -500, "4103", "4104", fiscal_start_month=4)
    assert _lines(loss) == [("4104", 500, 0), ("4103", 0, 500)]


def test_generate_cost_voucher_from_period_revenue(engine):
    post(engine, "2025-01-10", "1002", "6001", 10000000)

    voucher = engine.generate_closing_voucher(
        BOOK_ID, "cost", {"transfer_percent": 80}, period="2025-01"
    )
    assert _lines(voucher) == [("6401", 8000000, 0), ("1405", 0, 8000000)]
    assert voucher.voucher_type == "转"
    assert voucher.closing_type == "cost"
    assert voucher.is_approved
    assert voucher.is_system
    assert voucher.maker == "系统自动"
    assert voucher.date == "2025-01-31"


def test_duplicate_closing_voucher_refused_then_replaced(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)
    first = engine.generate_closing_voucher(BOOK_ID, "cost")

    with pytest.raises(LedgerError) as exc:
        engine.generate_closing_voucher(BOOK_ID, "cost")
    assert exc.value.code == "CLOSING_VOUCHER_EXISTS"
    assert exc.value.details["voucher_code"] == first.code

    second = engine.generate_closing_voucher(BOOK_ID, "cost", {"transfer_percent": 50}, replace=True)
    assert second.number == first.number + 1
    assert second.debit_total == 50000
    closing = [v for v in engine.list_vouchers(BOOK_ID) if v.closing_type == "cost"]
    assert [v.id for v in closing] == [second.id]


def test_refused_replacement_keeps_existing_voucher(engine):
    revenue = post(engine, "2025-01-10", "1002", "6001", 100000)
    first = engine.generate_closing_voucher(BOOK_ID, "cost")
    engine.unapprove_voucher(revenue.id)

    with pytest.raises(LedgerError) as exc:
        engine.generate_closing_voucher(BOOK_ID, "cost", replace=True)
    assert exc.value.code == "NOTHING_TO_TRANSFER"
    closing = [v for v in engine.list_vouchers(BOOK_ID) if v.closing_type == "cost"]
    assert [v.id for v in closing] == [first.id]


def test_replacement_ignores_the_voucher_it_replaces(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)
    post(engine, "2025-01-11", "6602", "1002", 20000)
    first = engine.generate_closing_voucher(BOOK_ID, "income-tax")

    second = engine.generate_closing_voucher(BOOK_ID, "income-tax", replace=True)
    assert _lines(second) == _lines(first) == [("6801", 20000, 0), ("222106", 0, 20000)]


def test_nothing_to_transfer_saves_nothing(engine):
    with pytest.raises(LedgerError) as exc:
        engine.generate_closing_voucher(BOOK_ID, "cost")
    assert exc.value.code == "NOTHING_TO_TRANSFER"
    assert engine.list_vouchers(BOOK_ID) == []


def test_vat_transfer_then_surtax_on_transferred_amount(engine):
    engine.record_voucher(
        BOOK_ID,
        "2025-01-10",
        [
            VoucherLine("销售", "1002", debit_cents=113000),
            VoucherLine("销售", "6001", credit_cents=100000),
            VoucherLine("销售", "22210102", credit_cents=13000),
        ],
    )
    engine.record_voucher(
        BOOK_ID,
        "2025-01-12",
        [
            VoucherLine("采购", "1405", debit_cents=50000),
            VoucherLine("采购", "22210101", debit_cents=5000),
            VoucherLine("采购", "1002", credit_cents=55000),
        ],
    )
    for voucher in engine.list_vouchers(BOOK_ID):
        engine.approve_voucher(voucher.id)

    vat = engine.generate_closing_voucher(BOOK_ID, "vat-transfer")
    assert _lines(vat) == [("22210103", 8000, 0), ("222102", 0, 8000)]

    surtax = engine.generate_closing_voucher(BOOK_ID, "surtax")
    assert surtax.debit_total == 960
    assert _lines(surtax)[1:] == [("222108", 0, 560), ("222109", 0, 240), ("222110", 0, 160)]


def test_small_scale_book_uses_simple_tax():
    engine = make_engine(tax_type=TaxType.SMALL_SCALE)
    post(engine, "2025-01-10", "1002", "6001", 100000)

    with pytest.raises(LedgerError) as exc:
        engine.generate_closing_voucher(BOOK_ID, "vat-transfer")
    assert exc.value.code == "CLOSING_TYPE_INVALID"

    voucher = engine.generate_closing_voucher(BOOK_ID, "simple-tax")
    assert _lines(voucher) == [("222101", 3000, 0), ("222102", 0, 3000)]


def test_income_tax_on_year_to_date_profit(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)
    post(engine, "2025-01-11", "6602", "1002", 20000)

    voucher = engine.generate_closing_voucher(BOOK_ID, "income-tax")
    assert _lines(voucher) == [("6801", 20000, 0), ("222106", 0, 20000)]


def test_profit_transfer_via_engine_and_balance_is_emptied(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)
    post(engine, "2025-01-11", "6401", "1405", 60000)

    voucher = engine.generate_closing_voucher(BOOK_ID, "profit")
    assert _lines(voucher) == [("6001", 100000, 0), ("6401", 0, 60000), ("4103", 0, 40000)]
    assert engine.aggregate_balance(BOOK_ID, "6001").net_balance == 0
    assert engine.aggregate_balance(BOOK_ID, "4103").net_balance == 40000


def test_year_transfer_moves_profit_to_retained_earnings():
    engine = make_engine()
    post(engine, "2025-12-10", "1002", "6001", 100000)
    engine.generate_closing_voucher(BOOK_ID, "profit", period="2025-12")

    voucher = engine.generate_closing_voucher(BOOK_ID, "year-transfer", period="2025-12")
    assert _lines(voucher) == [("4103", 100000, 0), ("4104", 0, 100000)]
    assert voucher.lines[0].summary == "结转全年净利润"


def test_custom_templates(engine):
    engine.add_closing_template(
        ClosingTemplate(
            id="depreciation",
            book_id=BOOK_ID,
            name="计提折旧",
            debit_code="6602",
            credit_code="1602",
        )
    )
    engine.set_opening_balance(BOOK_ID, "1221", 30000)
    engine.add_closing_template(
        ClosingTemplate(
            id="clear-other",
            book_id=BOOK_ID,
            name="结转其他应收",
            debit_code="6711",
            credit_code="1221",
            source_type=SOURCE_BALANCE,
            source_code="1221",
        )
    )

    manual = engine.generate_closing_voucher(BOOK_ID, "depreciation", {"amount": "1200"})
    assert _lines(manual) == [("6602", 120000, 0), ("1602", 0, 120000)]

    from_balance = engine.generate_closing_voucher(BOOK_ID, "clear-other")
    assert _lines(from_balance) == [("6711", 30000, 0), ("1221", 0, 30000)]


def test_template_cannot_shadow_system_transfer(engine):
    with pytest.raises(LedgerError) as exc:
        engine.add_closing_template(
            ClosingTemplate(id="profit", book_id=BOOK_ID, name="x", debit_code="6602", credit_code="1602")
        )
    assert exc.value.code == "INPUT_INVALID"


def test_cards_report_generated_and_skipped(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)
    engine.generate_closing_voucher(BOOK_ID, "cost")

    cards = {card["card_id"]: card for card in engine.closing_cards(BOOK_ID)}
    assert list(cards) == ["cost", "vat-transfer", "surtax", "income-tax", "profit"]
    assert cards["cost"]["generated"] is True
    assert cards["cost"]["voucher_code"] == "转-001"
    assert cards["vat-transfer"]["skipped"] is True
    assert cards["income-tax"]["generated"] is False
    assert cards["income-tax"]["amount"] == "0.00"


def test_undo_closing_voucher(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)
    engine.generate_closing_voucher(BOOK_ID, "cost")

    removed = engine.undo_closing_voucher(BOOK_ID, "cost")
    assert removed.closing_type == "cost"
    assert [v for v in engine.list_vouchers(BOOK_ID) if v.closing_type] == []

    with pytest.raises(LedgerError) as exc:
        engine.undo_closing_voucher(BOOK_ID, "cost")
    assert exc.value.code == "CLOSING_VOUCHER_NOT_FOUND"

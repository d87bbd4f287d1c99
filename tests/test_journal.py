import pytest

from bookkeeping.journal import recompute, transfer_number
from bookkeeping.models import JournalEntry
from bookkeeping.utils import LedgerError

from conftest import BOOK_ID, START_PERIOD, standard_subjects


@pytest.fixture
def bank(engine):
    return engine.add_fund_account(BOOK_ID, "银行", "1002", opening_cents=100000)


@pytest.fixture
def cash(engine):
    return engine.add_fund_account(BOOK_ID, "现金", "1001")


def _entry(engine, account, date, income=0, expense=0, counterparty="6001", summary="货款"):
    return engine.create_journal_entry(
        BOOK_ID,
        account.id,
        date,
        summary,
        income_cents=income,
        expense_cents=expense,
        counterparty_code=counterparty,
    )


def _lines(voucher):
    return [(line.summary, line.subject_code, line.debit_cents, line.credit_cents) for line in voucher.lines]


def test_running_balance_follows_date_order(engine, bank):
    _entry(engine, bank, "2025-01-20", expense=30000, counterparty="6602")
    _entry(engine, bank, "2025-01-05", income=50000)
    _entry(engine, bank, "2025-01-10", income=20000)

    entries = engine.list_journal(BOOK_ID, bank.id)
    assert [e.date for e in entries] == ["2025-01-05", "2025-01-10", "2025-01-20"]
    assert [e.running_balance for e in entries] == [150000, 170000, 140000]

    filtered = engine.list_journal(BOOK_ID, bank.id, date_from="2025-01-10")
    assert [e.running_balance for e in filtered] == [170000, 140000]


def test_entry_requires_exactly_one_amount(engine, bank):
    for income, expense in ((100, 100), (0, 0)):
        with pytest.raises(LedgerError) as exc:
            _entry(engine, bank, "2025-01-05", income=income, expense=expense)
        assert exc.value.code == "AMOUNT_EXCLUSIVITY"


def test_single_voucher_from_income_entry(engine, bank):
    entry = _entry(engine, bank, "2025-01-05", income=50000)

    [voucher] = engine.generate_voucher_from_journal_entries(BOOK_ID, [entry.id])
    assert _lines(voucher) == [("货款", "1002", 50000, 0), ("货款", "6001", 0, 50000)]
    assert voucher.is_system
    assert not voucher.is_approved
    assert engine.repo.get_journal_entry(entry.id).voucher_code == voucher.code


def test_merged_voucher_aggregates_fund_side(engine, bank):
    first = _entry(engine, bank, "2025-01-05", income=50000, summary="货款A")
    second = _entry(engine, bank, "2025-01-05", income=30000, summary="货款B")

    [voucher] = engine.generate_voucher_from_journal_entries(
        BOOK_ID, [first.id, second.id], merge=True
    )
    assert _lines(voucher) == [
        ("货款A", "6001", 0, 50000),
        ("货款B", "6001", 0, 30000),
        ("汇总收款", "1002", 80000, 0),
    ]
    codes = {engine.repo.get_journal_entry(e.id).voucher_code for e in (first, second)}
    assert codes == {voucher.code}


def test_merged_voucher_with_income_and_expense(engine, bank):
    first = _entry(engine, bank, "2025-01-05", income=50000)
    second = _entry(engine, bank, "2025-01-05", expense=20000, counterparty="6602", summary="办公费")

    [voucher] = engine.generate_voucher_from_journal_entries(
        BOOK_ID, [first.id, second.id], merge=True
    )
    assert _lines(voucher) == [
        ("货款", "6001", 0, 50000),
        ("办公费", "6602", 20000, 0),
        ("汇总收款", "1002", 50000, 0),
        ("汇总付款", "1002", 0, 20000),
    ]


def test_merge_requires_same_day_and_account(engine, bank, cash):
    first = _entry(engine, bank, "2025-01-05", income=50000)
    other_day = _entry(engine, bank, "2025-01-06", income=30000)
    other_account = _entry(engine, cash, "2025-01-05", income=30000)

    for entry in (other_day, other_account):
        with pytest.raises(LedgerError) as exc:
            engine.generate_voucher_from_journal_entries(BOOK_ID, [first.id, entry.id], merge=True)
        assert exc.value.code == "MERGE_INCONSISTENT"
    assert engine.list_vouchers(BOOK_ID) == []


def test_unclassified_entry_is_refused(engine, bank):
    entry = _entry(engine, bank, "2025-01-05", income=50000, counterparty=None)
    with pytest.raises(LedgerError) as exc:
        engine.generate_voucher_from_journal_entries(BOOK_ID, [entry.id])
    assert exc.value.code == "LINE_INVALID"


def test_tax_split_on_income_and_expense(engine, bank):
    sale = _entry(engine, bank, "2025-01-05", income=11300, summary="销售")
    purchase = _entry(engine, bank, "2025-01-06", expense=11300, counterparty="1405", summary="采购")

    sale_voucher, purchase_voucher = engine.generate_voucher_from_journal_entries(
        BOOK_ID, [sale.id, purchase.id], tax_config={"enabled": True, "rate": 13}
    )
    assert _lines(sale_voucher) == [
        ("销售", "1002", 11300, 0),
        ("销售", "6001", 0, 10000),
        ("税金: 销售", "22210102", 0, 1300),
    ]
    assert _lines(purchase_voucher) == [
        ("采购", "1405", 10000, 0),
        ("税金: 采购", "22210101", 1300, 0),
        ("采购", "1002", 0, 11300),
    ]


def test_locked_entry_cannot_change_until_voucher_deleted(engine, bank):
    entry = _entry(engine, bank, "2025-01-05", income=50000)
    [voucher] = engine.generate_voucher_from_journal_entries(BOOK_ID, [entry.id])

    with pytest.raises(LedgerError) as exc:
        engine.update_journal_entry(entry.id, summary="改")
    assert exc.value.code == "LOCKED_BY_VOUCHER"
    with pytest.raises(LedgerError) as exc:
        engine.delete_journal_entry(entry.id)
    assert exc.value.code == "LOCKED_BY_VOUCHER"
    with pytest.raises(LedgerError) as exc:
        engine.generate_voucher_from_journal_entries(BOOK_ID, [entry.id])
    assert exc.value.code == "LOCKED_BY_VOUCHER"

    engine.delete_voucher(voucher.id)
    updated = engine.update_journal_entry(entry.id, summary="改")
    assert updated.voucher_code is None
    assert updated.summary == "改"


def test_journal_voucher_is_read_only(engine, bank):
    entry = _entry(engine, bank, "2025-01-05", income=50000)
    [voucher] = engine.generate_voucher_from_journal_entries(BOOK_ID, [entry.id])

    with pytest.raises(LedgerError) as exc:
        engine.update_voucher(voucher.id, date="2025-01-06")
    assert exc.value.code == "SYSTEM_VOUCHER_READONLY"


def test_classify_reports_locked_entries(engine, bank):
    free = _entry(engine, bank, "2025-01-05", income=50000, counterparty=None)
    locked = _entry(engine, bank, "2025-01-06", income=30000)
    engine.generate_voucher_from_journal_entries(BOOK_ID, [locked.id])

    result = engine.classify_journal_entries([free.id, locked.id], "6051")
    assert result.succeeded == [free.id]
    assert [item_id for item_id, _ in result.failed] == [locked.id]
    assert not result.ok
    assert engine.repo.get_journal_entry(free.id).counterparty_code == "6051"


def test_internal_transfer_creates_paired_entries(engine, bank, cash):
    transfer = engine.create_internal_transfer(BOOK_ID, bank.id, cash.id, "2025-01-10", 20000)
    assert transfer.transfer_id == "ZZ-20250110-001"

    outflow = engine.repo.get_journal_entry(transfer.outflow_entry_id)
    inflow = engine.repo.get_journal_entry(transfer.inflow_entry_id)
    assert (outflow.summary, outflow.expense_cents, outflow.counterparty_code) == (
        "[内部转账] 转至 现金", 20000, "1001"
    )
    assert (inflow.summary, inflow.income_cents, inflow.counterparty_code) == (
        "[内部转账] 来自 银行", 20000, "1002"
    )

    second = engine.create_internal_transfer(BOOK_ID, cash.id, bank.id, "2025-01-10", 500)
    assert second.transfer_id == "ZZ-20250110-002"


def test_internal_transfer_entries_deleted_together(engine, bank, cash):
    transfer = engine.create_internal_transfer(BOOK_ID, bank.id, cash.id, "2025-01-10", 20000)

    with pytest.raises(LedgerError) as exc:
        engine.delete_journal_entry(transfer.outflow_entry_id)
    assert exc.value.code == "TRANSFER_ENTRY"

    engine.delete_internal_transfer(BOOK_ID, transfer.transfer_id)
    assert engine.repo.get_journal_entry(transfer.outflow_entry_id) is None
    assert engine.repo.get_journal_entry(transfer.inflow_entry_id) is None


def test_internal_transfer_locked_once_vouchered(engine, bank, cash):
    transfer = engine.create_internal_transfer(BOOK_ID, bank.id, cash.id, "2025-01-10", 20000)
    engine.generate_voucher_from_journal_entries(BOOK_ID, [transfer.outflow_entry_id])

    with pytest.raises(LedgerError) as exc:
        engine.delete_internal_transfer(BOOK_ID, transfer.transfer_id)
    assert exc.value.code == "LOCKED_BY_VOUCHER"


def test_internal_transfer_rejects_same_account(engine, bank):
    with pytest.raises(LedgerError) as exc:
        engine.create_internal_transfer(BOOK_ID, bank.id, bank.id, "2025-01-10", 100)
    assert exc.value.code == "INPUT_INVALID"


def test_transfer_number_is_per_day():
    existing = ["ZZ-20250110-001", "ZZ-20250110-004", "ZZ-20250111-009"]
    assert transfer_number("2025-01-10", existing) == "ZZ-20250110-005"
    assert transfer_number("2025-01-12", existing) == "ZZ-20250112-001"


def _second_book(engine, book_id="other"):
    engine.create_account_book(book_id, "第二账套", START_PERIOD)
    for subject in standard_subjects():
        engine.add_subject(book_id, subject)
    return (
        engine.add_fund_account(book_id, "银行", "1002"),
        engine.add_fund_account(book_id, "现金", "1001"),
    )


def test_transfer_numbers_are_scoped_to_the_book(engine, bank, cash):
    other_bank, other_cash = _second_book(engine)
    mine = engine.create_internal_transfer(BOOK_ID, bank.id, cash.id, "2025-01-10", 20000)
    theirs = engine.create_internal_transfer("other", other_bank.id, other_cash.id, "2025-01-10", 700)
    assert mine.transfer_id == theirs.transfer_id == "ZZ-20250110-001"

    assert engine.repo.get_internal_transfer(BOOK_ID, mine.transfer_id).amount_cents == 20000
    assert engine.repo.get_internal_transfer("other", theirs.transfer_id).amount_cents == 700

    engine.delete_internal_transfer("other", theirs.transfer_id)
    assert engine.repo.get_internal_transfer("other", theirs.transfer_id) is None
    assert engine.repo.get_journal_entry(mine.outflow_entry_id) is not None
    assert engine.repo.get_internal_transfer(BOOK_ID, mine.transfer_id).book_id == BOOK_ID


def test_repeated_entry_ids_are_rejected(engine, bank):
    entry = _entry(engine, bank, "2025-01-05", income=50000)

    with pytest.raises(LedgerError) as exc:
        engine.generate_voucher_from_journal_entries(BOOK_ID, [entry.id, entry.id])
    assert exc.value.code == "INPUT_INVALID"
    assert exc.value.details["entry_ids"] == [entry.id]
    assert engine.list_vouchers(BOOK_ID) == []
    assert not engine.repo.get_journal_entry(entry.id).is_locked


def test_entry_requires_summary(engine, bank):
    for summary in ("", "   "):
        with pytest.raises(LedgerError) as exc:
            _entry(engine, bank, "2025-01-05", income=100, summary=summary)
        assert exc.value.code == "INPUT_INVALID"

    entry = _entry(engine, bank, "2025-01-05", income=100)
    with pytest.raises(LedgerError):
        engine.update_journal_entry(entry.id, summary="")
    assert engine.repo.get_journal_entry(entry.id).summary == "货款"


def _plain(date, income=0, expense=0, summary="货款"):
    return JournalEntry(BOOK_ID, 1, date, summary, income_cents=income, expense_cents=expense)


def test_recompute_is_idempotent_and_stable_on_ties():
    entries = [
        _plain("2025-01-05", income=100, summary="甲"),
        _plain("2025-01-03", expense=40, summary="乙"),
        _plain("2025-01-05", expense=10, summary="丙"),
    ]
    once = recompute(entries, 1000)
    twice = recompute(once, 1000)

    assert [e.summary for e in once] == ["乙", "甲", "丙"]
    assert [e.running_balance for e in once] == [960, 1060, 1050]
    assert [(e.summary, e.running_balance) for e in twice] == [
        (e.summary, e.running_balance) for e in once
    ]
    assert all(e.running_balance is None for e in entries)


def test_back_dated_entry_shifts_only_later_balances():
    entries = [
        _plain("2025-01-02", income=500),
        _plain("2025-01-10", expense=200),
        _plain("2025-01-20", income=300),
    ]
    before = [e.running_balance for e in recompute(entries, 0)]
    after = recompute(entries + [_plain("2025-01-05", expense=70)], 0)

    assert before == [500, 300, 600]
    assert [e.running_balance for e in after] == [500, 430, 230, 530]
    assert [e.running_balance for e in after if e.date != "2025-01-05"] == [
        before[0], before[1] - 70, before[2] - 70
    ]

import threading

from bookkeeping.models import VoucherLine
from bookkeeping.utils import LedgerError

from conftest import BOOK_ID, post


def _run_together(count, target):
    barrier = threading.Barrier(count)
    results = []
    errors = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            value = target()
        except LedgerError as exc:
            with lock:
                errors.append(exc)
        else:
            with lock:
                results.append(value)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, errors


def test_concurrent_closing_generation_creates_one_voucher(engine):
    post(engine, "2025-01-10", "1002", "6001", 100000)

    created, refused = _run_together(8, lambda: engine.generate_closing_voucher(BOOK_ID, "cost"))

    assert len(created) == 1
    assert [exc.code for exc in refused] == ["CLOSING_VOUCHER_EXISTS"] * 7
    closing = [v for v in engine.list_vouchers(BOOK_ID) if v.closing_type == "cost"]
    assert [v.id for v in closing] == [created[0].id]


def test_concurrent_records_get_distinct_numbers(engine):
    def record():
        lines = [
            VoucherLine("收款", "1002", debit_cents=100),
            VoucherLine("收款", "6001", credit_cents=100),
        ]
        return engine.record_voucher(BOOK_ID, "2025-01-10", lines)

    created, errors = _run_together(12, record)

    assert errors == []
    assert sorted(v.number for v in created) == list(range(1, 13))
    assert len({v.code for v in created}) == 12

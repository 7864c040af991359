from __future__ import annotations

import datetime as dt
import sqlite3

import pytest

from db import queries
from services.attendance import AttendanceLedger, BatchWriteError, date_key, summarize_ledger
from services.entities import WorkersService
from services.validation import ValidationError

WORKER = {"name": "Ravi", "type": "Mason", "wage": "500", "contact": "98765"}


@pytest.fixture
def workers(store, today):
    return WorkersService(store, "p1", today=today)


@pytest.fixture
def ledger(store, today):
    return AttendanceLedger(store, "p1", today=today, now=lambda: dt.datetime(2024, 5, 1, 9, 30))


def test_date_key_strips_separators():
    assert date_key("2024-05-01") == "20240501"
    assert date_key(dt.date(2024, 5, 1)) == "20240501"
    assert date_key(dt.datetime(2024, 5, 1, 23, 59)) == "20240501"
    with pytest.raises(ValidationError):
        date_key("first of may")


def test_mark_stores_wage_snapshot(store, workers, ledger):
    wid, _ = workers.create(WORKER)
    entry = ledger.mark_attendance("2024-05-01", wid, True)
    assert entry.wage == 500
    stored = store.get(f"projects/p1/attendance/20240501/{wid}")
    assert stored == {"present": True, "time": "2024-05-01T09:30:00", "wage": 500.0}


def test_wage_change_does_not_rewrite_history(workers, ledger):
    wid, _ = workers.create(WORKER)
    ledger.mark_attendance("2024-05-01", wid, True)
    assert ledger.daily_summary("2024-05-01").total_liability == 500

    workers.update(wid, {**WORKER, "wage": "800"})
    assert ledger.daily_summary("2024-05-01").total_liability == 500

    ledger.mark_attendance("2024-05-02", wid, True)
    assert ledger.daily_summary("2024-05-02").total_liability == 800


def test_marking_twice_keeps_one_record(workers, ledger):
    wid, _ = workers.create(WORKER)
    ledger.mark_attendance("2024-05-01", wid, True)
    ledger.mark_attendance("2024-05-01", wid, True)
    records = ledger.day_records("2024-05-01")
    assert list(records) == [wid]
    assert records[wid]["present"] is True


def test_absent_overwrites_present(workers, ledger):
    wid, _ = workers.create(WORKER)
    ledger.mark_attendance("2024-05-01", wid, True)
    ledger.mark_attendance("2024-05-01", wid, False)
    summary = ledger.daily_summary("2024-05-01")
    assert (summary.present_count, summary.total_liability) == (0, 0)


def test_deleted_worker_still_counts(workers, ledger):
    wid, _ = workers.create(WORKER)
    ledger.mark_attendance("2024-05-01", wid, True)
    workers.request_delete(wid, "Ravi").confirm()
    summary = ledger.daily_summary("2024-05-01")
    assert (summary.present_count, summary.total_liability) == (1, 500)


def test_unknown_worker_cannot_be_marked(ledger):
    with pytest.raises(ValidationError):
        ledger.mark_attendance("2024-05-01", "ghost", True)


def test_mark_all_regular(workers, ledger):
    regular_a, _ = workers.create({**WORKER, "isRegular": True})
    workers.create({**WORKER, "name": "Anil", "wage": "300"})
    regular_b, _ = workers.create({**WORKER, "name": "Babu", "wage": "700", "isRegular": "yes"})

    marked = ledger.mark_all_regular("2024-05-01")

    assert marked == [regular_a, regular_b]
    summary = ledger.daily_summary("2024-05-01")
    assert (summary.present_count, summary.total_liability) == (2, 1200)


def test_mark_all_regular_without_regulars(workers, ledger):
    workers.create(WORKER)
    assert ledger.mark_all_regular("2024-05-01") == []


def test_failed_batch_rolls_back_earlier_marks(workers, ledger, monkeypatch):
    first, _ = workers.create({**WORKER, "isRegular": True})
    second, _ = workers.create({**WORKER, "name": "Babu", "isRegular": True})
    real_upsert = queries.upsert_record
    calls = []

    def fail_on_second(*args, **kwargs):
        calls.append(args[2])
        if len(calls) == 2:
            raise sqlite3.OperationalError("disk I/O error")
        return real_upsert(*args, **kwargs)

    monkeypatch.setattr(queries, "upsert_record", fail_on_second)
    with pytest.raises(BatchWriteError) as info:
        ledger.mark_all_regular("2024-05-01")
    assert info.value.worker_ids == [first, second]
    # the first mark was written inside the batch before the failure
    assert calls == [first, second]

    monkeypatch.undo()
    assert ledger.day_records("2024-05-01") == {}


def test_summarize_ledger_tolerates_bad_records():
    summary = summarize_ledger(
        {
            "a": {"present": True, "wage": 500},
            "b": {"present": True, "wage": "oops"},
            "c": {"present": False, "wage": 900},
            "d": "garbage",
        }
    )
    assert (summary.present_count, summary.total_liability) == (2, 500)
    assert summarize_ledger(None).present_count == 0

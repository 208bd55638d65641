import datetime as dt

import pytest

from ventory_imports.services.imports import control
from ventory_imports.services.imports.errors import (
    DispatchFailed,
    InvalidImportKind,
    InvalidJobState,
    JobNotFound,
    SourceUnavailable,
)
from ventory_imports.services.imports.ledger import JobLedger

def test_start_import_registers_pending_job_and_dispatches(db, notifier, make_sheet):
    ref = make_sheet(["sku", "stock"], [["A", 1]])
    dispatched = []
    job = control.start_import(db, "stock", ref, "owner-1", notifier=notifier, dispatcher=dispatched.append)
    assert dispatched == [job.id]
    assert control.get_job(db, job.id).status == "pending"
    assert job.owner_id == "owner-1"

def test_start_import_rejects_unknown_kind(db, make_sheet):
    ref = make_sheet(["sku"], [["A"]])
    with pytest.raises(InvalidImportKind):
        control.start_import(db, "invoices", ref, "owner-1", dispatcher=lambda _id: None)

def test_start_import_requires_existing_file(db, upload_dir):
    with pytest.raises(SourceUnavailable):
        control.start_import(db, "products", "owner-1/missing.xlsx", "owner-1", dispatcher=lambda _id: None)
    with pytest.raises(SourceUnavailable):
        control.start_import(db, "products", "../../etc/passwd", "owner-1", dispatcher=lambda _id: None)

def test_dispatch_failure_marks_job_failed(db, notifier, make_sheet):
    ref = make_sheet(["sku", "stock"], [["A", 1]])

    def broken(job_id):
        raise ConnectionError("broker down")

    with pytest.raises(DispatchFailed):
        control.start_import(db, "stock", ref, "owner-1", notifier=notifier, dispatcher=broken)
    job = control.list_jobs(db)[0]
    assert job.status == "failed"
    assert "broker down" in job.error_summary["message"]

def test_cancel_only_from_pending_or_processing(db, notifier):
    ledger = JobLedger(db)
    job = ledger.create_job("products", "r", "o")
    assert control.cancel_job(db, job.id, notifier).status == "cancelled"
    with pytest.raises(InvalidJobState):
        control.cancel_job(db, job.id, notifier)

    done = ledger.create_job("products", "r", "o")
    ledger.begin_run(done.id)
    ledger.complete_run(done.id, 0, 0, 0, 0)
    with pytest.raises(InvalidJobState):
        control.cancel_job(db, done.id, notifier)
    assert ledger.get_job(done.id).status == "completed"

def test_retry_only_from_failed_or_cancelled(db, notifier):
    ledger = JobLedger(db)
    job = ledger.create_job("products", "r", "o")
    with pytest.raises(InvalidJobState):
        control.retry_job(db, job.id, notifier, dispatcher=lambda _id: None)

    ledger.cancel(job.id)
    dispatched = []
    out = control.retry_job(db, job.id, notifier, dispatcher=dispatched.append)
    assert out.status == "pending"
    assert dispatched == [job.id]

def test_unknown_job(db):
    with pytest.raises(JobNotFound):
        control.get_job(db, "missing")
    with pytest.raises(JobNotFound):
        control.cancel_job(db, "missing")
    with pytest.raises(JobNotFound):
        control.list_records(db, "missing")

def test_history_is_newest_first_and_capped(db):
    ledger = JobLedger(db)
    jobs = [ledger.create_job("stock", f"r{i}", "o") for i in range(3)]
    ledger.create_job("users", "u", "o")
    for i, job in enumerate(jobs):
        job.created_at = dt.datetime(2026, 1, 1 + i, tzinfo=dt.timezone.utc)
    db.commit()

    assert len(control.list_jobs(db, limit=500)) == 4
    assert [j.id for j in control.list_jobs(db, import_kind="stock")] == [j.id for j in reversed(jobs)]
    assert len(control.list_jobs(db, limit=2)) == 2
    assert control.list_jobs(db, status="failed") == []

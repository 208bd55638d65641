import pytest

from ventory_imports.services.imports.errors import JobNotFound
from ventory_imports.services.imports.ledger import JobLedger

def _events(notifier, job_id):
    seen = []
    notifier.subscribe(job_id, seen.append)
    return seen

def test_create_job_starts_pending(db, notifier):
    job = JobLedger(db, notifier).create_job("products", "owner-1/p.xlsx", "owner-1", file_name="p.xlsx")
    assert job.status == "pending"
    assert (job.total_records, job.processed_records, job.successful_records, job.failed_records) == (0, 0, 0, 0)
    assert job.run_count == 0

def test_get_missing_job_raises(db):
    with pytest.raises(JobNotFound):
        JobLedger(db).get_job("does-not-exist")

def test_repeated_counter_flushes_are_idempotent(db, notifier):
    ledger = JobLedger(db, notifier)
    job = ledger.create_job("stock", "r", "o")
    ledger.set_total(job.id, 20)
    ledger.increment_counters(job.id, 10, 7, 3)
    ledger.increment_counters(job.id, 10, 7, 3)
    job = ledger.get_job(job.id)
    assert job.total_records == 20
    assert (job.processed_records, job.successful_records, job.failed_records) == (10, 7, 3)

def test_counters_never_move_backwards(db):
    ledger = JobLedger(db)
    job = ledger.create_job("stock", "r", "o")
    ledger.increment_counters(job.id, 10, 7, 3)
    ledger.increment_counters(job.id, 5, 4, 1)
    job = ledger.get_job(job.id)
    assert (job.processed_records, job.successful_records, job.failed_records) == (10, 7, 3)

def test_begin_run_only_from_pending(db):
    ledger = JobLedger(db)
    job = ledger.create_job("products", "r", "o")
    assert ledger.begin_run(job.id) == 1
    assert ledger.begin_run(job.id) is None
    job = ledger.get_job(job.id)
    assert job.status == "processing"
    assert job.started_at is not None

def test_complete_run_writes_summary(db, notifier):
    ledger = JobLedger(db, notifier)
    job = ledger.create_job("products", "r", "o")
    events = _events(notifier, job.id)
    ledger.begin_run(job.id)
    assert ledger.complete_run(job.id, total=3, processed=3, ok=2, fail=1)
    job = ledger.get_job(job.id)
    assert job.status == "completed"
    assert job.completed_at is not None
    assert job.error_summary == {"total": 3, "processed": 3, "ok": 2, "fail": 1}
    done = [e for e in events if e["event"] == "import.completed"]
    assert done == [{"event": "import.completed", "jobId": job.id, "successfulRecords": 2, "failedRecords": 1}]

def test_cancelled_job_is_not_overwritten(db):
    ledger = JobLedger(db)
    job = ledger.create_job("products", "r", "o")
    ledger.begin_run(job.id)
    assert ledger.cancel(job.id)
    assert not ledger.owns_run(job.id, 1)
    assert not ledger.complete_run(job.id, 1, 1, 1, 0)
    assert not ledger.fail_run(job.id, "boom")
    assert ledger.get_job(job.id).status == "cancelled"

def test_fail_run_sets_message(db, notifier):
    ledger = JobLedger(db, notifier)
    job = ledger.create_job("users", "r", "o")
    events = _events(notifier, job.id)
    ledger.begin_run(job.id)
    assert ledger.fail_run(job.id, "Error descargando archivo")
    job = ledger.get_job(job.id)
    assert job.status == "failed"
    assert job.error_summary == {"message": "Error descargando archivo"}
    assert job.completed_at is not None
    assert events[-1] == {"event": "import.failed", "jobId": job.id, "message": "Error descargando archivo"}

def test_reset_for_retry_keeps_records_and_clears_counters(db):
    ledger = JobLedger(db)
    job = ledger.create_job("stock", "r", "o")
    run = ledger.begin_run(job.id)
    ledger.append_record(job.id, run, 0, {"sku": "A"}, "error", error_message="Producto no encontrado por SKU")
    ledger.increment_counters(job.id, 1, 0, 1)
    ledger.fail_run(job.id, "x")
    assert ledger.reset_for_retry(job.id)
    assert not ledger.reset_for_retry(job.id)
    job = ledger.get_job(job.id)
    assert job.status == "pending"
    assert job.processed_records == 0
    assert job.error_summary is None
    assert job.completed_at is None
    assert len(ledger.list_records(job.id)) == 1

def test_records_keep_outcome_fields_consistent(db):
    ledger = JobLedger(db)
    job = ledger.create_job("products", "r", "o")
    ledger.append_record(job.id, 1, 0, {"sku": "A"}, "success", error_message="ignored", created_entity_id="p-1")
    ledger.append_record(job.id, 1, 1, {"sku": "B"}, "error", error_message="SKU ya existe", created_entity_id="x")
    ok, bad = ledger.list_records(job.id)
    assert (ok.row_number, ok.error_message, ok.created_entity_id) == (2, None, "p-1")
    assert (bad.row_number, bad.error_message, bad.created_entity_id) == (3, "SKU ya existe", None)
    assert [r.row_number for r in ledger.list_records(job.id, status="error")] == [3]

def test_every_mutation_publishes_a_snapshot(db, notifier):
    ledger = JobLedger(db, notifier)
    job = ledger.create_job("products", "r", "o")
    events = _events(notifier, job.id)
    ledger.begin_run(job.id)
    ledger.set_total(job.id, 4)
    ledger.increment_counters(job.id, 2, 2, 0)
    snaps = [e["job"] for e in events if e["event"] == "import.updated"]
    assert [s["status"] for s in snaps] == ["processing", "processing", "processing"]
    assert snaps[1]["totalRecords"] == 4
    assert snaps[2]["processedRecords"] == 2

def test_stale_run_cannot_complete_or_flush(db):
    ledger = JobLedger(db)
    job = ledger.create_job("products", "r", "o")
    ledger.begin_run(job.id)
    assert ledger.fail_run(job.id, "Sin actividad")
    assert ledger.reset_for_retry(job.id)
    assert not ledger.increment_counters(job.id, 4, 4, 0, run_number=1)
    assert ledger.begin_run(job.id) == 2
    assert not ledger.owns_run(job.id, 1)
    assert ledger.owns_run(job.id, 2)
    assert not ledger.increment_counters(job.id, 6, 6, 0, run_number=1)
    assert not ledger.complete_run(job.id, 6, 6, 6, 0, run_number=1)
    assert not ledger.fail_run(job.id, "boom", run_number=1)
    job = ledger.get_job(job.id)
    assert (job.status, job.processed_records) == ("processing", 0)
    assert ledger.increment_counters(job.id, 1, 1, 0, run_number=2)

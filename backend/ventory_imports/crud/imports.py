import datetime as dt
from typing import Any, Iterable
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from ventory_imports.db.models.import_job import ImportJob, JobStatus
from ventory_imports.db.models.import_record import ImportRecord


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

def get_job(db: Session, job_id: str) -> ImportJob | None:
    return db.get(ImportJob, job_id, populate_existing=True)

def get_run_state(db: Session, job_id: str) -> tuple[str, int] | None:
    row = db.execute(select(ImportJob.status, ImportJob.run_count).where(ImportJob.id == job_id)).first()
    return (row.status, row.run_count or 0) if row else None

def list_jobs(
    db: Session,
    limit: int = 50,
    status: str | None = None,
    import_kind: str | None = None,
    owner_id: str | None = None,
):
    q = db.query(ImportJob)
    if status:
        q = q.filter(ImportJob.status == status)
    if import_kind:
        q = q.filter(ImportJob.import_kind == import_kind)
    if owner_id:
        q = q.filter(ImportJob.owner_id == owner_id)
    return q.order_by(ImportJob.created_at.desc(), ImportJob.id).limit(limit).all()

def create_job(db: Session, import_kind: str, source_file_ref: str, owner_id: str, file_name: str | None = None) -> ImportJob:
    job = ImportJob(
        import_kind=import_kind,
        source_file_ref=source_file_ref,
        file_name=file_name,
        owner_id=owner_id,
        status=JobStatus.pending.value,
        total_records=0,
        processed_records=0,
        successful_records=0,
        failed_records=0,
        run_count=0,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job

def transition(
    db: Session,
    job_id: str,
    from_statuses: Iterable[str],
    to_status: str,
    run_number: int | None = None,
    **values: Any,
) -> bool:
    """Conditional status change; False when the job was not in one of from_statuses.

    With run_number, the change also requires that run to still be the job's latest one.
    """
    cond = [ImportJob.id == job_id, ImportJob.status.in_(list(from_statuses))]
    if run_number is not None:
        cond.append(ImportJob.run_count == run_number)
    res = db.execute(
        update(ImportJob)
        .where(*cond)
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return res.rowcount == 1

def set_status(db: Session, job_id: str, status: str, **values: Any) -> None:
    db.execute(
        update(ImportJob)
        .where(ImportJob.id == job_id)
        .values(status=status, **values)
        .execution_options(synchronize_session=False)
    )
    db.commit()

def set_total(db: Session, job_id: str, total: int) -> None:
    db.execute(
        update(ImportJob)
        .where(ImportJob.id == job_id)
        .values(total_records=total, heartbeat_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()

def update_counters(
    db: Session,
    job_id: str,
    processed: int,
    successful: int,
    failed: int,
    run_number: int | None = None,
) -> bool:
    # cumulative values; never moves a counter backwards
    job = get_job(db, job_id)
    if job is None:
        return False
    if run_number is not None and (job.run_count != run_number or job.status == JobStatus.pending.value):
        # reset for a retry, or a later run owns the counters
        db.rollback()
        return False
    job.processed_records = max(job.processed_records or 0, processed)
    job.successful_records = max(job.successful_records or 0, successful)
    job.failed_records = max(job.failed_records or 0, failed)
    job.heartbeat_at = utcnow()
    db.commit()
    return True

def reset_counters(db: Session, job_id: str) -> None:
    db.execute(
        update(ImportJob)
        .where(ImportJob.id == job_id)
        .values(
            total_records=0,
            processed_records=0,
            successful_records=0,
            failed_records=0,
            error_summary=None,
            completed_at=None,
            heartbeat_at=None,
        )
        .execution_options(synchronize_session=False)
    )
    db.commit()

def append_record(
    db: Session,
    job_id: str,
    run_number: int,
    row_number: int,
    raw_data: dict,
    status: str,
    error_message: str | None = None,
    created_entity_id: str | None = None,
) -> ImportRecord:
    rec = ImportRecord(
        import_job_id=job_id,
        run_number=run_number,
        row_number=row_number,
        raw_data=raw_data,
        status=status,
        error_message=error_message if status == "error" else None,
        created_entity_id=created_entity_id if status == "success" else None,
    )
    db.add(rec)
    db.commit()
    return rec

def list_records(db: Session, job_id: str, status: str | None = None, run_number: int | None = None):
    q = db.query(ImportRecord).filter(ImportRecord.import_job_id == job_id)
    if status:
        q = q.filter(ImportRecord.status == status)
    if run_number is not None:
        q = q.filter(ImportRecord.run_number == run_number)
    return q.order_by(ImportRecord.run_number, ImportRecord.row_number).all()

def find_stale_jobs(db: Session, older_than: dt.datetime) -> list[ImportJob]:
    q = db.query(ImportJob).filter(ImportJob.status == JobStatus.processing.value)
    stale = []
    for job in q.all():
        last = job.heartbeat_at or job.started_at or job.created_at
        if last is None:
            stale.append(job)
            continue
        if last.tzinfo is None:
            # sqlite drops tzinfo; values are written in UTC
            last = last.replace(tzinfo=dt.timezone.utc)
        if last < older_than:
            stale.append(job)
    return stale

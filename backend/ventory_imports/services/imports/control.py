"""Job control operations used by the HTTP layer.

Stateless per call: the ledger is the only shared state. Runs are handed to a
dispatcher (``job_id -> None``), Celery by default.
"""
from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import Session

from ventory_imports.core.logging import logger
from ventory_imports.crud import imports as crud
from ventory_imports.db.models.import_job import CANCELLABLE_STATUSES, RETRYABLE_STATUSES, ImportJob, ImportKind
from ventory_imports.services.files import source_exists
from ventory_imports.services.imports.errors import DispatchFailed, InvalidImportKind, InvalidJobState, SourceUnavailable
from ventory_imports.services.imports.ledger import JobLedger
from ventory_imports.services.imports.notifier import ProgressNotifier

Dispatcher = Callable[[str], None]

IMPORT_KINDS = tuple(k.value for k in ImportKind)
HISTORY_MAX_LIMIT = 200


def enqueue_run(job_id: str) -> None:
    from ventory_imports.worker.tasks import run_import_job_task

    run_import_job_task.apply_async(args=(job_id,), queue="imports")


def _dispatch(ledger: JobLedger, dispatcher: Dispatcher, job_id: str) -> None:
    try:
        dispatcher(job_id)
    except Exception as e:
        logger.exception("import_enqueue_failed", job_id=job_id, error=str(e))
        ledger.fail_run(job_id, f"No se pudo iniciar la importación: {e}")
        raise DispatchFailed(f"No se pudo iniciar la importación del job {job_id}") from e


def start_import(
    db: Session,
    import_kind: str,
    file_ref: str,
    owner_id: str,
    file_name: str | None = None,
    notifier: ProgressNotifier | None = None,
    dispatcher: Dispatcher = enqueue_run,
) -> ImportJob:
    if import_kind not in IMPORT_KINDS:
        raise InvalidImportKind(f"Tipo de importación no soportado: {import_kind}")
    if not source_exists(file_ref):
        raise SourceUnavailable(f"Archivo no encontrado: {file_ref}")

    ledger = JobLedger(db, notifier)
    job = ledger.create_job(import_kind, file_ref, owner_id, file_name=file_name)
    logger.info("import_job_created", job_id=job.id, kind=import_kind, owner_id=owner_id)
    _dispatch(ledger, dispatcher, job.id)
    return job


def get_job(db: Session, job_id: str) -> ImportJob:
    return JobLedger(db).get_job(job_id)


def list_jobs(
    db: Session,
    limit: int = 50,
    status: str | None = None,
    import_kind: str | None = None,
    owner_id: str | None = None,
) -> list[ImportJob]:
    limit = max(1, min(limit, HISTORY_MAX_LIMIT))
    return crud.list_jobs(db, limit=limit, status=status, import_kind=import_kind, owner_id=owner_id)


def list_records(db: Session, job_id: str, status: str | None = None, run_number: int | None = None):
    return JobLedger(db).list_records(job_id, status=status, run_number=run_number)


def cancel_job(db: Session, job_id: str, notifier: ProgressNotifier | None = None) -> ImportJob:
    ledger = JobLedger(db, notifier)
    job = ledger.get_job(job_id)
    if job.status not in CANCELLABLE_STATUSES or not ledger.cancel(job_id):
        # re-read: the runner may have finished between the check and the update
        raise InvalidJobState(job_id, ledger.get_job(job_id).status, "cancel")
    logger.info("import_job_cancelled", job_id=job_id)
    return ledger.get_job(job_id)


def retry_job(
    db: Session,
    job_id: str,
    notifier: ProgressNotifier | None = None,
    dispatcher: Dispatcher = enqueue_run,
) -> ImportJob:
    ledger = JobLedger(db, notifier)
    job = ledger.get_job(job_id)
    if job.status not in RETRYABLE_STATUSES or not ledger.reset_for_retry(job_id):
        raise InvalidJobState(job_id, ledger.get_job(job_id).status, "retry")
    logger.info("import_job_retried", job_id=job_id, previous_runs=job.run_count)
    _dispatch(ledger, dispatcher, job_id)
    return ledger.get_job(job_id)

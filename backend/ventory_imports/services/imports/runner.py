"""Processes one run of an import job, row by row, against the ledger."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ventory_imports.core.config import settings
from ventory_imports.core.logging import logger
from ventory_imports.db.models.import_job import ImportKind, JobStatus
from ventory_imports.services.imports.decoder import decode_workbook
from ventory_imports.services.imports.errors import InvalidImportKind, JobNotFound
from ventory_imports.services.imports.executor import CatalogLookup, CommandExecutor
from ventory_imports.services.imports.identity import IdentityProvider
from ventory_imports.services.imports.ledger import JobLedger
from ventory_imports.services.imports.notifier import ProgressNotifier
from ventory_imports.services.imports.validators import VALIDATORS, ValidationError


@dataclass
class RunCounters:
    processed: int = 0
    ok: int = 0
    fail: int = 0

    def add(self, success: bool) -> None:
        self.processed += 1
        if success:
            self.ok += 1
        else:
            self.fail += 1


def row_error_message(e: Exception) -> str:
    if isinstance(e, IntegrityError):
        return f"Error de integridad: {e.orig}"
    return str(e) or type(e).__name__


class JobRunner:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        read_source: Callable[[str], bytes],
        notifier: ProgressNotifier | None,
        identity: IdentityProvider | None,
        flush_every: int = 10,
        users_flush_every: int = 5,
        cancel_check_every: int = 1,
        rollback_identity: bool = False,
    ):
        self.session_factory = session_factory
        self.read_source = read_source
        self.notifier = notifier
        self.identity = identity
        self.flush_every = max(1, flush_every)
        self.users_flush_every = max(1, users_flush_every)
        self.cancel_check_every = cancel_check_every
        self.rollback_identity = rollback_identity

    def run(self, job_id: str) -> str:
        """Execute one run and return the job status it ended in.

        Row problems become error records. Anything else fails the job and is re-raised.
        The run stops as soon as the job leaves processing or a newer run takes it over.
        """
        db = self.session_factory()
        ledger = JobLedger(db, self.notifier)
        counters = RunCounters()
        run_number = None
        structlog.contextvars.bind_contextvars(job_id=job_id)
        try:
            job = ledger.get_job(job_id)
            run_number = ledger.begin_run(job_id)
            if run_number is None:
                status = ledger.get_job(job_id).status
                logger.warning("import_run_skipped", status=status)
                return status

            structlog.contextvars.bind_contextvars(run=run_number)
            logger.info("import_run_started", kind=job.import_kind)
            validator = VALIDATORS.get(job.import_kind)
            if validator is None:
                raise InvalidImportKind(f"Tipo de importación no soportado: {job.import_kind}")

            data = self.read_source(job.source_file_ref)
            rows = decode_workbook(data, job.file_name or job.source_file_ref)
            total = len(rows)
            ledger.set_total(job_id, total)

            flush_every = self.users_flush_every if job.import_kind == ImportKind.users.value else self.flush_every
            lookup = CatalogLookup(db)
            executor = CommandExecutor(db, self.identity, rollback_identity=self.rollback_identity)

            for i, row in enumerate(rows):
                if self._should_poll(i) and not ledger.owns_run(job_id, run_number):
                    return self._stop(ledger, job_id, run_number, counters)

                ok = self._process_row(db, ledger, validator, lookup, executor, job_id, run_number, i, row)
                counters.add(ok)
                if counters.processed % flush_every == 0:
                    ledger.increment_counters(job_id, counters.processed, counters.ok, counters.fail, run_number=run_number)

            ledger.increment_counters(job_id, counters.processed, counters.ok, counters.fail, run_number=run_number)
            if not ledger.complete_run(job_id, total, counters.processed, counters.ok, counters.fail, run_number=run_number):
                # cancelled, failed or retried while the last rows were running
                status = ledger.get_job(job_id).status
                logger.info("import_run_not_completed", status=status)
                return status

            logger.info("import_run_finished", total=total, ok=counters.ok, fail=counters.fail)
            return JobStatus.completed.value

        except JobNotFound:
            logger.error("import_job_missing")
            raise
        except Exception as e:
            logger.exception("import_run_failed", error=str(e))
            self._mark_failed(db, job_id, str(e) or type(e).__name__, counters, run_number)
            raise

        finally:
            db.close()
            structlog.contextvars.unbind_contextvars("job_id", "run")

    def _stop(self, ledger: JobLedger, job_id: str, run_number: int, counters: RunCounters) -> str:
        ledger.increment_counters(job_id, counters.processed, counters.ok, counters.fail, run_number=run_number)
        job = ledger.get_job(job_id)
        if job.status == JobStatus.cancelled.value:
            logger.info("import_run_cancelled", processed=counters.processed)
        else:
            logger.warning("import_run_superseded", status=job.status, latest_run=job.run_count, processed=counters.processed)
        return job.status

    def _should_poll(self, row_index: int) -> bool:
        return self.cancel_check_every > 0 and row_index % self.cancel_check_every == 0

    def _process_row(
        self,
        db: Session,
        ledger: JobLedger,
        validator,
        lookup: CatalogLookup,
        executor: CommandExecutor,
        job_id: str,
        run_number: int,
        row_index: int,
        row: dict[str, Any],
    ) -> bool:
        try:
            outcome = validator(row, row_index, lookup)
            if isinstance(outcome, ValidationError):
                message = outcome.message
            else:
                entity_id = executor.execute(outcome)
                db.flush()
                message = None
        except Exception as e:
            db.rollback()
            logger.info("import_row_failed", row=row_index + 2, error=str(e))
            message = row_error_message(e)

        # ledger writes stay outside the row guard: a failed append fails the job
        if message is not None:
            ledger.append_record(job_id, run_number, row_index, row, "error", error_message=message)
            return False

        # the record commit also commits the row's entity writes
        ledger.append_record(job_id, run_number, row_index, row, "success", created_entity_id=entity_id)
        return True

    def _mark_failed(
        self,
        db: Session,
        job_id: str,
        message: str,
        counters: RunCounters,
        run_number: int | None,
    ) -> None:
        def fail(session: Session) -> None:
            JobLedger(session, self.notifier).fail_run(
                job_id, message, counters.processed, counters.ok, counters.fail, run_number=run_number
            )

        # the session may be in an aborted transaction, so roll back first
        try:
            db.rollback()
            fail(db)
        except Exception as e2:
            logger.exception("import_failed_status_update_failed", error=str(e2))
            try:
                db2 = self.session_factory()
                try:
                    fail(db2)
                finally:
                    db2.close()
            except Exception as e3:
                logger.exception("import_failed_status_update_failed_second_attempt", error=str(e3))


def build_runner(session_factory: Callable[[], Session] | None = None, notifier: ProgressNotifier | None = None) -> JobRunner:
    from ventory_imports.db.session import SessionLocal
    from ventory_imports.services.files import read_source
    from ventory_imports.services.imports.identity import build_identity_provider
    from ventory_imports.services.imports.notifier import get_notifier

    session_factory = session_factory or SessionLocal
    return JobRunner(
        session_factory,
        read_source,
        notifier if notifier is not None else get_notifier(),
        build_identity_provider(session_factory),
        flush_every=settings.IMPORT_FLUSH_EVERY,
        users_flush_every=settings.IMPORT_USERS_FLUSH_EVERY,
        cancel_check_every=settings.IMPORT_CANCEL_CHECK_EVERY,
        rollback_identity=settings.IMPORT_USERS_ROLLBACK_IDENTITY,
    )

"""Job ledger: durable job/record state, with a notification after every committed change."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ventory_imports.crud import imports as crud
from ventory_imports.db.models.import_job import (
    CANCELLABLE_STATUSES,
    RETRYABLE_STATUSES,
    ImportJob,
    JobStatus,
)
from ventory_imports.db.models.import_record import ImportRecord
from ventory_imports.services.imports.errors import JobNotFound
from ventory_imports.services.imports.notifier import ProgressNotifier
from ventory_imports.services.imports.validators import row_number


class JobLedger:
    def __init__(self, db: Session, notifier: ProgressNotifier | None = None):
        self.db = db
        self.notifier = notifier

    def _publish(self, job_id: str, transition: str | None = None) -> ImportJob | None:
        job = crud.get_job(self.db, job_id)
        if job is not None and self.notifier is not None:
            self.notifier.publish_job(job, transition=transition)
        return job

    # reads

    def get_job(self, job_id: str) -> ImportJob:
        job = crud.get_job(self.db, job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def list_records(self, job_id: str, status: str | None = None, run_number: int | None = None) -> list[ImportRecord]:
        self.get_job(job_id)
        return crud.list_records(self.db, job_id, status=status, run_number=run_number)

    def owns_run(self, job_id: str, run_number: int) -> bool:
        """True while the job is processing and run_number is still its latest run."""
        state = crud.get_run_state(self.db, job_id)
        return state == (JobStatus.processing.value, run_number)

    # writes

    def create_job(self, import_kind: str, source_file_ref: str, owner_id: str, file_name: str | None = None) -> ImportJob:
        job = crud.create_job(self.db, import_kind, source_file_ref, owner_id, file_name=file_name)
        self._publish(job.id)
        return job

    def set_status(self, job_id: str, status: str, **values: Any) -> None:
        if status in (JobStatus.completed.value, JobStatus.failed.value, JobStatus.cancelled.value):
            values.setdefault("completed_at", crud.utcnow())
        crud.set_status(self.db, job_id, status, **values)
        self._publish(job_id, transition=status)

    def set_total(self, job_id: str, total: int) -> None:
        crud.set_total(self.db, job_id, total)
        self._publish(job_id)

    def increment_counters(
        self,
        job_id: str,
        processed: int,
        success: int,
        fail: int,
        run_number: int | None = None,
    ) -> bool:
        """Flush cumulative run counters; repeating a flush changes nothing.

        With run_number the flush is dropped once that run no longer owns the job.
        """
        done = crud.update_counters(self.db, job_id, processed, success, fail, run_number=run_number)
        if done:
            self._publish(job_id)
        return done

    def append_record(
        self,
        job_id: str,
        run_number: int,
        row_index: int,
        raw_data: dict,
        status: str,
        error_message: str | None = None,
        created_entity_id: str | None = None,
    ) -> ImportRecord:
        return crud.append_record(
            self.db,
            job_id,
            run_number=run_number,
            row_number=row_number(row_index),
            raw_data=raw_data,
            status=status,
            error_message=error_message,
            created_entity_id=created_entity_id,
        )

    # lifecycle

    def begin_run(self, job_id: str) -> int | None:
        """pending -> processing; returns the new run number, None if the job was not pending."""
        job = self.get_job(job_id)
        run_number = (job.run_count or 0) + 1
        now = crud.utcnow()
        ok = crud.transition(
            self.db,
            job_id,
            [JobStatus.pending.value],
            JobStatus.processing.value,
            run_count=run_number,
            started_at=now,
            heartbeat_at=now,
        )
        if not ok:
            return None
        self._publish(job_id, transition=JobStatus.processing.value)
        return run_number

    def complete_run(
        self,
        job_id: str,
        total: int,
        processed: int,
        ok: int,
        fail: int,
        run_number: int | None = None,
    ) -> bool:
        done = crud.transition(
            self.db,
            job_id,
            [JobStatus.processing.value],
            JobStatus.completed.value,
            run_number=run_number,
            processed_records=processed,
            successful_records=ok,
            failed_records=fail,
            completed_at=crud.utcnow(),
            heartbeat_at=crud.utcnow(),
            error_summary={"total": total, "processed": processed, "ok": ok, "fail": fail},
        )
        if done:
            self._publish(job_id, transition=JobStatus.completed.value)
        return done

    def fail_run(
        self,
        job_id: str,
        message: str,
        processed: int | None = None,
        ok: int | None = None,
        fail: int | None = None,
        run_number: int | None = None,
    ) -> bool:
        values: dict[str, Any] = {"completed_at": crud.utcnow(), "error_summary": {"message": message}}
        if processed is not None:
            values.update(processed_records=processed, successful_records=ok or 0, failed_records=fail or 0)
        done = crud.transition(
            self.db,
            job_id,
            [JobStatus.pending.value, JobStatus.processing.value],
            JobStatus.failed.value,
            run_number=run_number,
            **values,
        )
        if done:
            self._publish(job_id, transition=JobStatus.failed.value)
        return done

    def cancel(self, job_id: str) -> bool:
        done = crud.transition(
            self.db,
            job_id,
            CANCELLABLE_STATUSES,
            JobStatus.cancelled.value,
            completed_at=crud.utcnow(),
        )
        if done:
            self._publish(job_id, transition=JobStatus.cancelled.value)
        return done

    def reset_for_retry(self, job_id: str) -> bool:
        """failed|cancelled -> pending with fresh counters; earlier records are kept."""
        done = crud.transition(self.db, job_id, RETRYABLE_STATUSES, JobStatus.pending.value)
        if done:
            crud.reset_counters(self.db, job_id)
            self._publish(job_id, transition=JobStatus.pending.value)
        return done

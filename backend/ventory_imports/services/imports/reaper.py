import datetime as dt

from sqlalchemy.orm import Session

from ventory_imports.core.logging import logger
from ventory_imports.crud.imports import find_stale_jobs, utcnow
from ventory_imports.services.imports.ledger import JobLedger
from ventory_imports.services.imports.notifier import ProgressNotifier


def reap_stale_jobs(db: Session, notifier: ProgressNotifier | None, stale_after: dt.timedelta) -> list[str]:
    """Fail processing jobs with no ledger write for longer than stale_after."""
    cutoff = utcnow() - stale_after
    ledger = JobLedger(db, notifier)
    reaped = []
    for job in find_stale_jobs(db, cutoff):
        minutes = int(stale_after.total_seconds() // 60)
        message = f"Sin actividad durante más de {minutes} minutos; el proceso de importación se detuvo"
        if ledger.fail_run(job.id, message):
            reaped.append(job.id)
            logger.warning("import_job_reaped", job_id=job.id, last_heartbeat=str(job.heartbeat_at))
    return reaped

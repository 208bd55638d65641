import datetime as dt

from ventory_imports.worker.celery_app import celery_app
from ventory_imports.core.config import settings
from ventory_imports.core.logging import logger
from ventory_imports.db.session import SessionLocal
from ventory_imports.services.imports.notifier import get_notifier
from ventory_imports.services.imports.reaper import reap_stale_jobs
from ventory_imports.services.imports.runner import build_runner


@celery_app.task(name="imports.run_import_job", bind=True)
def run_import_job_task(self, job_id: str):
    # failures are already on the job; re-raising only marks the task failed
    status = build_runner(SessionLocal).run(job_id)
    logger.info("import_task_done", job_id=job_id, status=status, task_id=self.request.id)
    return status


@celery_app.task(name="imports.reap_stale_jobs")
def reap_stale_jobs_task():
    db = SessionLocal()
    try:
        reaped = reap_stale_jobs(db, get_notifier(), dt.timedelta(minutes=settings.IMPORT_STALE_AFTER_MIN))
        if reaped:
            logger.info("import_reaper_done", reaped=len(reaped))
        return reaped
    finally:
        db.close()

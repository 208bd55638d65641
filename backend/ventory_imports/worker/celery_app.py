from celery import Celery
from celery.signals import worker_init

from ventory_imports.core.config import settings, validate_settings
from ventory_imports.core.logging import configure_logging, logger

celery_app = Celery(
    "ventory_imports",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["ventory_imports.worker.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_default_queue="imports",
    task_routes={"imports.*": {"queue": "imports"}},
    # a run is long; ack only when it ends so a lost worker re-queues it
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_hijack_root_logger=False,
    result_expires=3600,
    broker_connection_retry_on_startup=True,
    beat_schedule={
        "reap-stale-imports": {
            "task": "imports.reap_stale_jobs",
            "schedule": 60.0,
        },
    },
)


@worker_init.connect
def _on_worker_init(**_):
    configure_logging(settings.ENV)
    validate_settings()
    logger.info("worker_started", env=settings.ENV)

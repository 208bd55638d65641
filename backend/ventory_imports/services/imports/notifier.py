"""Push ledger changes to subscribers (in-process callbacks and Redis pub/sub)."""
from __future__ import annotations

import json
import threading
from collections import defaultdict
from datetime import timedelta
from functools import lru_cache
from typing import Any, Callable

from redis import Redis
from redis.exceptions import RedisError

from ventory_imports.core.config import settings
from ventory_imports.core.logging import logger
from ventory_imports.schemas.imports import job_snapshot

CHANNEL_PREFIX = "imports:jobs:"
SNAPSHOT_PREFIX = "imports:snapshot:"
SNAPSHOT_TTL = timedelta(hours=24)

EVENT_UPDATED = "import.updated"
EVENT_COMPLETED = "import.completed"
EVENT_FAILED = "import.failed"
EVENT_CANCELLED = "import.cancelled"
TERMINAL_EVENTS = (EVENT_COMPLETED, EVENT_FAILED, EVENT_CANCELLED)

Callback = Callable[[dict[str, Any]], None]


def channel_for(job_id: str) -> str:
    return f"{CHANNEL_PREFIX}{job_id}"


class ProgressNotifier:
    def __init__(self, redis_client: Redis | None = None):
        self.redis = redis_client
        self._subscribers: dict[str, list[Callback]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, job_id: str, callback: Callback) -> Callable[[], None]:
        with self._lock:
            self._subscribers[job_id].append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                subs = self._subscribers.get(job_id, [])
                if callback in subs:
                    subs.remove(callback)
                if not subs:
                    self._subscribers.pop(job_id, None)

        return _unsubscribe

    def publish_job(self, job, transition: str | None = None) -> None:
        snapshot = job_snapshot(job)
        self._emit(job.id, {"event": EVENT_UPDATED, "job": snapshot}, snapshot=snapshot)

        if transition == "completed":
            self._emit(job.id, {
                "event": EVENT_COMPLETED,
                "jobId": job.id,
                "successfulRecords": job.successful_records,
                "failedRecords": job.failed_records,
            })
        elif transition == "failed":
            summary = job.error_summary or {}
            self._emit(job.id, {"event": EVENT_FAILED, "jobId": job.id, "message": summary.get("message")})
        elif transition == "cancelled":
            self._emit(job.id, {
                "event": EVENT_CANCELLED,
                "jobId": job.id,
                "processedRecords": job.processed_records,
            })

    def _emit(self, job_id: str, event: dict[str, Any], snapshot: dict[str, Any] | None = None) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(job_id, ()))
        for cb in callbacks:
            try:
                cb(event)
            except Exception as e:
                logger.warning("import_subscriber_failed", job_id=job_id, event_type=event["event"], error=str(e))

        if self.redis is None:
            return
        try:
            payload = json.dumps(event)
            if snapshot is not None:
                self.redis.set(f"{SNAPSHOT_PREFIX}{job_id}", json.dumps(snapshot), ex=int(SNAPSHOT_TTL.total_seconds()))
            self.redis.publish(channel_for(job_id), payload)
        except RedisError as e:
            # subscribers can always fall back to polling the ledger
            logger.warning("import_notify_failed", job_id=job_id, event_type=event["event"], error=str(e))


@lru_cache
def get_notifier() -> ProgressNotifier:
    client = Redis.from_url(settings.REDIS_URL, decode_responses=True, socket_connect_timeout=2, socket_timeout=2)
    return ProgressNotifier(client)

import asyncio
import json
from pathlib import Path
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ventory_imports.core.config import settings
from ventory_imports.core.deps import get_db, get_dispatcher, get_progress_notifier, require_roles
from ventory_imports.core.logging import logger
from ventory_imports.db.models.import_job import TERMINAL_STATUSES
from ventory_imports.db.models.user import Role, User
from ventory_imports.db.session import SessionLocal
from ventory_imports.schemas.imports import (
    AckOut,
    ImportJobOut,
    ImportJobPatchIn,
    ImportRecordOut,
    ImportStartIn,
    ImportStartOut,
    job_snapshot,
)
from ventory_imports.services.files import FileTooLarge, ensure_dirs, make_file_ref, resolve_ref, save_upload
from ventory_imports.services.imports import control
from ventory_imports.services.imports.decoder import SUPPORTED_EXTENSIONS
from ventory_imports.services.imports.notifier import TERMINAL_EVENTS, channel_for

router = APIRouter()

ADMIN_ONLY = (Role.admin,)
SSE_POLL_SEC = 2.0
SSE_MAX_IDLE_SEC = 300.0


@router.post("", response_model=ImportStartOut, status_code=202)
def start_import(
    body: ImportStartIn,
    db: Session = Depends(get_db),
    notifier=Depends(get_progress_notifier),
    dispatcher=Depends(get_dispatcher),
    user: User = Depends(require_roles(*ADMIN_ONLY)),
):
    job = control.start_import(
        db,
        body.import_kind,
        body.file_ref,
        owner_id=user.id,
        file_name=body.file_name or Path(body.file_ref).name,
        notifier=notifier,
        dispatcher=dispatcher,
    )
    return ImportStartOut(job_id=job.id, status=job.status)


@router.post("/upload", response_model=ImportStartOut, status_code=202)
def upload_and_start(
    import_kind: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    notifier=Depends(get_progress_notifier),
    dispatcher=Depends(get_dispatcher),
    user: User = Depends(require_roles(*ADMIN_ONLY)),
):
    if not file.filename or not file.filename.lower().endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(status_code=400, detail="Only .xlsx or .csv supported")

    ensure_dirs()
    file_ref = make_file_ref(user.id, file.filename)
    try:
        save_upload(file, resolve_ref(file_ref), max_bytes=settings.IMPORT_MAX_FILE_MB * 1024 * 1024)
    except FileTooLarge as e:
        raise HTTPException(status_code=413, detail=str(e))

    job = control.start_import(
        db,
        import_kind,
        file_ref,
        owner_id=user.id,
        file_name=file.filename,
        notifier=notifier,
        dispatcher=dispatcher,
    )
    return ImportStartOut(job_id=job.id, status=job.status)


@router.get("", response_model=list[ImportJobOut])
def list_imports(
    limit: int = Query(50, ge=1, le=control.HISTORY_MAX_LIMIT),
    status: str | None = Query(None),
    import_kind: str | None = Query(None),
    db: Session = Depends(get_db),
    _user=Depends(require_roles(*ADMIN_ONLY)),
):
    return control.list_jobs(db, limit=limit, status=status, import_kind=import_kind)


@router.get("/{job_id}", response_model=ImportJobOut)
def get_import(
    job_id: str,
    db: Session = Depends(get_db),
    _user=Depends(require_roles(*ADMIN_ONLY)),
):
    return control.get_job(db, job_id)


@router.patch("/{job_id}", response_model=AckOut)
def patch_import(
    job_id: str,
    body: ImportJobPatchIn,
    db: Session = Depends(get_db),
    notifier=Depends(get_progress_notifier),
    _user=Depends(require_roles(*ADMIN_ONLY)),
):
    job = control.cancel_job(db, job_id, notifier=notifier)
    return AckOut(job_id=job.id, status=job.status)


@router.post("/{job_id}/retry", response_model=AckOut, status_code=202)
def retry_import(
    job_id: str,
    db: Session = Depends(get_db),
    notifier=Depends(get_progress_notifier),
    dispatcher=Depends(get_dispatcher),
    _user=Depends(require_roles(*ADMIN_ONLY)),
):
    job = control.retry_job(db, job_id, notifier=notifier, dispatcher=dispatcher)
    return AckOut(job_id=job.id, status=job.status)


@router.get("/{job_id}/records", response_model=list[ImportRecordOut])
def get_records(
    job_id: str,
    status: str | None = Query(None, pattern="^(success|error)$"),
    run: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    _user=Depends(require_roles(*ADMIN_ONLY)),
):
    return control.list_records(db, job_id, status=status, run_number=run)


def _sse(data: dict, event: str | None = None) -> str:
    head = f"event: {event}\n" if event else ""
    return f"{head}data: {json.dumps(data)}\n\n"


async def _poll_ledger(job_id: str) -> AsyncGenerator[str, None]:
    """Fallback when Redis is unreachable: re-read the ledger every few seconds."""
    last = None
    idle = 0.0
    while idle < SSE_MAX_IDLE_SEC:
        await asyncio.sleep(SSE_POLL_SEC)
        db = SessionLocal()
        try:
            job = control.get_job(db, job_id)
            snap = job_snapshot(job)
        finally:
            db.close()
        if snap != last:
            last = snap
            idle = 0.0
            yield _sse({"event": "import.updated", "job": snap})
        else:
            idle += SSE_POLL_SEC
        if snap["status"] in TERMINAL_STATUSES:
            return


@router.get("/{job_id}/events")
async def stream_import_events(
    job_id: str,
    db: Session = Depends(get_db),
    _user=Depends(require_roles(*ADMIN_ONLY)),
):
    """Server-Sent Events: current snapshot first, then every ledger change until the job ends."""
    first = job_snapshot(control.get_job(db, job_id))

    async def event_generator() -> AsyncGenerator[str, None]:
        yield _sse({"event": "import.updated", "job": first})
        if first["status"] in TERMINAL_STATUSES:
            yield _sse({}, event="close")
            return

        client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
        pubsub = client.pubsub()
        try:
            await pubsub.subscribe(channel_for(job_id))
            idle = 0.0
            while idle < SSE_MAX_IDLE_SEC:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=SSE_POLL_SEC)
                if msg is None:
                    idle += SSE_POLL_SEC
                    continue
                idle = 0.0
                payload = json.loads(msg["data"])
                yield _sse(payload)
                if payload.get("event") in TERMINAL_EVENTS:
                    break
        except RedisError as e:
            logger.warning("import_events_redis_unavailable", job_id=job_id, error=str(e))
            async for chunk in _poll_ledger(job_id):
                yield chunk
        finally:
            try:
                await pubsub.aclose()
                await client.aclose()
            except RedisError as e:
                logger.debug("import_events_close_failed", job_id=job_id, error=str(e))
        yield _sse({}, event="close")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

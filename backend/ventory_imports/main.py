from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ventory_imports.core.config import settings, validate_settings
from ventory_imports.core.logging import configure_logging, logger
from ventory_imports.api.router import api_router
from ventory_imports.db.session import engine
from ventory_imports.db.base import Base
from ventory_imports.services.files import ensure_dirs
from ventory_imports.services.imports.errors import (
    DecodeError,
    DispatchFailed,
    Forbidden,
    ImportEngineError,
    InvalidImportKind,
    InvalidJobState,
    JobNotFound,
    SourceUnavailable,
)
from ventory_imports.services.seed import seed_demo

ERROR_STATUS = {
    JobNotFound: 404,
    InvalidJobState: 409,
    InvalidImportKind: 400,
    SourceUnavailable: 400,
    DecodeError: 400,
    Forbidden: 403,
    DispatchFailed: 503,
}

def _engine_error_handler(request: Request, exc: ImportEngineError) -> JSONResponse:
    code = next((c for t, c in ERROR_STATUS.items() if isinstance(exc, t)), 500)
    if code >= 500:
        logger.error("request_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=code, content={"detail": str(exc)})

def create_app() -> FastAPI:
    configure_logging(settings.ENV)
    validate_settings()
    app = FastAPI(title="Ventory Imports", version="0.1.0")

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ImportEngineError, _engine_error_handler)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup():
        ensure_dirs()
        # Ensure tables exist for dev-only convenience; in prod rely on alembic
        if settings.ENV == "dev":
            Base.metadata.create_all(bind=engine)
        if settings.SEED_DEMO and settings.ENV == "dev":
            seed_demo()

    app.include_router(api_router)
    logger.info("app_started", env=settings.ENV)
    return app

app = create_app()

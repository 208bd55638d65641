from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ventory_imports.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    # statement timeout bounds every collaborator write issued by the runner
    timeout_ms = int(settings.ENTITY_CALL_TIMEOUT_SEC * 1000)
    return {"connect_timeout": 10, "options": f"-c statement_timeout={timeout_ms}"}


engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

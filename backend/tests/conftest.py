import os
import tempfile
from pathlib import Path

_TMP = tempfile.mkdtemp(prefix="ventory-imports-tests-")
# settings are read at import time
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/app.db"
os.environ["UPLOAD_DIR"] = f"{_TMP}/uploads"
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/0"
os.environ["SEED_DEMO"] = "false"
os.environ["IDENTITY_PROVIDER"] = "local"

import openpyxl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ventory_imports.core.config import settings
from ventory_imports.crud.catalog import create_category
from ventory_imports.db.base import Base
import ventory_imports.db.models  # noqa: F401
from ventory_imports.services.imports.notifier import ProgressNotifier


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    d = tmp_path / "uploads"
    d.mkdir()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(d))
    return d


@pytest.fixture
def notifier():
    return ProgressNotifier(None)


@pytest.fixture
def categories(db):
    return {name: create_category(db, name).id for name in ("Bebidas", "Snacks")}


def write_xlsx(path: Path, header, rows) -> Path:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Datos"
    ws.append(list(header))
    for r in rows:
        ws.append(list(r))
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path


@pytest.fixture
def make_sheet(upload_dir):
    """Write a workbook under the upload dir and return its file ref."""
    counter = {"n": 0}

    def _make(header, rows, name=None):
        counter["n"] += 1
        ref = "owner-1/" + (name or "sheet%d.xlsx" % counter["n"])
        write_xlsx(upload_dir / ref, header, rows)
        return ref

    return _make

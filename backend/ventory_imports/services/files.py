from pathlib import Path
import shutil
import time
from fastapi import UploadFile
from ventory_imports.core.config import settings
from ventory_imports.services.imports.errors import SourceUnavailable


class FileTooLarge(ValueError):
    pass


def ensure_dirs():
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

def upload_root() -> Path:
    return Path(settings.UPLOAD_DIR).resolve()

def make_file_ref(owner_id: str, file_name: str) -> str:
    # <owner>/<epoch ms>-<name>, the same key shape the web uploader used
    safe = Path(file_name or "upload").name.replace(" ", "_")
    return f"{owner_id}/{int(time.time() * 1000)}-{safe}"

def resolve_ref(file_ref: str) -> Path:
    root = upload_root()
    path = (root / file_ref).resolve()
    if root not in path.parents:
        raise SourceUnavailable(f"Referencia de archivo inválida: {file_ref}")
    return path

def source_exists(file_ref: str) -> bool:
    try:
        return resolve_ref(file_ref).is_file()
    except SourceUnavailable:
        return False

def save_upload(file: UploadFile, dest_path: Path, max_bytes: int | None = None) -> int:
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    with dest_path.open("wb") as f:
        shutil.copyfileobj(file.file, f)
    size = dest_path.stat().st_size
    if max_bytes is not None and size > max_bytes:
        dest_path.unlink(missing_ok=True)
        raise FileTooLarge(f"Archivo demasiado grande ({size} bytes)")
    return size

def read_source(file_ref: str) -> bytes:
    path = resolve_ref(file_ref)
    try:
        return path.read_bytes()
    except OSError as e:
        raise SourceUnavailable(f"Error descargando archivo: {e.strerror or e}") from e

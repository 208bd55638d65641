import pytest

from ventory_imports.services.files import make_file_ref, read_source, resolve_ref, source_exists
from ventory_imports.services.imports.errors import SourceUnavailable

def test_file_ref_is_owner_scoped(upload_dir):
    ref = make_file_ref("owner-7", "../Inventario Marzo.xlsx")
    owner, name = ref.split("/")
    assert owner == "owner-7"
    assert name.endswith("-Inventario_Marzo.xlsx")
    assert name.split("-", 1)[0].isdigit()

def test_read_source_roundtrip_and_missing(upload_dir):
    (upload_dir / "o").mkdir()
    (upload_dir / "o" / "a.csv").write_bytes(b"sku,stock\n")
    assert read_source("o/a.csv") == b"sku,stock\n"
    assert source_exists("o/a.csv")
    assert not source_exists("o/b.csv")
    with pytest.raises(SourceUnavailable):
        read_source("o/b.csv")

def test_refs_cannot_escape_upload_dir(upload_dir):
    with pytest.raises(SourceUnavailable):
        resolve_ref("../secrets.txt")
    assert not source_exists("/etc/passwd")

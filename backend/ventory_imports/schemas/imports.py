import datetime as dt
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ImportStartIn(_CamelModel):
    # unknown kinds are rejected by the service with a 400
    import_kind: str = Field(..., min_length=1, max_length=16)
    file_ref: str = Field(..., min_length=1, max_length=1024)
    file_name: str | None = None


class ImportStartOut(_CamelModel):
    job_id: str
    status: str


class ImportJobOut(_CamelModel):
    id: str
    import_kind: str
    source_file_ref: str
    file_name: str | None = None
    status: str
    total_records: int
    processed_records: int
    successful_records: int
    failed_records: int
    error_summary: dict[str, Any] | None = None
    owner_id: str
    run_count: int
    created_at: dt.datetime | None = None
    started_at: dt.datetime | None = None
    heartbeat_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None


class ImportRecordOut(_CamelModel):
    id: str
    import_job_id: str
    run_number: int
    row_number: int
    raw_data: dict[str, Any]
    status: str
    error_message: str | None = None
    created_entity_id: str | None = None
    created_at: dt.datetime | None = None


class ImportJobPatchIn(_CamelModel):
    status: Literal["cancelled"]


class AckOut(_CamelModel):
    ok: bool = True
    job_id: str
    status: str
    message: str | None = None


def job_snapshot(job) -> dict[str, Any]:
    return ImportJobOut.model_validate(job).model_dump(by_alias=True, mode="json")

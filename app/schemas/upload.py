"""Upload and import schemas."""

from datetime import datetime
from typing import Any

from app.models.upload import ImportStage, RecordKind, UploadStatus
from app.schemas.common import BaseSchema


class RowErrorResponse(BaseSchema):
    """One row excluded from an import."""

    row_number: int
    identity: str
    error_type: str
    error_message: str


class ImportPreview(BaseSchema):
    """Parsed file and detected record kind, before anything is stored."""

    file_name: str
    columns: list[str]
    record_kind: RecordKind | None
    rationale: str
    total_rows: int
    sample_rows: list[dict[str, Any]] = []


class ImportResult(BaseSchema):
    """Result of an import run."""

    upload_id: int
    record_kind: RecordKind
    status: UploadStatus
    stage: ImportStage
    total_rows: int
    inserted_rows: int
    updated_rows: int
    skipped_rows: int
    failed_rows: int
    rationale: str | None = None
    errors: list[RowErrorResponse] = []
    message: str


class UploadResponse(BaseSchema):
    """Upload record response schema."""

    id: int
    owner_id: int
    record_kind: RecordKind
    file_name: str
    file_size: int
    status: UploadStatus
    stage: ImportStage
    total_rows: int
    inserted_rows: int
    updated_rows: int
    skipped_rows: int
    failed_rows: int
    rationale: str | None
    error_message: str | None
    processing_started_at: datetime | None
    processing_completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class UploadWithDetails(UploadResponse):
    """Upload response with its row errors."""

    errors: list[RowErrorResponse] = []

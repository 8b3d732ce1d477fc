"""Spreadsheet import endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import CurrentUser
from app.models.upload import RecordKind, UploadStatus
from app.schemas.common import ErrorResponse, PaginatedResponse
from app.schemas.upload import ImportPreview, ImportResult, UploadResponse, UploadWithDetails
from app.services.upload import UploadService, check_upload_file

router = APIRouter()

IMPORT_ERRORS = {
    400: {"model": ErrorResponse, "description": "File rejected or unreadable"},
    422: {"model": ErrorResponse, "description": "Format not recognized, missing catalog or no valid row"},
}


@router.post("/preview", response_model=ImportPreview, responses=IMPORT_ERRORS)
async def preview_import(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    file: UploadFile = File(...),
):
    """
    Parse a spreadsheet and detect what it holds, without importing.

    Returns the columns, the detected record kind with its rationale and the
    first rows of the file.
    """
    content = await file.read()
    file_name = check_upload_file(file.filename, content)
    return UploadService(db).preview(file_name, content)


@router.post("", response_model=ImportResult, responses=IMPORT_ERRORS)
async def run_import(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    file: UploadFile = File(...),
    kind: RecordKind | None = Form(None),
):
    """
    Import courses, students or grades from a .csv, .xlsx or .xls file.

    - The record kind is detected from the column labels unless `kind` is given
    - Rows with problems are skipped and reported; the rest is imported
    - Existing records (matched by natural key) are updated

    Expected columns:
    - courses: name, code, total_semesters (optional), start_date (optional)
    - students: name, student_id, course, email / gender / ethnicity / income (optional)
    - grades: student_id, subject, grade, assessment_name / assessment_type / max_grade / date (optional)
    """
    content = await file.read()
    file_name = check_upload_file(file.filename, content)
    service = UploadService(db)
    return await service.run_import(
        owner_id=current_user.id,
        file_name=file_name,
        content=content,
        forced_kind=kind,
    )


@router.get("", response_model=PaginatedResponse[UploadResponse])
async def list_imports(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    kind: RecordKind | None = Query(None),
    upload_status: UploadStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """List import history, newest first."""
    service = UploadService(db)
    return await service.list_uploads(current_user.id, kind, upload_status, page, page_size)


@router.get("/{upload_id}", response_model=UploadWithDetails)
async def get_import(
    upload_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get one import with its row errors."""
    upload = await UploadService(db).get_upload(current_user.id, upload_id)
    return UploadWithDetails.model_validate(upload)


@router.get("/{upload_id}/errors.txt", response_class=PlainTextResponse)
async def download_import_errors(
    upload_id: int,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Row errors of one import as plain text, one line per row."""
    service = UploadService(db)
    upload = await service.get_upload(current_user.id, upload_id)
    return PlainTextResponse(
        service.errors_as_text(upload),
        headers={"Content-Disposition": f'attachment; filename="import-{upload_id}-errors.txt"'},
    )

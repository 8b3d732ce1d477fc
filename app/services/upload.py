"""Upload service: preview, import and history of spreadsheet uploads."""

import logging
from datetime import datetime, timezone
from pathlib import PurePath

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ClassificationAmbiguousError,
    ImportFailedError,
    NotFoundError,
    PreconditionError,
    UploadError,
)
from app.models.upload import ImportStage, RecordKind, Upload, UploadError as UploadErrorModel, UploadStatus
from app.schemas.common import PaginatedResponse
from app.schemas.upload import ImportPreview, ImportResult, RowErrorResponse, UploadResponse
from app.services.classifier import Classification, classify, force
from app.services.importer import ImportOutcome, ImportRun, ReconcilingImporter, RowIssue
from app.services.profiles import get_profile
from app.services.record_store import RecordStore
from app.services.tabular import ParsedTable, parse_upload

logger = logging.getLogger(__name__)


def check_upload_file(file_name: str | None, content: bytes) -> str:
    """Reject files by name, extension or size before reading them."""
    if not file_name:
        raise UploadError("No file name provided")

    extension = PurePath(file_name).suffix.lower()
    if extension not in settings.ALLOWED_EXTENSIONS:
        raise UploadError(
            f"Invalid file type. Allowed: {', '.join(settings.ALLOWED_EXTENSIONS)}",
            details={"file_name": file_name},
        )

    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(content) > max_size:
        raise UploadError(f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE_MB}MB")
    if not content:
        raise UploadError("Uploaded file is empty")
    return file_name


class UploadService:
    """Spreadsheet import service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _classify(self, table: ParsedTable, forced_kind: RecordKind | None) -> Classification:
        if forced_kind is not None:
            return force(forced_kind, table.columns)
        return classify(table.columns)

    def preview(self, file_name: str, content: bytes) -> ImportPreview:
        """Parse and classify without storing anything."""
        table = parse_upload(content, file_name)
        classification = classify(table.columns)
        return ImportPreview(
            file_name=file_name,
            columns=table.columns,
            record_kind=classification.kind,
            rationale=classification.rationale,
            total_rows=len(table.rows),
            sample_rows=table.sample(settings.PREVIEW_ROWS),
        )

    async def run_import(
        self,
        owner_id: int,
        file_name: str,
        content: bytes,
        forced_kind: RecordKind | None = None,
    ) -> ImportResult:
        """
        Import one file for the owner.
        Row failures are reported in the result; a missing reference catalog or
        a file without a single valid row fails the run.
        """
        logger.info(f"[IMPORT] Starting import of {file_name} for owner {owner_id}")
        table = parse_upload(content, file_name)
        classification = self._classify(table, forced_kind)
        if not classification.recognized:
            raise ClassificationAmbiguousError(classification.rationale, table.columns)

        upload = Upload(
            owner_id=owner_id,
            record_kind=classification.kind,
            file_name=file_name,
            file_size=len(content),
            status=UploadStatus.PROCESSING,
            stage=ImportStage.PARSED,
            total_rows=len(table.rows),
            rationale=classification.rationale,
            processing_started_at=datetime.now(timezone.utc),
            errors=[],
        )
        self.db.add(upload)
        await self.db.flush()
        logger.debug(f"[IMPORT] Created upload record with ID: {upload.id}")

        run = ImportRun()
        run.subscribe(lambda stage: self._follow_stage(upload, stage))
        importer = ReconcilingImporter(RecordStore(self.db), owner_id)

        try:
            outcome = await importer.run(get_profile(classification.kind), table, run)
        except (PreconditionError, ImportFailedError) as e:
            upload.status = UploadStatus.FAILED
            upload.error_message = e.message
            upload.processing_completed_at = datetime.now(timezone.utc)
            for error in e.details.get("errors", []):
                upload.errors.append(UploadErrorModel(**error))
            upload.failed_rows = len(upload.errors)
            # The failed run stays in history even though the request errors out
            await self.db.commit()
            raise

        self._record_outcome(upload, outcome)
        await self.db.flush()
        logger.info(
            f"[IMPORT] Upload {upload.id} complete - Status: {upload.status.value}, "
            f"inserted={outcome.inserted}, updated={outcome.updated}, "
            f"skipped={outcome.skipped}, failed={outcome.failed}"
        )

        return ImportResult(
            upload_id=upload.id,
            record_kind=upload.record_kind,
            status=upload.status,
            stage=upload.stage,
            total_rows=upload.total_rows,
            inserted_rows=outcome.inserted,
            updated_rows=outcome.updated,
            skipped_rows=outcome.skipped,
            failed_rows=outcome.failed,
            rationale=upload.rationale,
            errors=[self._error_response(issue) for issue in outcome.errors],
            message=outcome.summary(),
        )

    @staticmethod
    def _follow_stage(upload: Upload, stage: ImportStage) -> None:
        upload.stage = stage
        logger.debug(f"[IMPORT] Upload {upload.id} -> {stage.value}")

    @staticmethod
    def _record_outcome(upload: Upload, outcome: ImportOutcome) -> None:
        upload.inserted_rows = outcome.inserted
        upload.updated_rows = outcome.updated
        upload.skipped_rows = outcome.skipped
        upload.failed_rows = outcome.failed
        succeeded = outcome.inserted + outcome.updated + outcome.skipped
        upload.status = (
            UploadStatus.SUCCESS if not outcome.has_errors
            else UploadStatus.PARTIAL if succeeded > 0
            else UploadStatus.FAILED
        )
        upload.processing_completed_at = datetime.now(timezone.utc)
        for issue in outcome.errors:
            upload.errors.append(UploadErrorModel(**issue.as_dict()))

    @staticmethod
    def _error_response(issue: RowIssue) -> RowErrorResponse:
        return RowErrorResponse(**issue.as_dict())

    async def list_uploads(
        self,
        owner_id: int,
        record_kind: RecordKind | None = None,
        status: UploadStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> PaginatedResponse[UploadResponse]:
        """List the owner's uploads, newest first."""
        query = select(Upload).where(Upload.owner_id == owner_id)
        if record_kind:
            query = query.where(Upload.record_kind == record_kind)
        if status:
            query = query.where(Upload.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Upload.created_at.desc(), Upload.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        uploads = (await self.db.execute(query)).scalars().all()

        return PaginatedResponse(
            items=[UploadResponse.model_validate(u) for u in uploads],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
        )

    async def get_upload(self, owner_id: int, upload_id: int) -> Upload:
        result = await self.db.execute(
            select(Upload).where(Upload.id == upload_id, Upload.owner_id == owner_id)
        )
        upload = result.scalar_one_or_none()
        if not upload:
            raise NotFoundError("Upload", str(upload_id))
        return upload

    @staticmethod
    def errors_as_text(upload: Upload) -> str:
        """One line per row error, for download."""
        return "\n".join(
            f"Row {error.row_number}: {error.identity} - {error.error_message}"
            for error in upload.errors
        )

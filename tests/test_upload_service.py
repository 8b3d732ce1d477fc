"""Tests for the upload service: preview, import runs and history."""

import pytest
from sqlalchemy import select

from app.core.exceptions import ClassificationAmbiguousError, ParseError, PreconditionError, UploadError
from app.models import ImportStage, RecordKind, Student, Upload, UploadStatus
from app.services.upload import UploadService, check_upload_file

COURSES_CSV = b"codigo,nome,total_semestres\nCC,Computacao,8\nENG,Engenharia,10\n"


class TestFileChecks:
    def test_accepts_allowed_extension(self):
        assert check_upload_file("notas.XLSX", b"data") == "notas.XLSX"

    @pytest.mark.parametrize("file_name", [None, "", "notas.pdf"])
    def test_rejects_bad_names(self, file_name):
        with pytest.raises(UploadError):
            check_upload_file(file_name, b"data")

    def test_rejects_empty_file(self):
        with pytest.raises(UploadError):
            check_upload_file("notas.csv", b"")


@pytest.mark.asyncio
async def test_preview_detects_kind_and_samples_rows(db):
    lines = ["matricula,disciplina,nota"] + [f"S{i},MAT01,{i}" for i in range(8)]

    preview = UploadService(db).preview("notas.csv", "\n".join(lines).encode())

    assert preview.record_kind == RecordKind.GRADES
    assert preview.total_rows == 8
    assert len(preview.sample_rows) == 5
    assert preview.sample_rows[0] == {"matricula": "S0", "disciplina": "MAT01", "nota": "0"}


@pytest.mark.asyncio
async def test_successful_import_is_recorded(db, owner):
    service = UploadService(db)

    result = await service.run_import(owner.id, "cursos.csv", COURSES_CSV)

    assert result.status == UploadStatus.SUCCESS
    assert result.stage == ImportStage.REPORTED
    assert result.record_kind == RecordKind.COURSES
    assert result.inserted_rows == 2
    assert result.message == "Import of courses complete: 2 new, 0 updated, 0 unchanged."

    upload = await service.get_upload(owner.id, result.upload_id)
    assert upload.status == UploadStatus.SUCCESS
    assert upload.file_size == len(COURSES_CSV)
    assert upload.processing_completed_at is not None


@pytest.mark.asyncio
async def test_partial_import_keeps_row_errors(db, owner, subject, students):
    service = UploadService(db)
    content = (
        "matricula;disciplina;avaliacao;nota\n"
        "S1;MAT01;Prova 1;7,5\n"
        "X999;MAT01;Prova 1;8\n"
    ).encode()

    result = await service.run_import(owner.id, "notas.csv", content)

    assert result.status == UploadStatus.PARTIAL
    assert result.message == "Partial import of grades: 1 new, 0 updated, 0 unchanged. 1 errors found."
    assert result.errors[0].row_number == 3

    upload = await service.get_upload(owner.id, result.upload_id)
    assert service.errors_as_text(upload) == (
        "Row 3: X999 | MAT01 | Prova 1 - Student not found (identifier: X999)"
    )


@pytest.mark.asyncio
async def test_unrecognized_columns_need_a_kind(db, owner, course):
    content = b"nome,matricula,curso,total_semestres\nCarla,S10,CC,8\n"
    service = UploadService(db)

    with pytest.raises(ClassificationAmbiguousError) as exc_info:
        await service.run_import(owner.id, "alunos.csv", content)
    assert exc_info.value.details["columns"] == ["nome", "matricula", "curso", "total_semestres"]

    result = await service.run_import(owner.id, "alunos.csv", content, forced_kind=RecordKind.STUDENTS)

    assert result.record_kind == RecordKind.STUDENTS
    assert "forced" in result.rationale
    assert (await db.execute(select(Student.registration_id))).scalar_one() == "S10"


@pytest.mark.asyncio
async def test_precondition_failure_stays_in_history(db, owner):
    service = UploadService(db)

    with pytest.raises(PreconditionError):
        await service.run_import(owner.id, "alunos.csv", b"nome,matricula,curso\nCarla,S10,CC\n")

    upload = (await db.execute(select(Upload))).scalar_one()
    assert upload.status == UploadStatus.FAILED
    assert upload.stage == ImportStage.FAILED
    assert "No courses registered" in upload.error_message


@pytest.mark.asyncio
async def test_unreadable_file_creates_no_history(db, owner):
    with pytest.raises(ParseError):
        await UploadService(db).run_import(owner.id, "cursos.csv", b"codigo,nome\n")

    assert (await db.execute(select(Upload))).first() is None


@pytest.mark.asyncio
async def test_history_is_owner_scoped_and_filterable(db, owner, subject, students):
    service = UploadService(db)
    await service.run_import(owner.id, "cursos.csv", COURSES_CSV)
    await service.run_import(
        owner.id, "notas.csv", b"matricula,disciplina,nota\nS1,MAT01,5\nX9,MAT01,6\n"
    )

    everything = await service.list_uploads(owner.id)
    partial = await service.list_uploads(owner.id, status=UploadStatus.PARTIAL)
    courses = await service.list_uploads(owner.id, record_kind=RecordKind.COURSES)
    someone_else = await service.list_uploads(owner.id + 1)

    assert everything.total == 2
    assert [u.file_name for u in partial.items] == ["notas.csv"]
    assert [u.file_name for u in courses.items] == ["cursos.csv"]
    assert someone_else.total == 0

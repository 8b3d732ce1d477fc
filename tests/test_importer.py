"""Tests for the reconciling importer and its profiles."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select

from app.core.exceptions import ImportFailedError, PreconditionError, RowResolutionError
from app.models import Course, Grade, ImportStage, RecordKind, Student, Subject, User
from app.services.importer import ImportRun, ReconcilingImporter
from app.services.profiles import GradeImportProfile, get_profile
from app.services.record_store import RecordStore
from app.services.resolver import ReferenceIndex, ReferenceResolver
from app.services.tabular import parse_csv

GRADES_CSV = (
    "matricula,disciplina,avaliacao,nota,data\n"
    'S1,MAT01,Prova 1,"7,5",2024-03-01\n'
    "X999,MAT01,Prova 1,8,2024-03-01\n"
    "S2,Cálculo I,Prova 1,9,2024-03-01\n"
)


@pytest_asyncio.fixture
async def other_owner(db, students):
    """A second professor with a course, a subject and one student of their own."""
    user = User(name="Prof. Marcos Teixeira", email="marcos@example.edu", password_hash="x", is_active=True)
    db.add(user)
    await db.flush()
    medicine = Course(
        owner_id=user.id, name="Medicina", code="MED", total_semesters=12, start_date=date(2019, 2, 1)
    )
    db.add(medicine)
    await db.flush()
    db.add(Subject(owner_id=user.id, name="Física", code="FIS", course_id=medicine.id))
    db.add(Student(name="Tiago Reis", registration_id="T1", course_id=medicine.id))
    await db.commit()
    return user


def table(text: str):
    return parse_csv(text.encode("utf-8"))


async def run_import(db, owner, kind: RecordKind, text: str, run: ImportRun | None = None, **kwargs):
    importer = ReconcilingImporter(RecordStore(db), owner.id, **kwargs)
    return await importer.run(get_profile(kind), table(text), run)


class TestReferenceIndex:
    def test_name_and_code_both_resolve(self):
        course = Course(id=7, name="Ciência da Computação", code="CC")
        index = ReferenceIndex.build('Course not found: "{value}"', [course], "name", "code")

        assert index.resolve(" cc ") == 7
        assert index.resolve("ciência da computação") == 7
        assert len(index) == 2

    def test_unknown_value_names_it(self):
        index = ReferenceIndex("Student not found (identifier: {value})")

        with pytest.raises(RowResolutionError) as exc_info:
            index.resolve("X999")

        assert exc_info.value.reason == "Student not found (identifier: X999)"


@pytest.mark.asyncio
async def test_resolver_requires_courses(db, owner):
    resolver = ReferenceResolver(RecordStore(db), owner.id)

    with pytest.raises(PreconditionError) as exc_info:
        await resolver.courses()

    assert exc_info.value.code == "PRECONDITION_FAILED"


class TestGradeImport:
    @pytest.mark.asyncio
    async def test_unknown_student_is_reported_and_others_inserted(self, db, owner, subject, students):
        outcome = await run_import(db, owner, RecordKind.GRADES, GRADES_CSV)

        assert outcome.inserted == 2
        assert outcome.updated == 0
        assert outcome.failed == 1
        error = outcome.errors[0]
        assert error.row_number == 3
        assert error.error_type == "RESOLUTION_ERROR"
        assert "X999" in error.reason
        assert error.as_text() == "Row 3: X999 | MAT01 | Prova 1 - Student not found (identifier: X999)"

        grades = (await db.execute(select(Grade).order_by(Grade.id))).scalars().all()
        assert [g.grade for g in grades] == [Decimal("7.50"), Decimal("9.00")]
        assert grades[0].max_grade == Decimal("10.00")
        assert grades[0].assessment_type == "Prova"
        assert grades[0].date_assigned == date(2024, 3, 1)

    @pytest.mark.asyncio
    async def test_reimport_is_idempotent(self, db, owner, subject, students):
        await run_import(db, owner, RecordKind.GRADES, GRADES_CSV)

        outcome = await run_import(db, owner, RecordKind.GRADES, GRADES_CSV)

        assert outcome.inserted == 0
        assert outcome.updated == 0
        assert outcome.skipped == 2
        assert outcome.failed == 1

    @pytest.mark.asyncio
    async def test_changed_grade_is_updated(self, db, owner, subject, students):
        await run_import(db, owner, RecordKind.GRADES, GRADES_CSV)

        outcome = await run_import(
            db,
            owner,
            RecordKind.GRADES,
            "matricula,disciplina,avaliacao,nota,nota_maxima,data\n"
            "s1,mat01,Prova 1,8,20,2024-03-01\n",
        )

        assert (outcome.inserted, outcome.updated, outcome.skipped) == (0, 1, 0)
        grade = (
            await db.execute(select(Grade).where(Grade.student_id == students[0].id))
        ).scalar_one()
        assert grade.grade == Decimal("8.00")
        assert grade.max_grade == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_defaults_for_missing_columns(self, db, owner, subject, students):
        outcome = await run_import(
            db, owner, RecordKind.GRADES, "matricula,disciplina,nota\nS1,MAT01,\n"
        )

        assert outcome.inserted == 1
        grade = (await db.execute(select(Grade))).scalar_one()
        assert grade.grade == Decimal("0.00")
        assert grade.max_grade == Decimal("10.00")
        assert grade.assessment_name == "Assessment"
        assert grade.date_assigned == date.today()

    @pytest.mark.asyncio
    async def test_no_subjects_fails_before_row_errors(self, db, owner, course, students):
        run = ImportRun()

        with pytest.raises(PreconditionError):
            await run_import(db, owner, RecordKind.GRADES, GRADES_CSV, run)

        assert run.stage == ImportStage.FAILED
        assert (await db.execute(select(Grade))).first() is None

    @pytest.mark.asyncio
    async def test_no_valid_rows_fails_with_errors(self, db, owner, subject, students):
        with pytest.raises(ImportFailedError) as exc_info:
            await run_import(
                db,
                owner,
                RecordKind.GRADES,
                "matricula,disciplina,nota\nX1,MAT01,5\nX2,MAT01,6\n",
            )

        errors = exc_info.value.details["errors"]
        assert [e["row_number"] for e in errors] == [2, 3]
        assert all(e["error_type"] == "RESOLUTION_ERROR" for e in errors)

    @pytest.mark.asyncio
    async def test_oversized_grade_falls_back_to_default(self, db, owner, subject, students):
        outcome = await run_import(
            db,
            owner,
            RecordKind.GRADES,
            "matricula,disciplina,avaliacao,nota,nota_maxima,data\n"
            "S1,MAT01,P 1,1e30,100000000000,2024-03-01\n"
            "S2,MAT01,P 1,9,10,2024-03-01\n",
        )

        assert (outcome.inserted, outcome.failed) == (2, 0)
        grade = (
            await db.execute(select(Grade).where(Grade.student_id == students[0].id))
        ).scalar_one()
        assert grade.grade == Decimal("0.00")
        assert grade.max_grade == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_students_of_other_professors_are_not_found(self, db, owner, other_owner):
        outcome = await run_import(
            db, other_owner, RecordKind.GRADES, "matricula,disciplina,nota\nS1,FIS,9\nT1,FIS,8\n"
        )

        assert outcome.inserted == 1
        assert [(e.row_number, e.reason) for e in outcome.errors] == [
            (2, "Student not found (identifier: S1)"),
        ]
        student_ids = (await db.execute(select(Grade.student_id))).scalars().all()
        tiago = (
            await db.execute(select(Student.id).where(Student.registration_id == "T1"))
        ).scalar_one()
        assert student_ids == [tiago]


def test_assessment_type_from_name():
    assert GradeImportProfile.assessment_type_for("Exam 1") == "Exam"
    assert GradeImportProfile.assessment_type_for("Trabalho Final") == "Trabalho Final"
    assert GradeImportProfile.assessment_type_for("1") == "1"
    assert GradeImportProfile.assessment_type_for(" 2") == "Exam"


class TestStudentImport:
    @pytest.mark.asyncio
    async def test_missing_identifier_is_reported(self, db, owner, course):
        outcome = await run_import(
            db,
            owner,
            RecordKind.STUDENTS,
            "nome,matricula,curso,sexo,renda\n"
            "Carla Dias,S10,CC,FEMININO,\"2500,00\"\n"
            "Davi Rocha,,CC,masculino,0\n"
            ",,CC,,\n",
        )

        assert outcome.inserted == 1
        assert [e.row_number for e in outcome.errors] == [3, 4]
        assert outcome.errors[0].reason == "Student identifier is empty"
        assert outcome.errors[0].identity == "Davi Rocha ((no identifier))"
        assert outcome.errors[1].reason == "Name and student identifier are empty"

        student = (await db.execute(select(Student))).scalar_one()
        assert student.registration_id == "S10"
        assert student.gender == "Feminino"
        assert student.average_income == Decimal("2500.00")

    @pytest.mark.asyncio
    async def test_duplicate_identifier_falls_back_to_row_inserts(self, db, owner, course):
        outcome = await run_import(
            db,
            owner,
            RecordKind.STUDENTS,
            "nome,matricula,curso\n"
            "Carla Dias,S10,CC\n"
            "Carla D.,S10,CC\n"
            "Eva Melo,S11,Ciência da Computação\n",
        )

        assert outcome.inserted == 2
        assert len(outcome.errors) == 1
        error = outcome.errors[0]
        assert error.row_number == 3
        assert error.error_type == "PERSISTENCE_ERROR"
        assert "registration_id" in error.reason

        names = (await db.execute(select(Student.name).order_by(Student.id))).scalars().all()
        assert names == ["Carla Dias", "Eva Melo"]

    @pytest.mark.asyncio
    async def test_existing_student_is_updated_with_new_course(self, db, owner, course, students):
        other = Course(
            owner_id=owner.id, name="Engenharia", code="ENG", total_semesters=10, start_date=date(2021, 2, 1)
        )
        db.add(other)
        await db.flush()

        outcome = await run_import(
            db, owner, RecordKind.STUDENTS, "nome,matricula,curso\nAna Lima Souza,s1,ENG\n"
        )

        assert (outcome.inserted, outcome.updated) == (0, 1)
        ana = (await db.execute(select(Student).where(Student.registration_id == "S1"))).scalar_one()
        assert ana.name == "Ana Lima Souza"
        assert ana.course_id == other.id

    @pytest.mark.asyncio
    async def test_unknown_course_is_reported(self, db, owner, course):
        outcome = await run_import(
            db,
            owner,
            RecordKind.STUDENTS,
            "nome,matricula,curso\nCarla Dias,S10,CC\nEva Melo,S11,MED\nFabio,S12,\n",
        )

        assert outcome.inserted == 1
        assert [e.reason for e in outcome.errors] == [
            'Course not found: "MED"',
            "Course not informed",
        ]

    @pytest.mark.asyncio
    async def test_oversized_income_is_not_informed(self, db, owner, course):
        outcome = await run_import(
            db,
            owner,
            RecordKind.STUDENTS,
            "nome,matricula,curso,renda\nCarla Dias,S10,CC,1e30\nDavi Rocha,S11,CC,2500\n",
        )

        assert (outcome.inserted, outcome.failed) == (2, 0)
        incomes = dict(
            (await db.execute(select(Student.registration_id, Student.average_income))).all()
        )
        assert incomes == {"S10": None, "S11": Decimal("2500.00")}

    @pytest.mark.asyncio
    async def test_student_of_another_professor_is_not_overwritten(self, db, course, other_owner):
        outcome = await run_import(
            db,
            other_owner,
            RecordKind.STUDENTS,
            "nome,matricula,curso\nHijacked,S1,MED\nUrsula Prado,T2,MED\n",
        )

        assert (outcome.inserted, outcome.updated) == (1, 0)
        error = outcome.errors[0]
        assert error.row_number == 2
        assert error.reason == "Student identifier already registered in another course"
        ana = (await db.execute(select(Student).where(Student.registration_id == "S1"))).scalar_one()
        assert ana.name == "Ana Lima"
        assert ana.course_id == course.id

    @pytest.mark.asyncio
    async def test_no_courses_is_a_precondition_failure(self, db, owner):
        with pytest.raises(PreconditionError):
            await run_import(db, owner, RecordKind.STUDENTS, "nome,matricula,curso\nCarla,S10,CC\n")


class TestCourseImport:
    @pytest.mark.asyncio
    async def test_insert_and_update_by_code(self, db, owner, course):
        outcome = await run_import(
            db,
            owner,
            RecordKind.COURSES,
            "codigo,nome,total_semestres,data_inicio\n"
            "cc,Computação,10 semestres,15/02/2021\n"
            "ENG,Engenharia,,\n",
        )

        assert (outcome.inserted, outcome.updated) == (1, 1)
        courses = {
            c.code: c for c in (await db.execute(select(Course))).scalars().all()
        }
        assert courses["CC"].name == "Computação"
        assert courses["CC"].total_semesters == 10
        assert courses["CC"].start_date == date(2021, 2, 15)
        assert courses["ENG"].total_semesters == 8
        assert courses["ENG"].owner_id == owner.id

    @pytest.mark.asyncio
    async def test_small_batches(self, db, owner):
        lines = ["codigo,nome"] + [f"C{i},Curso {i}" for i in range(5)]

        outcome = await run_import(db, owner, RecordKind.COURSES, "\n".join(lines), batch_size=2)

        assert outcome.inserted == 5
        assert outcome.summary() == "Import of courses complete: 5 new, 0 updated, 0 unchanged."


class TestImportRun:
    @pytest.mark.asyncio
    async def test_transitions_are_published_in_order(self, db, owner, course):
        stages = []
        run = ImportRun([stages.append])

        await run_import(db, owner, RecordKind.COURSES, "codigo,nome\nX1,Curso\n", run)

        assert stages == [
            ImportStage.VALIDATED,
            ImportStage.RESOLVED,
            ImportStage.PARTITIONED,
            ImportStage.PERSISTED,
            ImportStage.REPORTED,
        ]

    def test_stages_cannot_be_skipped(self):
        run = ImportRun()

        with pytest.raises(RuntimeError):
            run.advance(ImportStage.PERSISTED)

    def test_finished_run_cannot_move(self):
        run = ImportRun()
        run.fail()

        with pytest.raises(RuntimeError):
            run.advance(ImportStage.VALIDATED)

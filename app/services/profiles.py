"""Import profiles for courses, students and grades."""

import re
from decimal import Decimal
from typing import Any

from app.core.config import settings
from app.core.exceptions import RowResolutionError, RowValidationError
from app.models.course import Course
from app.models.grade import Grade
from app.models.student import Student
from app.models.upload import RecordKind
from app.services.columns import ColumnField, HeaderIndex
from app.services.importer import CandidateRecord, ImportProfile
from app.services.normalizers import (
    CENTS,
    capitalize,
    cell_text,
    optional_string,
    parse_count,
    parse_date,
    parse_decimal,
    require_fields,
)
from app.services.record_store import RecordStore
from app.services.resolver import ReferenceIndex, ReferenceResolver
from app.services.tabular import RawRow

# "Exam 1" -> "Exam", "Prova 2" -> "Prova"
_NUMBERED_SUFFIX = re.compile(r"\s+\d")


class CourseImportProfile(ImportProfile):
    kind = RecordKind.COURSES
    model = Course
    noun = "course"

    def identify(self, row: RawRow, header: HeaderIndex) -> str:
        name = cell_text(header.value(row.cells, ColumnField.COURSE_NAME)) or "(no name)"
        code = cell_text(header.value(row.cells, ColumnField.COURSE_CODE)) or "(no code)"
        return f"{name} ({code})"

    def validate(self, row: RawRow, header: HeaderIndex) -> CandidateRecord:
        name = cell_text(header.value(row.cells, ColumnField.COURSE_NAME))
        code = cell_text(header.value(row.cells, ColumnField.COURSE_CODE))
        require_fields({"name": name, "code": code})

        return CandidateRecord(
            row_number=row.line,
            identity=f"{name} ({code})",
            fields={
                "name": name,
                "code": code,
                "total_semesters": parse_count(
                    header.value(row.cells, ColumnField.TOTAL_SEMESTERS),
                    settings.DEFAULT_TOTAL_SEMESTERS,
                ),
                "start_date": parse_date(header.value(row.cells, ColumnField.START_DATE)),
            },
        )

    def resolve(self, owner_id: int, record: CandidateRecord) -> dict[str, Any]:
        return {"owner_id": owner_id, **record.fields}

    def logical_key(self, values: dict[str, Any]) -> tuple:
        return (values["code"].lower(),)

    def existing_key(self, record: Course) -> tuple:
        return (record.code.lower(),)

    async def fetch_existing(
        self, store: RecordStore, owner_id: int, records: list[CandidateRecord]
    ) -> list[Course]:
        return await store.find_courses_by_code(owner_id, [r.values["code"] for r in records])

    def changes(self, existing: Course, values: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": values["name"],
            "total_semesters": values["total_semesters"],
            "start_date": values["start_date"],
        }


class StudentImportProfile(ImportProfile):
    kind = RecordKind.STUDENTS
    model = Student
    noun = "student"

    def __init__(self):
        self.courses: ReferenceIndex | None = None

    def identify(self, row: RawRow, header: HeaderIndex) -> str:
        name = cell_text(header.value(row.cells, ColumnField.STUDENT_NAME)) or "(no name)"
        registration = cell_text(header.value(row.cells, ColumnField.STUDENT_ID)) or "(no identifier)"
        return f"{name} ({registration})"

    def validate(self, row: RawRow, header: HeaderIndex) -> CandidateRecord:
        name = cell_text(header.value(row.cells, ColumnField.STUDENT_NAME))
        registration = cell_text(header.value(row.cells, ColumnField.STUDENT_ID))
        require_fields({"name": name, "student identifier": registration})
        course = cell_text(header.value(row.cells, ColumnField.COURSE))
        if not course:
            raise RowValidationError("Course not informed")

        # Zero income means "not informed" in the source sheets
        income = parse_decimal(
            header.value(row.cells, ColumnField.AVERAGE_INCOME), default=None, max_digits=12
        )
        if income is not None and income <= 0:
            income = None

        return CandidateRecord(
            row_number=row.line,
            identity=f"{name} ({registration})",
            fields={
                "name": name,
                "registration_id": registration,
                "email": optional_string(header.value(row.cells, ColumnField.EMAIL)),
                "course": course,
                "gender": capitalize(header.value(row.cells, ColumnField.GENDER)),
                "ethnicity": capitalize(header.value(row.cells, ColumnField.ETHNICITY)),
                "average_income": income.quantize(CENTS) if income is not None else None,
            },
        )

    async def prepare(self, resolver: ReferenceResolver, records: list[CandidateRecord]) -> None:
        self.courses = await resolver.courses()

    def resolve(self, owner_id: int, record: CandidateRecord) -> dict[str, Any]:
        values = dict(record.fields)
        values["course_id"] = self.courses.resolve(values.pop("course"))
        return values

    def logical_key(self, values: dict[str, Any]) -> tuple:
        return (values["registration_id"].lower(),)

    def existing_key(self, record: Student) -> tuple:
        return (record.registration_id.lower(),)

    async def fetch_existing(
        self, store: RecordStore, owner_id: int, records: list[CandidateRecord]
    ) -> list[Student]:
        return await store.find_students_by_registration(
            [r.values["registration_id"] for r in records]
        )

    def changes(self, existing: Student, values: dict[str, Any]) -> dict[str, Any]:
        # Identifiers are global; only students of the owner's courses may be rewritten
        if existing.course_id not in self.courses.ids():
            raise RowResolutionError("Student identifier already registered in another course")
        return {key: value for key, value in values.items() if key != "registration_id"}


class GradeImportProfile(ImportProfile):
    kind = RecordKind.GRADES
    model = Grade
    noun = "grade"

    def __init__(self):
        self.subjects: ReferenceIndex | None = None
        self.students: ReferenceIndex | None = None

    def identify(self, row: RawRow, header: HeaderIndex) -> str:
        registration = cell_text(header.value(row.cells, ColumnField.STUDENT_ID)) or "(no identifier)"
        subject = cell_text(header.value(row.cells, ColumnField.SUBJECT)) or "(no subject)"
        assessment = (
            cell_text(header.value(row.cells, ColumnField.ASSESSMENT_NAME))
            or settings.DEFAULT_ASSESSMENT_NAME
        )
        return f"{registration} | {subject} | {assessment}"

    @staticmethod
    def assessment_type_for(name: str) -> str:
        prefix = _NUMBERED_SUFFIX.split(name, maxsplit=1)[0].strip()
        return prefix or settings.DEFAULT_ASSESSMENT_TYPE

    def validate(self, row: RawRow, header: HeaderIndex) -> CandidateRecord:
        registration = cell_text(header.value(row.cells, ColumnField.STUDENT_ID))
        subject = cell_text(header.value(row.cells, ColumnField.SUBJECT))
        require_fields({"student identifier": registration, "subject": subject})

        assessment_name = (
            optional_string(header.value(row.cells, ColumnField.ASSESSMENT_NAME))
            or settings.DEFAULT_ASSESSMENT_NAME
        )
        assessment_type = optional_string(
            header.value(row.cells, ColumnField.ASSESSMENT_TYPE)
        ) or self.assessment_type_for(assessment_name)

        grade = parse_decimal(
            header.value(row.cells, ColumnField.GRADE), settings.DEFAULT_GRADE, max_digits=10
        )
        max_grade = parse_decimal(
            header.value(row.cells, ColumnField.MAX_GRADE), settings.DEFAULT_MAX_GRADE, max_digits=10
        )
        if max_grade <= 0:
            max_grade = settings.DEFAULT_MAX_GRADE

        return CandidateRecord(
            row_number=row.line,
            identity=f"{registration} | {subject} | {assessment_name}",
            fields={
                "registration_id": registration,
                "subject": subject,
                "grade": grade.quantize(CENTS),
                "max_grade": max_grade.quantize(CENTS),
                "assessment_type": assessment_type,
                "assessment_name": assessment_name,
                "date_assigned": parse_date(header.value(row.cells, ColumnField.DATE_ASSIGNED)),
            },
        )

    async def prepare(self, resolver: ReferenceResolver, records: list[CandidateRecord]) -> None:
        self.subjects = await resolver.subjects()
        self.students = await resolver.students(r.fields["registration_id"] for r in records)

    def resolve(self, owner_id: int, record: CandidateRecord) -> dict[str, Any]:
        values = dict(record.fields)
        values["student_id"] = self.students.resolve(values.pop("registration_id"))
        values["subject_id"] = self.subjects.resolve(values.pop("subject"))
        return values

    def logical_key(self, values: dict[str, Any]) -> tuple:
        return (
            values["student_id"],
            values["subject_id"],
            values["assessment_name"],
            values["assessment_type"],
            values["date_assigned"],
        )

    def existing_key(self, record: Grade) -> tuple:
        return (
            record.student_id,
            record.subject_id,
            record.assessment_name,
            record.assessment_type,
            record.date_assigned,
        )

    async def fetch_existing(
        self, store: RecordStore, owner_id: int, records: list[CandidateRecord]
    ) -> list[Grade]:
        return await store.find_grades_for_students(r.values["student_id"] for r in records)

    def changes(self, existing: Grade, values: dict[str, Any]) -> dict[str, Any] | None:
        if Decimal(existing.grade) == values["grade"]:
            return None
        return {"grade": values["grade"], "max_grade": values["max_grade"]}


PROFILES: dict[RecordKind, type[ImportProfile]] = {
    RecordKind.COURSES: CourseImportProfile,
    RecordKind.STUDENTS: StudentImportProfile,
    RecordKind.GRADES: GradeImportProfile,
}


def get_profile(kind: RecordKind) -> ImportProfile:
    return PROFILES[kind]()

"""Detects which record kind a spreadsheet holds from its column labels."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from app.models.upload import RecordKind
from app.services.columns import ColumnField, HeaderIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Classification:
    """Detected kind (None when unrecognized) and a human-readable rationale."""

    kind: RecordKind | None
    rationale: str
    columns: list[str] = field(default_factory=list)
    matched: list[ColumnField] = field(default_factory=list)
    forced: bool = False

    @property
    def recognized(self) -> bool:
        return self.kind is not None


def _describe(fields: Iterable[ColumnField]) -> str:
    return ", ".join(f.value.replace("_", " ") for f in fields) or "none"


def classify(columns: Iterable[str]) -> Classification:
    """Classify a header row.

    Precedence, first match wins:

    1. course code or total semesters, without student identifier or grade
       columns -> courses
    2. grade, student identifier and subject -> grades
    3. course name or student identifier, without grade or total semesters
       columns -> students
    """
    columns = list(columns)
    header = HeaderIndex(columns)

    has_code = header.has(ColumnField.COURSE_CODE)
    has_semesters = header.has(ColumnField.TOTAL_SEMESTERS)
    has_name = header.has(ColumnField.COURSE_NAME)
    has_student_id = header.has(ColumnField.STUDENT_ID)
    has_grade = header.has(ColumnField.GRADE)
    has_subject = header.has(ColumnField.SUBJECT)

    kind: RecordKind | None = None
    if (has_code or has_semesters) and not has_student_id and not has_grade:
        kind = RecordKind.COURSES
    elif has_grade and has_student_id and has_subject:
        kind = RecordKind.GRADES
    elif (has_name or has_student_id) and not has_grade and not has_semesters:
        kind = RecordKind.STUDENTS

    matched = header.matched_fields()
    listed = ", ".join(columns)
    if kind is not None:
        rationale = (
            f"Detected as {kind.value} from columns: {listed}. "
            f"Recognized fields: {_describe(matched)}."
        )
        logger.info(f"[CLASSIFY] {kind.value} <- {columns}")
        return Classification(kind=kind, rationale=rationale, columns=columns, matched=matched)

    unmet = []
    if not (has_code or has_semesters):
        unmet.append("courses need a course code or total semesters column")
    elif has_student_id or has_grade:
        unmet.append("courses must not carry student identifier or grade columns")

    missing_for_grades = [
        label
        for label, present in (
            ("grade", has_grade),
            ("student identifier", has_student_id),
            ("subject", has_subject),
        )
        if not present
    ]
    unmet.append(f"grades are missing: {', '.join(missing_for_grades)}")

    if not (has_name or has_student_id):
        unmet.append("students need a name or student identifier column")
    else:
        unmet.append("students must not carry grade or total semesters columns")

    rationale = f"Format not recognized for columns: {listed}. " + "; ".join(unmet) + "."
    logger.info(f"[CLASSIFY] unrecognized <- {columns}")
    return Classification(kind=None, rationale=rationale, columns=columns, matched=matched)


def force(kind: RecordKind, columns: Iterable[str]) -> Classification:
    """Manual override chosen by the user."""
    columns = list(columns)
    header = HeaderIndex(columns)
    rationale = f"Record kind forced to {kind.value} by the user. Columns: {', '.join(columns)}."
    return Classification(
        kind=kind,
        rationale=rationale,
        columns=columns,
        matched=header.matched_fields(),
        forced=True,
    )

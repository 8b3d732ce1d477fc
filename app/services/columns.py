"""Recognized spreadsheet column labels per logical field.

Professors export their sheets from different tools and in two languages, so
a logical field may arrive under several header spellings. Labels are
compared after normalization: lower-cased, with whitespace, ``_`` and ``-``
removed ("Total_Semestres", "total semestres" and "totalsemestres" are the
same label).
"""

import enum
import re
from collections.abc import Iterable, Mapping
from typing import Any


class ColumnField(str, enum.Enum):
    """Logical fields the import pipeline understands."""

    # Courses
    COURSE_NAME = "course_name"
    COURSE_CODE = "course_code"
    TOTAL_SEMESTERS = "total_semesters"
    START_DATE = "start_date"
    # Students
    STUDENT_NAME = "student_name"
    STUDENT_ID = "student_id"
    EMAIL = "email"
    COURSE = "course"
    GENDER = "gender"
    AVERAGE_INCOME = "average_income"
    ETHNICITY = "ethnicity"
    # Grades
    GRADE = "grade"
    SUBJECT = "subject"
    ASSESSMENT_TYPE = "assessment_type"
    ASSESSMENT_NAME = "assessment_name"
    MAX_GRADE = "max_grade"
    DATE_ASSIGNED = "date_assigned"


COLUMN_SYNONYMS: dict[ColumnField, tuple[str, ...]] = {
    ColumnField.COURSE_NAME: ("nome", "name", "nome_curso", "course_name"),
    ColumnField.COURSE_CODE: ("codigo", "código", "code", "codigo_curso", "course_code"),
    ColumnField.TOTAL_SEMESTERS: (
        "total_semestre",
        "total_semestres",
        "semestres",
        "semesters",
        "total_semesters",
    ),
    ColumnField.START_DATE: ("data_inicio", "data_início", "start_date", "inicio", "início", "data_ini"),
    ColumnField.STUDENT_NAME: ("nome", "name", "nome_aluno", "student_name"),
    ColumnField.STUDENT_ID: ("student_id", "matricula", "matrícula", "id_aluno", "codigo_aluno"),
    ColumnField.EMAIL: ("email", "e-mail"),
    ColumnField.COURSE: ("curso", "course"),
    ColumnField.GENDER: ("sexo", "sex", "gender"),
    ColumnField.AVERAGE_INCOME: (
        "renda",
        "renda_media",
        "renda média",
        "income",
        "average_income",
    ),
    ColumnField.ETHNICITY: ("raça", "raca", "race", "etnia", "ethnicity"),
    ColumnField.GRADE: ("grade", "nota", "score", "pontuacao", "pontuação"),
    ColumnField.SUBJECT: (
        "subject",
        "disciplina",
        "subject_name",
        "nome_disciplina",
        "subject_code",
        "codigo_disciplina",
    ),
    ColumnField.ASSESSMENT_TYPE: ("assessment_type", "tipo_avaliacao", "tipo_avaliação"),
    ColumnField.ASSESSMENT_NAME: ("assessment_name", "avaliacao", "avaliação", "tipo"),
    ColumnField.MAX_GRADE: ("max_grade", "nota_maxima", "nota_máxima"),
    ColumnField.DATE_ASSIGNED: ("date_assigned", "data", "date"),
}

_LABEL_NOISE = re.compile(r"[\s_\-]+")


def normalize_label(label: Any) -> str:
    """Normalize a column label for synonym comparison."""
    return _LABEL_NOISE.sub("", str(label).strip().lower())


def is_blank(value: Any) -> bool:
    """True for missing cells and cells holding only whitespace."""
    return value is None or (isinstance(value, str) and not value.strip())


class HeaderIndex:
    """Maps each logical field to the source columns that carry it."""

    def __init__(
        self,
        columns: Iterable[str],
        registry: Mapping[ColumnField, tuple[str, ...]] = COLUMN_SYNONYMS,
    ):
        self.columns = list(columns)
        self._labels: dict[ColumnField, list[str]] = {}

        lookup = self._build_lookup(registry)
        for column in self.columns:
            for field in lookup.get(normalize_label(column), ()):
                self._labels.setdefault(field, []).append(column)

    @staticmethod
    def _build_lookup(
        registry: Mapping[ColumnField, tuple[str, ...]],
    ) -> dict[str, list[ColumnField]]:
        # One label may serve several fields ("nome" names courses and students)
        lookup: dict[str, list[ColumnField]] = {}
        for field, aliases in registry.items():
            for alias in aliases:
                fields = lookup.setdefault(normalize_label(alias), [])
                if field not in fields:
                    fields.append(field)
        return lookup

    def has(self, field: ColumnField) -> bool:
        return field in self._labels

    def matched_fields(self) -> list[ColumnField]:
        return [field for field in ColumnField if field in self._labels]

    def value(self, cells: Mapping[str, Any], field: ColumnField) -> Any:
        """First non-blank cell among the columns that carry ``field``."""
        for label in self._labels.get(field, ()):
            value = cells.get(label)
            if not is_blank(value):
                return value
        return None

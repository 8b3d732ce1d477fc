"""Grade schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field, model_validator

from app.schemas.common import BaseSchema, PaginatedResponse


class GradeBase(BaseSchema):
    """Base grade schema."""

    student_id: int
    subject_id: int
    grade: Decimal = Field(..., ge=0)
    max_grade: Decimal = Field(Decimal("10"), gt=0)
    assessment_type: str = Field(..., min_length=1, max_length=100)
    assessment_name: str = Field(..., min_length=1, max_length=255)
    date_assigned: date


class GradeCreate(GradeBase):
    """Grade creation schema."""

    @model_validator(mode="after")
    def grade_within_max(self) -> "GradeCreate":
        if self.grade > self.max_grade:
            raise ValueError(f"grade ({self.grade}) exceeds max_grade ({self.max_grade})")
        return self


class GradeUpdate(BaseSchema):
    """Grade update schema."""

    grade: Decimal | None = Field(None, ge=0)
    max_grade: Decimal | None = Field(None, gt=0)
    assessment_type: str | None = Field(None, min_length=1, max_length=100)
    assessment_name: str | None = Field(None, min_length=1, max_length=255)
    date_assigned: date | None = None


class GradeResponse(GradeBase):
    """Grade response schema."""

    id: int
    student_name: str | None = None
    registration_id: str | None = None
    subject_name: str | None = None
    created_at: datetime
    updated_at: datetime


class GradeFilter(BaseSchema):
    """Grade filter options."""

    subject_id: int | None = None
    student_id: int | None = None
    assessment_type: str | None = None


class PaginatedGradeResponse(PaginatedResponse):
    """Paginated grade list."""

    items: list[GradeResponse]

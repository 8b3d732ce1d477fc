"""Student schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from app.schemas.common import BaseSchema, PaginatedResponse


class StudentBase(BaseSchema):
    """Base student schema."""

    name: str = Field(..., min_length=1, max_length=255)
    registration_id: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    course_id: int
    gender: str | None = Field(None, max_length=50)
    ethnicity: str | None = Field(None, max_length=50)
    average_income: Decimal | None = Field(None, ge=0)


class StudentUpdate(BaseSchema):
    """Student update schema."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    course_id: int | None = None
    gender: str | None = Field(None, max_length=50)
    ethnicity: str | None = Field(None, max_length=50)
    average_income: Decimal | None = Field(None, ge=0)


class StudentResponse(StudentBase):
    """Student response schema."""

    id: int
    created_at: datetime
    updated_at: datetime


class StudentFilter(BaseSchema):
    """Student filter options."""

    course_id: int | None = None
    search: str | None = None  # Search by name or registration id


class PaginatedStudentResponse(PaginatedResponse):
    """Paginated student list."""

    items: list[StudentResponse]
